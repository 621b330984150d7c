"""Entry construction and teardown.

EntryStore is the only place nodes are created. It hands out inode
numbers in increasing order, enforces sibling-name uniqueness when a node
is attached, and releases shared content when nodes are destroyed.
"""

import logging
from typing import Optional

from memfs.vfs.base import (
    DirectoryNode,
    FileNode,
    Node,
    NodeType,
    SymlinkNode,
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
)
from memfs.vfs.errors import (
    DirectoryNotEmptyError,
    InvalidArgumentError,
    IsADirectoryError,
    NameConflictError,
    NotADirectoryError,
)

logger = logging.getLogger(__name__)

ROOT_INODE = 1


def validate_name(name: str) -> str:
    """Reject names that cannot appear as a single path component."""
    if not name or "/" in name or name in (".", ".."):
        raise InvalidArgumentError(name, "Invalid file name")
    return name


class EntryStore:
    """Creates and destroys nodes for one file system instance."""

    def __init__(
        self,
        default_file_mode: int = DEFAULT_FILE_MODE,
        default_dir_mode: int = DEFAULT_DIR_MODE,
    ):
        """Initialize the store.

        Args:
            default_file_mode: Permission mask given to new files
            default_dir_mode: Permission mask given to new directories
        """
        self.default_file_mode = default_file_mode
        self.default_dir_mode = default_dir_mode
        self._next_inode = ROOT_INODE

    def allocate_inode(self) -> int:
        inode = self._next_inode
        self._next_inode += 1
        return inode

    def create_root(self) -> DirectoryNode:
        """Build a fresh root directory and restart inode numbering."""
        self._next_inode = ROOT_INODE
        return DirectoryNode("", self.allocate_inode(), parent=None,
                             permissions=self.default_dir_mode)

    def create(
        self,
        node_type: NodeType,
        name: str,
        parent: Node,
        target_path: Optional[str] = None,
    ) -> Node:
        """Create a node and attach it under `parent`.

        Args:
            node_type: Kind of node to build
            name: Name within the parent directory
            parent: Directory that will own the node
            target_path: Absolute target path (symbolic links only)

        Returns:
            The attached node

        Raises:
            NotADirectoryError: If parent is not a directory
            NameConflictError: If the name is already taken in parent
            InvalidArgumentError: If the name is malformed
        """
        self._check_slot(name, parent)

        inode = self.allocate_inode()
        if node_type is NodeType.DIRECTORY:
            node: Node = DirectoryNode(name, inode, permissions=self.default_dir_mode)
        elif node_type is NodeType.FILE:
            node = FileNode(name, inode, permissions=self.default_file_mode)
        else:
            if target_path is None:
                raise InvalidArgumentError(name, "Symbolic link needs a target")
            node = SymlinkNode(name, inode, target_path)

        parent.insert(node)
        logger.debug(f"Created {node_type.value} {node.get_path()} (inode {inode})")
        return node

    def alias(self, source: FileNode, name: str, parent: Node) -> FileNode:
        """Create a hard-link alias of `source` under `parent`.

        The alias shares the inode number and the content buffer, and
        starts with a copy of the source's permission mask.
        """
        if isinstance(source, DirectoryNode):
            raise IsADirectoryError(source.get_path(), "Hard links to directories are not allowed")
        self._check_slot(name, parent)

        source.content.acquire()
        node = FileNode(
            name,
            source.inode,
            permissions=source.permissions,
            content=source.content,
        )
        parent.insert(node)
        logger.debug(
            f"Linked {node.get_path()} -> inode {source.inode} "
            f"(links={source.content.link_count})"
        )
        return node

    def destroy(self, node: Node, recursive: bool = False) -> int:
        """Tear down a node that has already been detached from its parent.

        Directories are destroyed post-order when `recursive` is set.
        Files release their share of the content buffer; the bytes are
        freed once the last alias goes.

        Returns:
            Number of nodes destroyed

        Raises:
            DirectoryNotEmptyError: For a populated directory without recursive
        """
        if isinstance(node, DirectoryNode) and not node.is_empty() and not recursive:
            raise DirectoryNotEmptyError(node.name or "/")

        count = 0
        # (node, children already queued); a directory is finished after its children
        stack = [(node, False)]
        while stack:
            current, expanded = stack.pop()
            if isinstance(current, DirectoryNode) and not expanded:
                stack.append((current, True))
                for child in current.list_children():
                    current.remove(child)
                    stack.append((child, False))
                continue

            if isinstance(current, FileNode):
                remaining = current.content.release()
                if remaining == 0:
                    logger.debug(f"Released content of inode {current.inode}")
            current.destroyed = True
            count += 1

        return count

    def _check_slot(self, name: str, parent: Node) -> None:
        if not isinstance(parent, DirectoryNode):
            raise NotADirectoryError(parent.get_path())
        validate_name(name)
        if parent.get_child(name) is not None:
            raise NameConflictError(_join(parent.get_path(), name))


def _join(directory: str, name: str) -> str:
    if directory == "/":
        return "/" + name
    return f"{directory}/{name}"
