"""Hard and symbolic links.

A hard link is a second FileNode sharing the source's inode number and
content buffer. A symbolic link is a separate node holding the absolute
path of its source at creation time; it is re-resolved on every access.
"""

import logging

from memfs.vfs.base import DirectoryNode, FileNode, Node, NodeType, SymlinkNode
from memfs.vfs.errors import InvalidArgumentError, IsADirectoryError
from memfs.vfs.resolver import PathResolver
from memfs.vfs.store import EntryStore

logger = logging.getLogger(__name__)


class LinkManager:
    """Creates links and follows symbolic ones."""

    def __init__(self, store: EntryStore, resolver: PathResolver):
        self.store = store
        self.resolver = resolver

    def hardlink(self, src_path: str, dest_path: str, current: DirectoryNode) -> FileNode:
        """Create a hard link to a regular file.

        Args:
            src_path: Existing file (links in the path are followed)
            dest_path: New name; a bare name lands in the current directory
            current: Current working directory

        Returns:
            The new alias

        Raises:
            NotFoundError: If src does not resolve
            IsADirectoryError: If src is a directory
            NameConflictError: If dest already exists
        """
        source = self.resolver.lookup(src_path, current, follow_symlinks=True)
        if isinstance(source, DirectoryNode):
            raise IsADirectoryError(src_path, "Hard links to directories are not allowed")
        if not isinstance(source, FileNode):
            raise InvalidArgumentError(src_path, "Not a regular file")

        directory, name = self.resolver.split(dest_path, current)
        return self.store.alias(source, name, directory)

    def symlink(self, src_path: str, dest_path: str, current: DirectoryNode) -> SymlinkNode:
        """Create a symbolic link.

        The link stores the source's absolute path as built right now,
        not a reference to the source node.

        Raises:
            NotFoundError: If src does not resolve
            NameConflictError: If dest already exists
        """
        source = self.resolver.lookup(src_path, current)
        directory, name = self.resolver.split(dest_path, current)
        link = self.store.create(NodeType.SYMLINK, name, directory, target_path=source.get_path())
        logger.debug(f"Symbolic link {link.get_path()} -> {link.target_path}")
        return link

    def target_of(self, node: Node) -> Node:
        """Return the node itself, or the live target if it is a link.

        Raises:
            DanglingLinkError: If the link's target no longer resolves
        """
        if isinstance(node, SymlinkNode):
            return self.resolver.follow(node)
        return node
