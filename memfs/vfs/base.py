"""Base classes for the in-memory file system.

The tree is made of nodes owned by their parent directory:

Architecture:
    - Node: Base class for all entries (name, inode, permissions, parent)
    - DirectoryNode: Holds an unordered list of children (cd into them)
    - FileNode: Regular file whose bytes live in a shared ContentBuffer
    - SymlinkNode: Stores a target path, re-resolved on every access

The parent reference is a plain back-pointer; a node is kept alive only
by its parent's child list.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum, IntFlag
from typing import Dict, List, Optional, Any

from memfs.vfs.errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)


class NodeType(Enum):
    """Type of file system node."""
    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"


class LinkHealth(Enum):
    """Last observed state of a symbolic link's target."""
    UNKNOWN = "unknown"
    ALIVE = "alive"
    DEAD = "dead"


class Permission(IntFlag):
    """Bits of the 3-bit rwx permission mask."""
    NONE = 0
    EXECUTE = 1
    WRITE = 2
    READ = 4
    ALL = 7


DEFAULT_FILE_MODE = Permission.READ | Permission.WRITE
DEFAULT_DIR_MODE = Permission.ALL

_TYPE_CHARS = {
    NodeType.DIRECTORY: "d",
    NodeType.FILE: "-",
    NodeType.SYMLINK: "l",
}


def format_mode(node_type: NodeType, permissions: int) -> str:
    """Render a permission mask the way ls -l does, e.g. "drwx" or "-rw-"."""
    return "".join([
        _TYPE_CHARS[node_type],
        "r" if permissions & Permission.READ else "-",
        "w" if permissions & Permission.WRITE else "-",
        "x" if permissions & Permission.EXECUTE else "-",
    ])


def validate_mode(mode: int) -> int:
    """Check that a permission mask fits in three bits."""
    if isinstance(mode, bool) or not isinstance(mode, int) or not 0 <= mode <= 7:
        raise InvalidArgumentError(mode, "Invalid mode (expected 0-7)")
    return mode


class ContentBuffer:
    """Byte content shared by every hard-link alias of one inode.

    The buffer counts the entries referencing it. When the count drops to
    zero the bytes are released.
    """

    def __init__(self, data: bytes = b""):
        self.data = bytearray(data)
        self.link_count = 1

    def acquire(self) -> int:
        """Register one more alias and return the new count."""
        self.link_count += 1
        return self.link_count

    def release(self) -> int:
        """Drop one alias; frees the bytes when none remain."""
        if self.link_count > 0:
            self.link_count -= 1
        if self.link_count == 0:
            self.data = bytearray()
        return self.link_count

    @property
    def released(self) -> bool:
        return self.link_count == 0

    def __len__(self) -> int:
        return len(self.data)


class Node(ABC):
    """Base class for all file system nodes.

    Attributes:
        name: Name of this node within its parent ("" for the root)
        inode: Integer identity, shared between hard-link aliases
        parent: Parent directory node (None for root or detached nodes)
        node_type: Type of node (directory, file, symlink)
        created: Creation time
        modified: Last content or name change
        destroyed: True once the node has been torn down
    """

    def __init__(
        self,
        name: str,
        inode: int,
        parent: Optional['DirectoryNode'] = None,
        node_type: NodeType = NodeType.FILE,
        permissions: int = DEFAULT_FILE_MODE,
    ):
        """Initialize a node.

        Args:
            name: Name of this node
            inode: Inode number
            parent: Parent directory (None for root)
            node_type: Type of node
            permissions: rwx mask (0-7)
        """
        self.name = name
        self.inode = inode
        self.parent = parent
        self.node_type = node_type
        self._permissions = validate_mode(int(permissions))
        self.created = datetime.now()
        self.modified = self.created
        self.destroyed = False

    @property
    def permissions(self) -> int:
        return self._permissions

    @permissions.setter
    def permissions(self, mode: int) -> None:
        self._permissions = validate_mode(mode)

    @property
    def link_count(self) -> int:
        return 1

    @property
    def size(self) -> int:
        return 0

    @property
    def mode_string(self) -> str:
        return format_mode(self.node_type, self.permissions)

    def allows(self, permission: Permission) -> bool:
        """Check whether every bit of `permission` is set on this node."""
        return (self.permissions & permission) == permission

    def mark_modified(self) -> None:
        self.modified = datetime.now()

    def is_ancestor_of(self, other: 'Node') -> bool:
        """True if `other` lives somewhere below this node."""
        node = other.parent
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def get_path(self) -> str:
        """Get absolute path to this node.

        Returns:
            Path like /docs/notes
        """
        if self.parent is None:
            return "/"

        parts = []
        node = self
        while node.parent is not None:
            parts.append(node.name)
            node = node.parent

        return "/" + "/".join(reversed(parts))

    def get_info(self) -> Dict[str, Any]:
        """Get metadata about this node for display.

        Returns:
            Dict with keys like: inode, type, mode, links, size, modified
        """
        return {
            "type": self.node_type.value,
            "name": self.name,
            "path": self.get_path(),
            "inode": self.inode,
            "mode": self.mode_string,
            "permissions": self.permissions,
            "links": self.link_count,
            "size": self.size,
            "created": self.created,
            "modified": self.modified,
        }

    @abstractmethod
    def is_directory(self) -> bool:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', inode={self.inode}, path='{self.get_path()}')"


class DirectoryNode(Node):
    """A directory node that can contain children.

    Children are kept in an unordered list; callers must not rely on
    their order. Sibling names are unique, which EntryStore enforces.
    """

    def __init__(
        self,
        name: str,
        inode: int,
        parent: Optional['DirectoryNode'] = None,
        permissions: int = DEFAULT_DIR_MODE,
    ):
        super().__init__(name, inode, parent, NodeType.DIRECTORY, permissions)
        self._children: List[Node] = []

    def is_directory(self) -> bool:
        return True

    def list_children(self) -> List[Node]:
        """List all children of this directory.

        Returns:
            Copy of the child list (order unspecified)
        """
        return list(self._children)

    def get_child(self, name: str) -> Optional[Node]:
        """Get a child node by name (linear scan).

        Args:
            name: Name of child node

        Returns:
            Child node or None if not found
        """
        for child in self._children:
            if child.name == name:
                return child
        return None

    def insert(self, node: Node) -> None:
        """Attach a node as a child of this directory."""
        node.parent = self
        self._children.insert(0, node)

    def remove(self, node: Node) -> None:
        """Detach a child by identity, not by name.

        Raises:
            NotFoundError: If the node is not a child of this directory
        """
        for index, child in enumerate(self._children):
            if child is node:
                del self._children[index]
                node.parent = None
                return
        raise NotFoundError(node.name)

    def is_empty(self) -> bool:
        return not self._children

    def __len__(self) -> int:
        return len(self._children)

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["children_count"] = len(self._children)
        return info


class FileNode(Node):
    """A regular file.

    The bytes live in a ContentBuffer that hard-link aliases share, so a
    write through one alias is visible through all of them.
    """

    def __init__(
        self,
        name: str,
        inode: int,
        parent: Optional[DirectoryNode] = None,
        permissions: int = DEFAULT_FILE_MODE,
        content: Optional[ContentBuffer] = None,
    ):
        super().__init__(name, inode, parent, NodeType.FILE, permissions)
        self.content = content if content is not None else ContentBuffer()

    def is_directory(self) -> bool:
        return False

    @property
    def link_count(self) -> int:
        return self.content.link_count

    @property
    def size(self) -> int:
        return len(self.content)

    def read_content(self) -> bytes:
        """Return a copy of the file's bytes."""
        return bytes(self.content.data)

    def read_at(self, offset: int, count: int) -> bytes:
        return bytes(self.content.data[offset:offset + count])

    def write_at(self, offset: int, data: bytes) -> int:
        """Overwrite bytes at `offset`, growing and zero-filling as needed.

        Returns:
            Number of bytes written
        """
        buf = self.content.data
        if offset > len(buf):
            buf.extend(b"\x00" * (offset - len(buf)))
        buf[offset:offset + len(data)] = data
        self.mark_modified()
        return len(data)


class SymlinkNode(Node):
    """A symbolic link pointing to another node by path.

    The target is never held as a live reference: it is looked up again
    on each access, so deleting and recreating the target is reflected.

    Attributes:
        target_path: Absolute path captured when the link was created
        health: Result of the most recent re-resolution
    """

    def __init__(
        self,
        name: str,
        inode: int,
        target_path: str,
        parent: Optional[DirectoryNode] = None,
    ):
        super().__init__(name, inode, parent, NodeType.SYMLINK, Permission.ALL)
        self.target_path = target_path
        self.health = LinkHealth.UNKNOWN

    @property
    def permissions(self) -> int:
        return int(Permission.ALL)

    @permissions.setter
    def permissions(self, mode: int) -> None:
        raise PermissionDeniedError(self.get_path(), "Cannot change permissions of a symbolic link")

    def is_directory(self) -> bool:
        return False

    @property
    def size(self) -> int:
        return len(self.target_path)

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["target"] = self.target_path
        info["health"] = self.health.value
        return info
