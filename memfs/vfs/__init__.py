"""In-memory Unix-like file system.

The VFS keeps a single rooted tree of directories, regular files and
symbolic links entirely in memory, and exposes it through shell-style
operations (cd, ls, mkdir, ln, ...) on a MemoryFS session.

Architecture:

    ```
    MemoryFS                    # Session: tree, current directory, descriptors
    ├── EntryStore              # Creates, aliases and destroys nodes
    ├── PathResolver            # Walks paths, re-resolves symbolic links
    ├── LinkManager             # Hard links and symbolic links
    └── OpenFileTable           # Descriptor -> (file, offset, mode)
    ```

Node Types:

    - Node: Base class for all entries (name, inode, permissions, parent)
    - DirectoryNode: Holds an unordered list of uniquely named children
    - FileNode: Byte content in a ContentBuffer shared by hard-link aliases
    - SymlinkNode: Stores a target path, never a reference to the target

Link Health:

    A symbolic link starts UNKNOWN. Each time it is followed its target
    path is resolved again: ALIVE if the path leads somewhere, DEAD if
    not. Dead links stay in the tree and come back to life when an entry
    reappears at the target path.

Usage Example:

    ```python
    from memfs.vfs import MemoryFS

    fs = MemoryFS()
    fs.mkdir("docs")
    fs.cd("docs")
    fs.touch("notes")
    fs.write_file("notes", b"hello")
    fs.ln("notes", "/latest", symbolic=True)

    print(fs.cat("/latest"))        # b'hello'
    print(fs.pwd())                 # /docs
    ```
"""

from memfs.vfs.base import (
    ContentBuffer,
    Node,
    DirectoryNode,
    FileNode,
    SymlinkNode,
    NodeType,
    LinkHealth,
    Permission,
)
from memfs.vfs.errors import (
    ErrorKind,
    FSError,
    NotFoundError,
    NameConflictError,
    NotADirectoryError,
    IsADirectoryError,
    DirectoryNotEmptyError,
    PermissionDeniedError,
    InvalidDescriptorError,
    InvalidOffsetError,
    DanglingLinkError,
    RootRemovalError,
    InvalidArgumentError,
)
from memfs.vfs.store import EntryStore
from memfs.vfs.resolver import PathResolver, Resolution
from memfs.vfs.links import LinkManager
from memfs.vfs.descriptors import FileHandle, OpenFileTable, OpenMode
from memfs.vfs.filesystem import FsckReport, MemoryFS

__all__ = [
    # Main entry point
    "MemoryFS",
    "FsckReport",
    # Core classes
    "ContentBuffer",
    "Node",
    "DirectoryNode",
    "FileNode",
    "SymlinkNode",
    "NodeType",
    "LinkHealth",
    "Permission",
    # Components
    "EntryStore",
    "PathResolver",
    "Resolution",
    "LinkManager",
    "FileHandle",
    "OpenFileTable",
    "OpenMode",
    # Errors
    "ErrorKind",
    "FSError",
    "NotFoundError",
    "NameConflictError",
    "NotADirectoryError",
    "IsADirectoryError",
    "DirectoryNotEmptyError",
    "PermissionDeniedError",
    "InvalidDescriptorError",
    "InvalidOffsetError",
    "DanglingLinkError",
    "RootRemovalError",
    "InvalidArgumentError",
]
