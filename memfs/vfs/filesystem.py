"""Main MemoryFS class - entry point for file system access."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from memfs.config import FSConfig
from memfs.vfs.base import (
    DirectoryNode,
    FileNode,
    Node,
    NodeType,
    Permission,
    SymlinkNode,
    validate_mode,
)
from memfs.vfs.descriptors import FileHandle, OpenFileTable, OpenMode
from memfs.vfs.errors import (
    DanglingLinkError,
    DirectoryNotEmptyError,
    InvalidArgumentError,
    IsADirectoryError,
    NameConflictError,
    NotADirectoryError,
    PermissionDeniedError,
    RootRemovalError,
)
from memfs.vfs.links import LinkManager
from memfs.vfs.resolver import PathResolver
from memfs.vfs.store import EntryStore, validate_name

logger = logging.getLogger(__name__)


@dataclass
class FsckReport:
    """Result of a consistency check over the whole tree."""
    files: int = 0
    directories: int = 0
    symlinks: int = 0
    dangling_links: int = 0
    problems: List[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.problems

    @property
    def total(self) -> int:
        return self.files + self.directories + self.symlinks


class MemoryFS:
    """An in-memory file system session.

    This is the main entry point. It owns the tree, the current
    directory and the open-file table; every operation goes through it.

    Usage:
        >>> fs = MemoryFS()
        >>> fs.mkdir("docs")
        >>> fs.cd("docs")
        >>> fs.touch("notes")
        >>> fs.write_file("notes", b"hello")
        >>> fs.cat("notes")
        b'hello'
        >>> fs.pwd()
        '/docs'
    """

    def __init__(self, config: Optional[FSConfig] = None):
        """Initialize and format a new file system.

        Args:
            config: Defaults for modes, descriptors and link depth
        """
        self.config = config or FSConfig()
        self.store = EntryStore(
            default_file_mode=self.config.default_file_mode,
            default_dir_mode=self.config.default_dir_mode,
        )
        self.files = OpenFileTable(first_descriptor=self.config.first_descriptor)
        self.format()

    def format(self) -> None:
        """Reset to a single empty root and close every descriptor."""
        self.root = self.store.create_root()
        self.current = self.root  # Current working directory
        self.resolver = PathResolver(self.root, max_symlink_depth=self.config.max_symlink_depth)
        self.links = LinkManager(self.store, self.resolver)
        self.files.reset()
        logger.info("Formatted file system")

    # Navigation

    def pwd(self) -> str:
        """Get current working directory path."""
        return self.current.get_path()

    def cd(self, path: str = "/") -> DirectoryNode:
        """Change current directory, following symbolic links.

        The tree is never modified; on failure the current directory is
        left unchanged.

        Raises:
            NotFoundError, NotADirectoryError, DanglingLinkError
        """
        node = self.resolver.lookup(path or "/", self.current, follow_symlinks=True)
        if not isinstance(node, DirectoryNode):
            raise NotADirectoryError(path)
        self.current = node
        return node

    def get_node(self, path: str, follow_symlinks: bool = False) -> Node:
        """Resolve a path to a node, raising NotFoundError if missing."""
        return self.resolver.lookup(path, self.current, follow_symlinks=follow_symlinks)

    def complete(self, partial: str) -> List[str]:
        """Get tab completion candidates for a partial path."""
        return self.resolver.complete_path(partial, self.current)

    # Creation

    def touch(self, path: str) -> FileNode:
        """Create an empty regular file.

        Raises:
            NameConflictError: If the name already exists
        """
        directory, name = self.resolver.split(path, self.current)
        return self.store.create(NodeType.FILE, name, directory)

    def mkdir(self, path: str, parents: bool = False) -> DirectoryNode:
        """Create a directory.

        Args:
            path: Directory to create
            parents: Create missing intermediate directories, and accept
                an existing directory at `path`
        """
        if not parents:
            directory, name = self.resolver.split(path, self.current)
            return self.store.create(NodeType.DIRECTORY, name, directory)

        # Walk the existing prefix first; names past it are only queued so a
        # bad path fails before anything is created
        node: Node = self.root if path.startswith("/") else self.current
        missing: List[str] = []
        for part in self.resolver.parse_path(path):
            if missing:
                if part == "..":
                    missing.pop()
                else:
                    missing.append(validate_name(part))
                continue
            node = self._as_directory(node)
            if part == "..":
                node = node.parent or node
                continue
            child = node.get_child(part)
            if child is None:
                missing.append(validate_name(part))
            else:
                node = child

        if not missing:
            if isinstance(node, SymlinkNode):
                node = self.resolver.follow(node)
            if not isinstance(node, DirectoryNode):
                raise NameConflictError(path)
            return node

        node = self._as_directory(node)
        for name in missing:
            node = self.store.create(NodeType.DIRECTORY, name, node)
        return node

    def _as_directory(self, node: Node) -> DirectoryNode:
        if isinstance(node, SymlinkNode):
            node = self.resolver.follow(node)
        if not isinstance(node, DirectoryNode):
            raise NotADirectoryError(node.get_path())
        return node

    # Removal

    def rmdir(self, path: str) -> None:
        """Remove an empty directory.

        Raises:
            NotADirectoryError: If path is not a directory
            DirectoryNotEmptyError: If it still has children
            RootRemovalError: If path is the root
        """
        node = self.get_node(path)
        if not isinstance(node, DirectoryNode):
            raise NotADirectoryError(path)
        if node is self.root:
            raise RootRemovalError(path)
        if not node.is_empty():
            raise DirectoryNotEmptyError(path)
        self._detach(node)

    def rm(self, path: str, recursive: bool = False) -> int:
        """Remove a file, link or directory.

        A symbolic link is removed itself, never its target. Removing one
        hard-link alias only decrements the shared link count.

        Args:
            path: Entry to remove
            recursive: Also remove a populated directory's subtree

        Returns:
            Number of entries removed

        Raises:
            DirectoryNotEmptyError: For a populated directory without recursive
            RootRemovalError: If path is the root
        """
        node = self.get_node(path)
        if node is self.root:
            raise RootRemovalError(path)
        if isinstance(node, DirectoryNode) and not node.is_empty() and not recursive:
            raise DirectoryNotEmptyError(path)
        return self._detach(node, recursive=recursive)

    def mv(self, src: str, dest: str) -> Node:
        """Move or rename an entry.

        If `dest` names an existing directory (or ends with a slash) the
        entry moves into it under its current name; otherwise `dest` is
        split into a target directory and a new name. A bare name (no
        slash) is looked up in, and renames within, the source's own
        directory.

        Raises:
            NameConflictError: If the destination name is taken
            InvalidArgumentError: If a directory would move into itself
            RootRemovalError: If src is the root
        """
        node = self.get_node(src)
        if node is self.root:
            raise RootRemovalError(src, "Cannot move the root directory")

        if dest.endswith("/"):
            directory = self.resolver.resolve_directory(dest, self.current)
            name = node.name
        elif "/" not in dest:
            existing = node.parent.get_child(dest)
            if isinstance(existing, DirectoryNode):
                directory, name = existing, node.name
            else:
                directory, name = node.parent, dest
        else:
            existing = self.resolver.resolve(dest, self.current).node
            if isinstance(existing, DirectoryNode):
                directory, name = existing, node.name
            else:
                directory, name = self.resolver.split(dest, self.current)
        validate_name(name)

        if directory is node or node.is_ancestor_of(directory):
            raise InvalidArgumentError(src, "Cannot move a directory into itself")

        clash = directory.get_child(name)
        if clash is node:
            return node
        if clash is not None:
            raise NameConflictError(clash.get_path())

        old_path = node.get_path()
        node.parent.remove(node)
        node.name = name
        directory.insert(node)
        node.mark_modified()
        logger.debug(f"Moved {old_path} -> {node.get_path()}")
        return node

    # Links

    def ln(self, src: str, dest: str, symbolic: bool = False) -> Node:
        """Create a hard link (default) or a symbolic link."""
        if symbolic:
            return self.links.symlink(src, dest, self.current)
        return self.links.hardlink(src, dest, self.current)

    # Content and metadata

    def ls(self, path: str = ".") -> List[Node]:
        """List a directory's children.

        A symbolic link to a directory lists the target's children; a
        file (or link to a file) lists just that entry.

        Raises:
            NotFoundError, DanglingLinkError
        """
        node = self.get_node(path)
        target = self.links.target_of(node)
        if isinstance(target, DirectoryNode):
            return target.list_children()
        return [node]

    def cat(self, path: str) -> bytes:
        """Read a file's whole content, following symbolic links.

        Raises:
            IsADirectoryError: If path is a directory
            PermissionDeniedError: If the read bit is not set
            DanglingLinkError: If a link's target is gone
        """
        node = self.get_node(path, follow_symlinks=True)
        if isinstance(node, DirectoryNode):
            raise IsADirectoryError(path)
        if not node.allows(Permission.READ):
            raise PermissionDeniedError(path)
        return node.read_content()

    def chmod(self, mode: int, path: str) -> Node:
        """Set an entry's permission mask.

        Permissions belong to the entry, so each hard-link alias keeps
        its own mask. Symbolic links are rejected.

        Raises:
            InvalidArgumentError: If mode is outside 0-7
            PermissionDeniedError: If path is a symbolic link
        """
        validate_mode(mode)
        node = self.get_node(path)
        if isinstance(node, SymlinkNode):
            raise PermissionDeniedError(path, "Cannot change permissions of a symbolic link")
        node.permissions = mode
        logger.debug(f"chmod {mode} {node.get_path()}")
        return node

    def stat(self, path: str) -> Dict[str, Any]:
        """Get an entry's metadata without following a final link."""
        return self.get_node(path).get_info()

    def tree(self, path: str = ".") -> DirectoryNode:
        """Resolve the directory a tree listing starts from."""
        node = self.get_node(path, follow_symlinks=True)
        if not isinstance(node, DirectoryNode):
            raise NotADirectoryError(path)
        return node

    def walk(self, path: str = ".") -> Iterator[Tuple[int, Node]]:
        """Yield (depth, node) pre-order, children sorted by name.

        Symbolic links are reported but not descended into.
        """
        yield from _walk(self.tree(path), 0)

    def fsck(self) -> FsckReport:
        """Count entries and check the tree's invariants.

        Checks sibling-name uniqueness, parent back-references, and that
        every hard-link group's link count matches the aliases present.
        Symbolic links are re-resolved, so their health is refreshed.
        """
        report = FsckReport()
        groups: Dict[int, List[FileNode]] = defaultdict(list)

        for _, node in _walk(self.root, 0):
            if isinstance(node, DirectoryNode):
                report.directories += 1
                seen = set()
                for child in node.list_children():
                    if child.name in seen:
                        report.problems.append(f"Duplicate name '{child.name}' in {node.get_path()}")
                    seen.add(child.name)
                    if child.parent is not node:
                        report.problems.append(f"Bad parent reference on {node.get_path()}/{child.name}")
            elif isinstance(node, FileNode):
                report.files += 1
                groups[node.inode].append(node)
            elif isinstance(node, SymlinkNode):
                report.symlinks += 1
                try:
                    self.resolver.follow(node)
                except DanglingLinkError:
                    report.dangling_links += 1

        for inode, aliases in groups.items():
            if len({id(alias.content) for alias in aliases}) > 1:
                report.problems.append(f"Inode {inode} is shared by unrelated contents")
            elif aliases[0].link_count != len(aliases):
                report.problems.append(
                    f"Inode {inode} has link count {aliases[0].link_count} "
                    f"but {len(aliases)} entries"
                )

        logger.debug(
            f"fsck: {report.files} files, {report.directories} directories, "
            f"{report.symlinks} links, {len(report.problems)} problems"
        )
        return report

    # Descriptors

    def open(self, path: str, mode: Union[OpenMode, str] = OpenMode.READ) -> int:
        """Open a file, following symbolic links.

        Raises:
            NotFoundError: If path does not resolve
            IsADirectoryError: If path is a directory
            PermissionDeniedError: If the mode is not allowed
        """
        if isinstance(mode, str):
            mode = OpenMode.parse(mode)
        node = self.get_node(path, follow_symlinks=True)
        if isinstance(node, DirectoryNode):
            raise IsADirectoryError(path)
        return self.files.open(node, path, mode)

    def read(self, fd: int, count: Optional[int] = None) -> bytes:
        return self.files.read(fd, count)

    def write(self, fd: int, data: bytes) -> int:
        return self.files.write(fd, data)

    def seek(self, fd: int, offset: int) -> int:
        return self.files.seek(fd, offset)

    def close(self, fd: int) -> None:
        self.files.close(fd)

    def descriptors(self) -> List[FileHandle]:
        return self.files.descriptors()

    def write_file(self, path: str, data: bytes) -> int:
        """Open for writing, write at offset 0, and close."""
        fd = self.open(path, OpenMode.WRITE)
        try:
            return self.files.write(fd, data)
        finally:
            self.files.close(fd)

    def _detach(self, node: Node, recursive: bool = False) -> int:
        """Unlink a node from its parent and destroy it."""
        parent = node.parent
        if parent is None:
            raise RootRemovalError(node.get_path())
        if node is self.current or node.is_ancestor_of(self.current):
            self.current = parent

        path = node.get_path()
        parent.remove(node)
        count = self.store.destroy(node, recursive=recursive)
        logger.debug(f"Removed {path} ({count} entries)")
        return count


def _walk(node: Node, depth: int) -> Iterator[Tuple[int, Node]]:
    stack = [(depth, node)]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        if isinstance(node, DirectoryNode):
            # Reversed so siblings pop in name order
            children = sorted(node.list_children(), key=lambda c: c.name, reverse=True)
            stack.extend((depth + 1, child) for child in children)
