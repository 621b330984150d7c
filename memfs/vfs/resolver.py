"""Path resolution for the in-memory file system.

Handles path parsing and navigation (cd, ls semantics) and the lazy
re-resolution of symbolic links.
"""

import logging
from typing import List, NamedTuple, Optional, Tuple

from memfs.vfs.base import DirectoryNode, LinkHealth, Node, SymlinkNode
from memfs.vfs.errors import (
    DanglingLinkError,
    InvalidArgumentError,
    NotADirectoryError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_SYMLINK_DEPTH = 8


class Resolution(NamedTuple):
    """Outcome of walking a path.

    Attributes:
        node: Resolved node, or None if a component was missing
        parent: Directory holding `node`; on failure, the deepest
            directory that was reached
        missing: First component that could not be found
    """
    node: Optional[Node]
    parent: Optional[DirectoryNode]
    missing: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.node is not None


class PathResolver:
    """Resolves paths and handles navigation.

    This class provides the core navigation logic for cd, ls, etc.
    It handles:
    - Absolute paths: /docs/notes
    - Relative paths: ../other, ./files
    - Special paths: ., ..
    - Symlink resolution (always by path, never by cached reference)
    """

    def __init__(self, root: DirectoryNode, max_symlink_depth: int = DEFAULT_MAX_SYMLINK_DEPTH):
        """Initialize path resolver.

        Args:
            root: Root node of the file system
            max_symlink_depth: Longest chain of links followed before
                giving up
        """
        self.root = root
        self.max_symlink_depth = max_symlink_depth

    def resolve(
        self,
        path: str,
        current: DirectoryNode,
        follow_symlinks: bool = False,
        _depth: int = 0,
    ) -> Resolution:
        """Resolve a path to a node.

        Intermediate components that are symbolic links are always
        followed; the final component only when `follow_symlinks` is set.

        Args:
            path: Path to resolve (absolute or relative)
            current: Current working directory
            follow_symlinks: Whether to follow a link in the final component

        Returns:
            Resolution with the node, or with node=None and the deepest
            directory reached

        Raises:
            NotADirectoryError: If a non-final component is a file
            DanglingLinkError: If a link that had to be followed is dead
        """
        node: Node = self.root if path.startswith("/") else current

        for part in self.parse_path(path):
            if isinstance(node, SymlinkNode):
                node = self.follow(node, _depth)
            if not isinstance(node, DirectoryNode):
                raise NotADirectoryError(node.get_path())

            if part == "..":
                # Stay at root if already at root
                if node.parent is not None:
                    node = node.parent
                continue

            child = node.get_child(part)
            if child is None:
                return Resolution(None, node, part)
            node = child

        if follow_symlinks and isinstance(node, SymlinkNode):
            node = self.follow(node, _depth)

        return Resolution(node, node.parent)

    def lookup(self, path: str, current: DirectoryNode, follow_symlinks: bool = False) -> Node:
        """Resolve a path, raising if it does not exist.

        Raises:
            NotFoundError: If the path does not resolve
        """
        result = self.resolve(path, current, follow_symlinks=follow_symlinks)
        if not result.found:
            raise NotFoundError(path)
        return result.node

    def resolve_directory(self, path: str, current: DirectoryNode) -> DirectoryNode:
        """Resolve a path to a directory node, following links.

        Raises:
            NotFoundError: If the path does not resolve
            NotADirectoryError: If it resolves to something else
        """
        node = self.lookup(path, current, follow_symlinks=True)
        if not isinstance(node, DirectoryNode):
            raise NotADirectoryError(path)
        return node

    def follow(self, link: SymlinkNode, _depth: int = 0) -> Node:
        """Re-resolve a symbolic link's target path.

        Updates the link's health: ALIVE when the target resolves,
        DEAD otherwise. The link itself is never removed here.

        Raises:
            DanglingLinkError: If the target does not resolve or the
                chain of links is too long
        """
        if _depth >= self.max_symlink_depth:
            self._mark(link, LinkHealth.DEAD)
            raise DanglingLinkError(link.get_path(), "Too many levels of symbolic links")

        try:
            result = self.resolve(link.target_path, self.root, follow_symlinks=True, _depth=_depth + 1)
        except DanglingLinkError:
            self._mark(link, LinkHealth.DEAD)
            raise
        except NotADirectoryError as e:
            self._mark(link, LinkHealth.DEAD)
            raise DanglingLinkError(link.get_path()) from e

        if not result.found:
            self._mark(link, LinkHealth.DEAD)
            raise DanglingLinkError(link.get_path())

        self._mark(link, LinkHealth.ALIVE)
        return result.node

    def split(self, path: str, current: DirectoryNode) -> Tuple[DirectoryNode, str]:
        """Split a path into its containing directory and final name.

        A path without a slash names an entry in the current directory.

        Returns:
            (directory node, final component)
        """
        stripped = path.rstrip("/")
        if not stripped:
            raise InvalidArgumentError(path, "Path has no final component")

        if "/" in stripped:
            dir_part, name = stripped.rsplit("/", 1)
            dir_part = dir_part or "/"
        else:
            dir_part, name = ".", stripped

        return self.resolve_directory(dir_part, current), name

    def complete_path(
        self,
        partial: str,
        current: DirectoryNode,
    ) -> List[str]:
        """Get completion candidates for a partial path.

        Used for tab completion.

        Args:
            partial: Partial path to complete
            current: Current working directory

        Returns:
            List of completion candidates
        """
        # Split into directory part and filename part
        if "/" in partial:
            dir_part, file_part = partial.rsplit("/", 1)
            if partial.startswith("/"):
                dir_part = dir_part or "/"
        else:
            dir_part = ""
            file_part = partial

        try:
            dir_node = self.resolve_directory(dir_part, current) if dir_part else current
        except (NotFoundError, NotADirectoryError, DanglingLinkError):
            return []

        candidates = []
        for child in sorted(dir_node.list_children(), key=lambda c: c.name):
            if not child.name.startswith(file_part):
                continue
            if dir_part:
                prefix = dir_part if dir_part.endswith("/") else dir_part + "/"
                candidate = prefix + child.name
            else:
                candidate = child.name

            # Add trailing slash for directories
            if isinstance(child, DirectoryNode):
                candidate += "/"
            candidates.append(candidate)

        return candidates

    def parse_path(self, path: str) -> List[str]:
        """Split a slash-delimited path, dropping empty and "." parts."""
        return [part for part in path.split("/") if part and part != "."]

    @staticmethod
    def _mark(link: SymlinkNode, health: LinkHealth) -> None:
        if link.health is not health:
            logger.debug(f"Symbolic link {link.get_path()} is now {health.value}")
        link.health = health
