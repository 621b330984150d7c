"""Open file descriptor table.

Each descriptor moves through Closed -> Open(mode, offset) -> Closed.
The table keeps a non-owning reference to the file node; closing a
descriptor never affects the node's lifetime.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from memfs.vfs.base import FileNode, Permission
from memfs.vfs.errors import (
    InvalidArgumentError,
    InvalidDescriptorError,
    InvalidOffsetError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

FIRST_DESCRIPTOR = 3


class OpenMode(Enum):
    """File open modes."""
    READ = "r"
    WRITE = "w"
    READ_WRITE = "rw"

    @classmethod
    def parse(cls, value: str) -> "OpenMode":
        """Accept r, w, rw (or r+/wr) case-insensitively."""
        aliases = {"r+": "rw", "wr": "rw", "w+": "rw"}
        text = value.strip().lower()
        try:
            return cls(aliases.get(text, text))
        except ValueError:
            raise InvalidArgumentError(value, "Invalid open mode (expected r, w or rw)")

    @property
    def readable(self) -> bool:
        return self in (OpenMode.READ, OpenMode.READ_WRITE)

    @property
    def writable(self) -> bool:
        return self in (OpenMode.WRITE, OpenMode.READ_WRITE)


@dataclass
class FileHandle:
    """A handle to an open file."""
    fd: int
    node: FileNode
    path: str
    mode: OpenMode
    offset: int = 0

    def can_read(self) -> bool:
        return self.mode.readable

    def can_write(self) -> bool:
        return self.mode.writable


class OpenFileTable:
    """Allocates descriptors and performs positional I/O on file nodes."""

    def __init__(self, first_descriptor: int = FIRST_DESCRIPTOR):
        """Initialize an empty table.

        Args:
            first_descriptor: First number handed out (0-2 are reserved)
        """
        self.first_descriptor = max(first_descriptor, FIRST_DESCRIPTOR)
        self._next_fd = self.first_descriptor
        self._open_files: Dict[int, FileHandle] = {}

    def reset(self) -> None:
        """Forget every descriptor and restart numbering."""
        self._open_files.clear()
        self._next_fd = self.first_descriptor

    def open(self, node: FileNode, path: str, mode: OpenMode) -> int:
        """Open a resolved file node.

        Args:
            node: Regular file to open
            path: Path used to reach it (for messages and listings)
            mode: Requested access

        Returns:
            New file descriptor

        Raises:
            PermissionDeniedError: If the mode exceeds the node's mask
        """
        if mode.readable and not node.allows(Permission.READ):
            raise PermissionDeniedError(path, "Permission denied (read)")
        if mode.writable and not node.allows(Permission.WRITE):
            raise PermissionDeniedError(path, "Permission denied (write)")

        fd = self._next_fd
        self._next_fd += 1
        self._open_files[fd] = FileHandle(fd=fd, node=node, path=path, mode=mode)
        logger.debug(f"Opened {path} as fd {fd} ({mode.value})")
        return fd

    def get(self, fd: int) -> FileHandle:
        """Look up an open descriptor.

        Raises:
            InvalidDescriptorError: If fd is unknown or closed
        """
        handle = self._open_files.get(fd)
        if handle is None:
            raise InvalidDescriptorError(fd)
        return handle

    def read(self, fd: int, count: Optional[int] = None) -> bytes:
        """Read up to `count` bytes from the current offset.

        Returns an empty result at end of content.

        Raises:
            InvalidDescriptorError: Unknown fd or not opened for reading
        """
        handle = self._live(fd)
        if not handle.can_read():
            raise InvalidDescriptorError(fd, "Descriptor not open for reading")
        if count is not None and count < 0:
            raise InvalidArgumentError(count, "Negative read count")

        remaining = max(handle.node.size - handle.offset, 0)
        if count is None or count > remaining:
            count = remaining
        data = handle.node.read_at(handle.offset, count)
        handle.offset += len(data)
        return data

    def write(self, fd: int, data: bytes) -> int:
        """Write at the current offset, overwriting and growing the file.

        Raises:
            InvalidDescriptorError: Unknown fd or not opened for writing
            PermissionDeniedError: If the file lost its write bit
        """
        handle = self._live(fd)
        if not handle.can_write():
            raise InvalidDescriptorError(fd, "Descriptor not open for writing")
        if not handle.node.allows(Permission.WRITE):
            raise PermissionDeniedError(handle.path, "Permission denied (write)")

        written = handle.node.write_at(handle.offset, bytes(data))
        handle.offset += written
        return written

    def seek(self, fd: int, offset: int) -> int:
        """Move a descriptor's offset within [0, size].

        Raises:
            InvalidOffsetError: If offset is negative or past the end
        """
        handle = self._live(fd)
        if offset < 0 or offset > handle.node.size:
            raise InvalidOffsetError(offset, f"Offset outside [0, {handle.node.size}]")
        handle.offset = offset
        return offset

    def close(self, fd: int) -> None:
        """Close a descriptor.

        Raises:
            InvalidDescriptorError: If fd is unknown
        """
        handle = self._open_files.pop(fd, None)
        if handle is None:
            raise InvalidDescriptorError(fd)
        logger.debug(f"Closed fd {fd} ({handle.path})")

    def descriptors(self) -> List[FileHandle]:
        """List open descriptors in allocation order."""
        return [self._open_files[fd] for fd in sorted(self._open_files)]

    def __len__(self) -> int:
        return len(self._open_files)

    def __contains__(self, fd: int) -> bool:
        return fd in self._open_files

    def _live(self, fd: int) -> FileHandle:
        handle = self.get(fd)
        if handle.node.content.released:
            raise InvalidDescriptorError(fd, "File was removed")
        return handle
