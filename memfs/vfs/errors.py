"""Errors raised by the in-memory file system.

Every error carries an ErrorKind tag so the command interface can report
failures uniformly. Nothing here is fatal: callers report the error and
the session continues.
"""

from enum import Enum
from typing import Optional, Union


class ErrorKind(Enum):
    """Tag identifying the category of a file system failure."""
    NOT_FOUND = "not_found"
    NAME_CONFLICT = "name_conflict"
    NOT_A_DIRECTORY = "not_a_directory"
    IS_A_DIRECTORY = "is_a_directory"
    DIRECTORY_NOT_EMPTY = "directory_not_empty"
    PERMISSION_DENIED = "permission_denied"
    INVALID_DESCRIPTOR = "invalid_descriptor"
    INVALID_OFFSET = "invalid_offset"
    DANGLING_LINK = "dangling_link"
    ROOT_REMOVAL_REJECTED = "root_removal_rejected"
    INVALID_ARGUMENT = "invalid_argument"


class FSError(Exception):
    """Base class for file system errors.

    Attributes:
        kind: Category of the failure
        path: Path (or descriptor) the failure refers to, if any
        message: Human-readable description without the path
    """

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT
    default_message = "Invalid argument"

    def __init__(self, path: Optional[Union[str, int]] = None, message: Optional[str] = None):
        self.path = path
        self.message = message or self.default_message
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.path is None or self.path == "":
            return self.message
        return f"{self.message}: {self.path}"


class NotFoundError(FSError):
    """Path does not resolve."""
    kind = ErrorKind.NOT_FOUND
    default_message = "No such file or directory"


class NameConflictError(FSError):
    """Target name already exists in the directory."""
    kind = ErrorKind.NAME_CONFLICT
    default_message = "File exists"


class NotADirectoryError(FSError):
    """Operation requires a directory."""
    kind = ErrorKind.NOT_A_DIRECTORY
    default_message = "Not a directory"


class IsADirectoryError(FSError):
    """Operation requires something other than a directory."""
    kind = ErrorKind.IS_A_DIRECTORY
    default_message = "Is a directory"


class DirectoryNotEmptyError(FSError):
    """Attempted to remove a populated directory."""
    kind = ErrorKind.DIRECTORY_NOT_EMPTY
    default_message = "Directory not empty"


class PermissionDeniedError(FSError):
    """Requested access exceeds the entry's permission mask."""
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Permission denied"


class InvalidDescriptorError(FSError):
    """Unknown, closed, or wrongly-moded file descriptor."""
    kind = ErrorKind.INVALID_DESCRIPTOR
    default_message = "Bad file descriptor"


class InvalidOffsetError(FSError):
    """Seek target outside [0, size]."""
    kind = ErrorKind.INVALID_OFFSET
    default_message = "Invalid offset"


class DanglingLinkError(FSError):
    """Symbolic link target no longer resolves."""
    kind = ErrorKind.DANGLING_LINK
    default_message = "Dangling symbolic link"


class RootRemovalError(FSError):
    """Attempted to remove or move the root directory."""
    kind = ErrorKind.ROOT_REMOVAL_REJECTED
    default_message = "Cannot remove the root directory"


class InvalidArgumentError(FSError):
    """Malformed name, mode, count or move target."""
    kind = ErrorKind.INVALID_ARGUMENT
