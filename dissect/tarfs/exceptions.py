from __future__ import annotations

import builtins
import traceback


class Error(Exception):
    """Generic dissect.tarfs error"""

    def __init__(self, message: str | None = None, cause: Exception | None = None, extra: list | None = None):
        if extra:
            exceptions = "\n\n".join(["".join(traceback.format_exception_only(type(e), e)) for e in extra])
            message = f"{message}\n\nAdditionally, the following exceptions occurred:\n\n{exceptions}"

        super().__init__(message)
        self.__cause__ = cause
        self.__extra__ = extra


class FilesystemError(Error):
    """A filesystem error occurred."""


class NotSeekableError(FilesystemError):
    """The source does not support random access."""


class InvalidPathError(FilesystemError):
    """The path is absolute, escapes its root or is otherwise malformed."""


class ConflictError(FilesystemError):
    """The archive describes the same path in incompatible ways."""


class UnsupportedEntryError(FilesystemError):
    """The archive contains a member type that can not be represented."""


class FileNotFoundError(FilesystemError, builtins.FileNotFoundError):
    """The requested path could not be found."""


class IsADirectoryError(FilesystemError, builtins.IsADirectoryError):
    """The entry is a directory."""


class NotADirectoryError(FilesystemError, builtins.NotADirectoryError):
    """The entry is not a directory."""


class NotASymlinkError(FilesystemError):
    """The entry is not a symlink."""


class SymlinkRecursionError(FilesystemError):
    """A symlink loop is detected for the entry."""
