from dissect.tarfs.exceptions import (
    ConflictError,
    Error,
    FileNotFoundError,
    FilesystemError,
    InvalidPathError,
    IsADirectoryError,
    NotADirectoryError,
    NotASymlinkError,
    NotSeekableError,
    SymlinkRecursionError,
    UnsupportedEntryError,
)
from dissect.tarfs.filesystems.tar import TarFilesystem, TarFilesystemEntry

__all__ = [
    "ConflictError",
    "Error",
    "FileNotFoundError",
    "FilesystemError",
    "InvalidPathError",
    "IsADirectoryError",
    "NotADirectoryError",
    "NotASymlinkError",
    "NotSeekableError",
    "SymlinkRecursionError",
    "TarFilesystem",
    "TarFilesystemEntry",
    "UnsupportedEntryError",
]
