from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, BinaryIO, Callable

from dissect.tarfs.exceptions import FileNotFoundError, FilesystemError, NotADirectoryError
from dissect.tarfs.helpers import fsutil, hashutil

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)


class Filesystem:
    """Base class for read-only filesystems."""

    __type__: str = None
    """A short string identifying the type of filesystem."""

    def __init__(self, volume: BinaryIO | None = None) -> None:
        """The base initializer for the class.

        Args:
            volume: The file-like object the filesystem is read from.

        Raises:
            NotImplementedError: When the internal ``__type__`` of the class is not defined.
        """
        self.volume = volume

        if self.__type__ is None:
            raise NotImplementedError(f"{self.__class__.__name__} must define __type__")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"

    @classmethod
    def detect(cls, fh: BinaryIO) -> bool:
        """Detect whether the ``fh`` file-handle is supported by this ``Filesystem`` implementation.

        The position of ``fh`` will be restored before returning.

        Args:
            fh: A file-like object.

        Returns:
            ``True`` if ``fh`` is supported, ``False`` otherwise.
        """
        offset = fh.tell()
        try:
            fh.seek(0)
            return cls._detect(fh)
        except NotImplementedError:
            raise
        except Exception as e:
            log.warning("Failed to detect %s filesystem", cls.__type__)
            log.debug("", exc_info=e)
        finally:
            fh.seek(offset)

        return False

    @staticmethod
    def _detect(fh: BinaryIO) -> bool:
        """Detect whether the ``fh`` file-handle is supported by this ``Filesystem`` implementation.

        This method should be implemented by subclasses. The position of ``fh`` is guaranteed to be ``0``.
        """
        raise NotImplementedError

    def get(self, path: str) -> FilesystemEntry:
        """Retrieve a :class:`FilesystemEntry` from the filesystem.

        Args:
            path: The path which we want to retrieve.

        Returns:
            A :class:`FilesystemEntry` for the path.
        """
        raise NotImplementedError

    def sub(self, path: str) -> Filesystem:
        """Return a new filesystem view rooted at the directory ``path``."""
        raise NotImplementedError

    def open(self, path: str) -> BinaryIO:
        """Open a filesystem entry.

        Args:
            path: The location on the filesystem to open.

        Returns:
            A new file-like object, positioned at the start of the file.
        """
        return self.get(path).open()

    def read_bytes(self, path: str) -> bytes:
        """Return the complete contents of the file ``path``."""
        return self.get(path).read_bytes()

    def iterdir(self, path: str) -> Iterator[str]:
        """Iterate over the contents of a directory, return them as strings.

        Args:
            path: The location on the filesystem to iterate over.

        Returns:
            An iterator of directory entries as path strings.
        """
        return self.get(path).iterdir()

    def scandir(self, path: str) -> Iterator[FilesystemEntry]:
        """Iterate over the contents of a directory, return them as FilesystemEntry's.

        Args:
            path: The directory to scan.

        Returns:
            An iterator of directory entries as FilesystemEntry's.
        """
        return self.get(path).scandir()

    def listdir(self, path: str) -> list[str]:
        """List the contents of a directory as strings."""
        return list(self.iterdir(path))

    def listdir_ext(self, path: str) -> list[FilesystemEntry]:
        """List the contents of a directory as FilesystemEntry's."""
        return list(self.scandir(path))

    def walk(
        self,
        path: str,
        topdown: bool = True,
        onerror: Callable[[Exception], None] | None = None,
    ) -> Iterator[tuple[str, list[str], list[str]]]:
        """Recursively walk a directory pointed to by ``path``, returning the string representation of both files
        and directories.

        Args:
            path: The path to walk on the filesystem.
            topdown: ``True`` puts the ``path`` at the top, ``False`` puts the ``path`` at the bottom.
            onerror: A method to execute when an error occurs.

        Returns:
            An iterator of directory entries as path strings.
        """
        return self.get(path).walk(topdown, onerror)

    def walk_ext(
        self,
        path: str,
        topdown: bool = True,
        onerror: Callable[[Exception], None] | None = None,
    ) -> Iterator[tuple[list[FilesystemEntry], list[FilesystemEntry], list[FilesystemEntry]]]:
        """Recursively walk a directory pointed to by ``path``, returning :class:`FilesystemEntry` of files
        and directories.
        """
        return self.get(path).walk_ext(topdown, onerror)

    def recurse(self, path: str) -> Iterator[FilesystemEntry]:
        """Recursively walk a directory and yield contents as :class:`FilesystemEntry`."""
        return self.get(path).recurse()

    def exists(self, path: str) -> bool:
        """Determines whether ``path`` exists on a filesystem.

        Args:
            path: a path on the filesystem.

        Returns:
            ``True`` if the given path exists, ``False`` otherwise.
        """
        try:
            self.get(path)
        except FilesystemError:
            return False
        else:
            return True

    def is_file(self, path: str) -> bool:
        """Determine if ``path`` is a file on the filesystem."""
        try:
            return self.get(path).is_file()
        except (FileNotFoundError, NotADirectoryError):
            return False

    def is_dir(self, path: str) -> bool:
        """Determine whether the given ``path`` is a directory on the filesystem."""
        try:
            return self.get(path).is_dir()
        except (FileNotFoundError, NotADirectoryError):
            return False

    def is_symlink(self, path: str) -> bool:
        """Determine wether the given ``path`` is a symlink on the filesystem."""
        try:
            return self.get(path).is_symlink()
        except (FileNotFoundError, NotADirectoryError):
            return False

    def stat(self, path: str) -> fsutil.stat_result:
        """Determine the stat information of a ``path`` on the filesystem.

        Args:
            path: The filesystem path we want the stat information from.

        Returns:
            The stat information of the given path.
        """
        return self.get(path).stat()

    def lstat(self, path: str) -> fsutil.stat_result:
        """Determine the stat information of a ``path`` on the filesystem, **without** resolving symlinks."""
        return self.get(path).lstat()

    def md5(self, path: str) -> str:
        """Calculate the MD5 digest of the contents of the file ``path`` points to."""
        return self.get(path).md5()

    def sha1(self, path: str) -> str:
        """Calculate the SHA1 digest of the contents of the file ``path`` points to."""
        return self.get(path).sha1()

    def sha256(self, path: str) -> str:
        """Calculate the SHA256 digest of the contents of the file ``path`` points to."""
        return self.get(path).sha256()

    def hash(self, path: str, algos: list[str] | list[Callable] | None = None) -> tuple[str]:
        """Calculate the digest of the contents of ``path``, using the ``algos`` algorithms.

        Args:
            path: The filesystem path to get the digest from.
            algos: The types of hashes to calculate. If ``None`` it will use the common set of algorithms defined in
                        :py:data:`dissect.tarfs.helpers.hashutil.COMMON` as ``[MD5, SHA1, SHA256]``.

        Returns:
            The digests of the contents of ``path``.
        """
        return self.get(path).hash(algos)


class FilesystemEntry:
    """Base class for filesystem entries."""

    def __init__(self, fs: Filesystem, path: str, entry: Any):
        """Initialize the base filesystem entry class.

        Args:
            fs: The filesystem to get data from.
            path: The path of the entry, relative to the root of ``fs``.
            entry: The raw entry backing this filesystem entry.
        """
        self.fs = fs
        self.path = path
        self.name = fsutil.basename(path)
        self.entry = entry

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.path!r}>"

    def __str__(self) -> str:
        return str(self.path)

    def get(self, path: str) -> FilesystemEntry:
        """Retrieve a :class:`FilesystemEntry` relative to this entry."""
        raise NotImplementedError

    def open(self) -> BinaryIO:
        """Open this filesystem entry."""
        raise NotImplementedError

    def read_bytes(self) -> bytes:
        """Read the complete contents of this entry."""
        with self.open() as fh:
            return fh.read()

    def iterdir(self) -> Iterator[str]:
        """Iterate over the contents of a directory, return them as strings."""
        raise NotImplementedError

    def scandir(self) -> Iterator[FilesystemEntry]:
        """Iterate over the contents of a directory, yields :class:`FilesystemEntry`."""
        raise NotImplementedError

    def listdir(self) -> list[str]:
        """List the contents of a directory as strings."""
        return list(self.iterdir())

    def listdir_ext(self) -> list[FilesystemEntry]:
        """List the contents of a directory as a list of :class:`FilesystemEntry`."""
        return list(self.scandir())

    def walk(
        self,
        topdown: bool = True,
        onerror: Callable[[Exception], None] | None = None,
    ) -> Iterator[tuple[str, list[str], list[str]]]:
        """Recursively walk a directory and yield its contents as strings split in a tuple of lists of
        directories and files.
        """
        yield from fsutil.walk(self, topdown, onerror)

    def walk_ext(
        self,
        topdown: bool = True,
        onerror: Callable[[Exception], None] | None = None,
    ) -> Iterator[tuple[list[FilesystemEntry], list[FilesystemEntry], list[FilesystemEntry]]]:
        """Recursively walk a directory and yield its contents as :class:`FilesystemEntry` split in a tuple of
        lists of directories and files.
        """
        yield from fsutil.walk_ext(self, topdown, onerror)

    def recurse(self) -> Iterator[FilesystemEntry]:
        """Recursively walk a directory and yield its contents as :class:`FilesystemEntry`."""
        yield from fsutil.recurse(self)

    def exists(self, path: str) -> bool:
        """Determines whether a ``path``, relative to this entry, exists."""
        try:
            self.get(path)
        except FilesystemError:
            return False
        else:
            return True

    def is_file(self) -> bool:
        """Determine if this entry is a file."""
        raise NotImplementedError

    def is_dir(self) -> bool:
        """Determine if this entry is a directory."""
        raise NotImplementedError

    def is_symlink(self) -> bool:
        """Determine whether this entry is a symlink."""
        raise NotImplementedError

    def readlink(self) -> str:
        """Read the link where this entry points to, return the resulting path as string."""
        raise NotImplementedError

    def stat(self) -> fsutil.stat_result:
        """Determine the stat information of this entry."""
        raise NotImplementedError

    def lstat(self) -> fsutil.stat_result:
        """Determine the stat information of this entry, **without** resolving the symlinks."""
        raise NotImplementedError

    def md5(self) -> str:
        """Calculates the MD5 digest of this entry."""
        with self.open() as fh:
            return hashutil.md5(fh)

    def sha1(self) -> str:
        """Calculates the SHA1 digest of this entry."""
        with self.open() as fh:
            return hashutil.sha1(fh)

    def sha256(self) -> str:
        """Calculates the SHA256 digest of this entry."""
        with self.open() as fh:
            return hashutil.sha256(fh)

    def hash(self, algos: list[str] | list[Callable] | None = None) -> tuple[str]:
        """Calculate the digest of this entry.

        Args:
            algos: The types of hashes to calculate. If ``None`` it will use the common set of algorithms defined in
                        :py:data:`dissect.tarfs.helpers.hashutil.COMMON` as ``[MD5, SHA1, SHA256]``.

        Returns:
            The various digests of this entry.
        """
        with self.open() as fh:
            if algos:
                return hashutil.digest(fh, algos)
            return hashutil.common(fh)
