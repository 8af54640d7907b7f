from __future__ import annotations

import stat
import tarfile
from typing import TYPE_CHECKING, BinaryIO

from dissect.tarfs.exceptions import (
    FileNotFoundError,
    IsADirectoryError,
    NotADirectoryError,
    NotASymlinkError,
)
from dissect.tarfs.filesystem import Filesystem, FilesystemEntry
from dissect.tarfs.helpers import fsutil
from dissect.tarfs.helpers.logging import get_logger
from dissect.tarfs.index import build_index
from dissect.tarfs.resolver import Node, resolve_tree
from dissect.tarfs.stream import Source, TarMemberStream

if TYPE_CHECKING:
    from collections.abc import Iterator

log = get_logger(__name__)


class TarFilesystem(Filesystem):
    """Read-only filesystem over an uncompressed tar archive.

    The archive is indexed and all symlinks are resolved while constructing the filesystem, any structural problem
    in the archive is raised from here and no filesystem is returned. Afterwards the filesystem never changes and
    can be used from multiple threads at once.

    Args:
        fh: A seekable file-like object containing the archive. The archive is expected to start at offset 0.

    Raises:
        NotSeekableError: If ``fh`` does not support random access.
        InvalidPathError: If a member name is absolute or contains ``..``.
        ConflictError: If the archive describes a path in incompatible ways.
        UnsupportedEntryError: If the archive contains members other than files, directories and symlinks.
        SymlinkRecursionError: If symlinks form a loop.
        NotADirectoryError: If a member is located below a file.
    """

    __type__ = "tar"

    def __init__(self, fh: BinaryIO):
        super().__init__(fh)

        self.source = Source(fh)
        self.root = resolve_tree(build_index(fh))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} root={self.root.path or '.'!r}>"

    @classmethod
    def _from_node(cls, source: Source, root: Node, volume: BinaryIO | None) -> TarFilesystem:
        fs = cls.__new__(cls)
        Filesystem.__init__(fs, volume)
        fs.source = source
        fs.root = root
        return fs

    @staticmethod
    def _detect(fh: BinaryIO) -> bool:
        """Detect a tar file on a given file-like object."""
        return tarfile.is_tarfile(fh)

    def get(self, path: str) -> TarFilesystemEntry:
        """Returns a :class:`TarFilesystemEntry` object corresponding to the given path."""
        return self.root_entry().get(path)

    def root_entry(self) -> TarFilesystemEntry:
        return TarFilesystemEntry(self, "", self.root)

    def sub(self, path: str) -> TarFilesystem:
        """Return a :class:`TarFilesystem` rooted at the directory ``path``.

        The new filesystem shares the archive source with this one, paths on it are relative to ``path``.

        Raises:
            NotADirectoryError: If ``path`` is a file.
        """
        entry = self.get(path)
        if not entry.is_dir():
            raise NotADirectoryError(f"{entry.path!r} is not a directory")

        log.debug("Creating sub filesystem for %r", entry.path)
        return self._from_node(self.source, entry.entry, self.volume)


class TarFilesystemEntry(FilesystemEntry):
    entry: Node

    def get(self, path: str) -> TarFilesystemEntry:
        relpath = fsutil.clean(path)
        node = self.entry

        for part in relpath.split("/") if relpath else []:
            if not node.is_dir():
                raise NotADirectoryError(f"{fsutil.join(self.path, relpath)!r}: {node.path!r} is not a directory")
            try:
                node = node.children[part]
            except KeyError:
                raise FileNotFoundError(fsutil.join(self.path, relpath)) from None

        if not relpath:
            return self
        return TarFilesystemEntry(self.fs, fsutil.join(self.path, relpath), node)

    def open(self) -> BinaryIO:
        """Returns a new file handle (file-like object) for this entry."""
        if self.is_dir():
            raise IsADirectoryError(f"{self.path or '.'!r} is a directory")
        return TarMemberStream(self.fs.source, self.entry.offset, self.entry.size)

    def iterdir(self) -> Iterator[str]:
        if not self.is_dir():
            raise NotADirectoryError(f"{self.path!r} is not a directory")
        yield from sorted(self.entry.children)

    def scandir(self) -> Iterator[TarFilesystemEntry]:
        if not self.is_dir():
            raise NotADirectoryError(f"{self.path!r} is not a directory")
        for name, node in sorted(self.entry.children.items()):
            yield TarFilesystemEntry(self.fs, fsutil.join(self.path, name), node)

    def is_dir(self) -> bool:
        """Return whether this entry is a directory."""
        return self.entry.is_dir()

    def is_file(self) -> bool:
        """Return whether this entry is a file."""
        return self.entry.is_file()

    def is_symlink(self) -> bool:
        """Symlinks are resolved when the filesystem is created, so an entry is never a link."""
        return False

    def readlink(self) -> str:
        raise NotASymlinkError(self.path)

    def stat(self) -> fsutil.stat_result:
        """Return the stat information of this entry."""
        return self.lstat()

    def lstat(self) -> fsutil.stat_result:
        """Return the stat information of this entry, which is the same as :meth:`stat`."""
        node = self.entry
        if node.is_dir():
            mode = stat.S_IFDIR | node.mode
            ino = fsutil.generate_addr(node.path)
            nlink = 2 + sum(1 for child in node.children.values() if child.is_dir())
        else:
            mode = stat.S_IFREG | node.mode
            ino = node.offset
            nlink = 1

        # mode, ino, dev, nlink, uid, gid, size, atime, mtime, ctime
        return fsutil.stat_result(
            [
                mode,
                ino,
                id(self.fs.source),
                nlink,
                node.uid,
                node.gid,
                node.size,
                0,
                node.mtime,
                0,
            ]
        )
