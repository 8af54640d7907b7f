"""Filesystem and path related utilities."""

from __future__ import annotations

import hashlib
import posixpath
import re
from typing import TYPE_CHECKING, Any, Callable

from dissect.tarfs.exceptions import InvalidPathError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from typing_extensions import Self

    import dissect.tarfs.filesystem as filesystem

re_normalize_path = re.compile(r"[/]+")

__all__ = [
    "basename",
    "clean",
    "dirname",
    "generate_addr",
    "isabs",
    "join",
    "normalize",
    "recurse",
    "split_parts",
    "stat_result",
    "walk",
    "walk_ext",
]


def normalize(path: str) -> str:
    return re_normalize_path.sub("/", path)


def isabs(path: str) -> bool:
    return posixpath.isabs(normalize(path))


def join(*args) -> str:
    return posixpath.join(*[normalize(part) for part in args])


def basename(path: str) -> str:
    return posixpath.basename(normalize(path))


def dirname(path: str) -> str:
    return posixpath.dirname(normalize(path))


def split_parts(path: str) -> list[str]:
    """Split ``path`` into its components, dropping empty and ``.`` components."""
    return [part for part in normalize(path).split("/") if part and part != "."]


def clean(path: str) -> str:
    """Turn a user supplied path into the relative form used to address the tree.

    ``""``, ``"."`` and ``"/"`` all refer to the root, which is returned as ``""``. A leading ``/`` is taken
    relative to the root. Paths can never walk out of their root, so ``..`` components are refused.

    Raises:
        InvalidPathError: If ``path`` contains a ``..`` component.
    """
    parts = split_parts(path)
    if ".." in parts:
        raise InvalidPathError(f"Path may not contain '..': {path!r}")
    return "/".join(parts)


def generate_addr(path: str) -> int:
    return int(hashlib.sha256(normalize(path).encode()).hexdigest()[:8], 16)


class stat_result:
    """Custom stat_result object, designed to mimick os.stat_result.

    The real stat_result is a CPython internal StructSeq, which kind of behaves like a namedtuple on steroids.
    We try to emulate some of that behaviour here. Only the fields a tar header can fill are supported.
    """

    __slots__ = {  # noqa: RUF023
        "st_mode": "protection bits",
        "st_ino": "inode",
        "st_dev": "device",
        "st_nlink": "number of hard links",
        "st_uid": "user ID of owner",
        "st_gid": "group ID of owner",
        "st_size": "total size, in bytes",
        "_st_atime": "integer time of last access",
        "_st_mtime": "integer time of last modification",
        "_st_ctime": "integer time of last change",
        "st_atime": "time of last access",
        "st_mtime": "time of last modification",
        "st_ctime": "time of last change",
        "st_atime_ns": "time of last access in nanoseconds",
        "st_mtime_ns": "time of last modification in nanoseconds",
        "st_ctime_ns": "time of last change in nanoseconds",
        "_s": "internal tuple",
    }

    def __init__(self, s: Sequence[Any]):
        if not isinstance(s, (list, tuple)) or len(s) != 10:
            raise TypeError(f"dissect.tarfs.stat_result() takes a 10-sequence ({len(s)}-sequence given)")

        self.st_mode = s[0]
        self.st_ino = s[1]
        self.st_dev = s[2]
        self.st_nlink = s[3]
        self.st_uid = s[4]
        self.st_gid = s[5]
        self.st_size = s[6]

        self._st_atime, self.st_atime, self.st_atime_ns = self._parse_time(s[7])
        self._st_mtime, self.st_mtime, self.st_mtime_ns = self._parse_time(s[8])
        self._st_ctime, self.st_ctime, self.st_ctime_ns = self._parse_time(s[9])

        # stat_result behaves like a tuple of the integer variants of the fields
        self._s = (
            self.st_mode,
            self.st_ino,
            self.st_dev,
            self.st_nlink,
            self.st_uid,
            self.st_gid,
            self.st_size,
            self._st_atime,
            self._st_mtime,
            self._st_ctime,
        )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, stat_result):
            other = other._s

        return self._s == other

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __hash__(self) -> int:
        return hash(self._s)

    def __getitem__(self, item: int) -> int:
        return self._s[item]

    def __iter__(self) -> Iterator[int]:
        return iter(self._s)

    def __len__(self) -> int:
        return len(self._s)

    def __repr__(self) -> str:
        values = ", ".join(
            f"{k}={getattr(self, k)}" for k in self.__slots__ if k.startswith("st_") and getattr(self, k) is not None
        )
        return f"dissect.tarfs.stat_result({values})"

    def _parse_time(self, ts: float) -> tuple[int, float, int]:
        ts_int = int(ts)
        ts_ns = int(ts * 1e9)

        return ts_int, ts_ns * 1e-9, ts_ns

    @classmethod
    def copy(cls, other: stat_result) -> Self:
        return cls(list(other))


def walk(
    path_entry: filesystem.FilesystemEntry,
    topdown: bool = True,
    onerror: Callable[[Exception], None] | None = None,
) -> Iterator[tuple[str, list[str], list[str]]]:
    for path_list, dirs, files in walk_ext(path_entry, topdown, onerror):
        walk_path = join(path_entry.path, *[p.name for p in path_list[1:]])
        yield walk_path, [d.name for d in dirs], [f.name for f in files]


def walk_ext(
    path_entry: filesystem.FilesystemEntry,
    topdown: bool = True,
    onerror: Callable[[Exception], None] | None = None,
) -> Iterator[
    tuple[list[filesystem.FilesystemEntry], list[filesystem.FilesystemEntry], list[filesystem.FilesystemEntry]]
]:
    dirs = []
    files = []

    try:
        for entry in path_entry.scandir():
            if entry.is_dir():
                dirs.append(entry)
            else:
                files.append(entry)
    except Exception as e:
        if onerror is not None and callable(onerror):
            e.entry = path_entry
            onerror(e)
        return

    if topdown:
        yield [path_entry], dirs, files

    for direntry in dirs:
        for xpath, xdirs, xfiles in walk_ext(direntry, topdown, onerror):
            yield [path_entry, *xpath], xdirs, xfiles

    if not topdown:
        yield [path_entry], dirs, files


def recurse(path_entry: filesystem.FilesystemEntry) -> Iterator[filesystem.FilesystemEntry]:
    """Recursively walk the given :class:`FilesystemEntry`, yields :class:`FilesystemEntry` instances."""
    yield path_entry

    if not path_entry.is_dir():
        return

    for child_entry in path_entry.scandir():
        if child_entry.is_dir():
            yield from recurse(child_entry)
        else:
            yield child_entry
