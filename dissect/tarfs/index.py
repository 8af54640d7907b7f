"""Flat index of the members of a tar archive.

The index is the first of two construction phases: the whole archive is read once and every member is recorded by
its normalized path. Nothing is resolved here, a symlink may point at a member that appears later in the stream.
"""

from __future__ import annotations

import enum
import stat
import tarfile
from dataclasses import dataclass
from typing import BinaryIO

from dissect.tarfs.exceptions import (
    ConflictError,
    FilesystemError,
    InvalidPathError,
    UnsupportedEntryError,
)
from dissect.tarfs.helpers import fsutil
from dissect.tarfs.helpers.logging import get_logger

log = get_logger(__name__)

ROOT = ""

TYPE_NAMES = {
    tarfile.LNKTYPE: "hard link",
    tarfile.CHRTYPE: "character device",
    tarfile.BLKTYPE: "block device",
    tarfile.FIFOTYPE: "fifo",
}


class EntryType(enum.Enum):
    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class RawEntry:
    """A single archive member as it appears in the archive, before any symlink is followed."""

    path: str
    type: EntryType
    size: int = 0
    mode: int = 0
    mtime: int = 0
    uid: int = 0
    gid: int = 0
    linkname: str = ""
    offset: int | None = None
    implicit: bool = False

    @classmethod
    def from_tarinfo(cls, path: str, member: tarfile.TarInfo) -> RawEntry:
        type_ = classify(member)
        return cls(
            path=path,
            type=type_,
            size=member.size if type_ is EntryType.FILE else 0,
            mode=stat.S_IMODE(member.mode),
            mtime=int(member.mtime),
            uid=member.uid,
            gid=member.gid,
            linkname=member.linkname if type_ is EntryType.SYMLINK else "",
            offset=member.offset_data if type_ is EntryType.FILE else None,
        )

    @classmethod
    def directory(cls, path: str) -> RawEntry:
        """Placeholder for a directory that only exists as the parent of other members."""
        return cls(path=path, type=EntryType.DIR, mode=0o755, implicit=True)


def normalize_member_path(name: str) -> str:
    """Normalize the name of an archive member to a relative, slash separated path.

    Redundant separators, ``.`` components and trailing slashes are dropped. The root of the archive is ``""``.

    Raises:
        InvalidPathError: If ``name`` is absolute or contains a ``..`` component.
    """
    if fsutil.isabs(name):
        raise InvalidPathError(f"Absolute member name: {name!r}")

    parts = fsutil.split_parts(name)
    if ".." in parts:
        raise InvalidPathError(f"Member name may not contain '..': {name!r}")

    return "/".join(parts)


def classify(member: tarfile.TarInfo) -> EntryType:
    """Map a tar member type onto one of the supported :class:`EntryType` values.

    Raises:
        UnsupportedEntryError: For hard links, devices, fifos and sparse files.
    """
    # Sparse members are also "regular" to tarfile, but their data is not stored contiguously
    if member.isreg() and not member.issparse():
        return EntryType.FILE
    if member.isdir():
        return EntryType.DIR
    if member.issym():
        return EntryType.SYMLINK

    type_name = "sparse file" if member.issparse() else TYPE_NAMES.get(member.type, f"type {member.type!r}")
    raise UnsupportedEntryError(f"Unsupported member {member.name!r}: {type_name}")


def add_entry(entries: dict[str, RawEntry], entry: RawEntry) -> None:
    """Record ``entry`` in ``entries``, synthesizing any of its parent directories that were not seen yet.

    A later member replaces an earlier one of the same type and any implicit placeholder.

    Raises:
        ConflictError: If ``entry.path`` was already recorded as an explicit member of another type.
    """
    existing = entries.get(entry.path)
    if existing is not None and not existing.implicit and existing.type is not entry.type:
        raise ConflictError(
            f"Conflicting members for {entry.path or '.'!r}: {existing.type.value} and {entry.type.value}"
        )
    entries[entry.path] = entry

    parent = fsutil.dirname(entry.path)
    while parent and parent not in entries:
        entries[parent] = RawEntry.directory(parent)
        parent = fsutil.dirname(parent)


def build_index(fh: BinaryIO) -> dict[str, RawEntry]:
    """Read every member header of the tar archive in ``fh``.

    The returned mapping is keyed by normalized path, keeps the order in which paths were first seen and always
    contains the root directory.

    Args:
        fh: A seekable file-like object containing an uncompressed tar archive.

    Raises:
        InvalidPathError: If a member name is absolute or escapes the archive root.
        ConflictError: If one path is given members of different types.
        UnsupportedEntryError: If a member is not a regular file, directory or symlink.
        FilesystemError: If ``fh`` does not contain a readable tar archive.
    """
    entries = {ROOT: RawEntry.directory(ROOT)}

    fh.seek(0)
    try:
        with tarfile.open(mode="r:", fileobj=fh) as tar:
            for member in tar:
                path = normalize_member_path(member.name)
                entry = RawEntry.from_tarinfo(path, member)

                if path == ROOT and entry.type is not EntryType.DIR:
                    raise InvalidPathError(f"Archive root must be a directory: {member.name!r}")

                log.trace("Indexed %s %r", entry.type.value, path)
                add_entry(entries, entry)
    except tarfile.TarError as e:
        raise FilesystemError("Failed to read tar archive", cause=e)

    log.debug("Indexed %d paths", len(entries))
    return entries
