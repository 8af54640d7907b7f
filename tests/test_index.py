from __future__ import annotations

import io
import tarfile

import pytest

from dissect.tarfs.exceptions import (
    ConflictError,
    FilesystemError,
    InvalidPathError,
    UnsupportedEntryError,
)
from dissect.tarfs.index import ROOT, EntryType, RawEntry, add_entry, build_index, normalize_member_path
from tests._utils import MTIME, create_tar


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("a", "a"),
        ("a/b", "a/b"),
        ("./a//b/", "a/b"),
        ("a/./b", "a/b"),
        (".", ""),
        ("./", ""),
    ],
)
def test_normalize_member_path(name: str, expected: str) -> None:
    assert normalize_member_path(name) == expected


@pytest.mark.parametrize("name", ["/etc/passwd", "//a", "a/../b", "../a", "a/.."])
def test_normalize_member_path_invalid(name: str) -> None:
    with pytest.raises(InvalidPathError):
        normalize_member_path(name)


def test_build_index_entries() -> None:
    fh = create_tar(
        [
            ("dir", "a"),
            ("file", "a/f", b"contents"),
            ("sym", "l", "a/f"),
        ]
    )
    entries = build_index(fh)

    assert list(entries) == [ROOT, "a", "a/f", "l"]

    assert entries[ROOT].implicit
    assert entries[ROOT].type is EntryType.DIR

    a = entries["a"]
    assert a.type is EntryType.DIR
    assert not a.implicit
    assert a.mode == 0o755
    assert a.mtime == MTIME
    assert a.uid == 1000
    assert a.gid == 1000

    f = entries["a/f"]
    assert f.type is EntryType.FILE
    assert f.size == 8
    assert f.mode == 0o644
    # header of "a", header of "a/f"
    assert f.offset == 1024

    fh.seek(f.offset)
    assert fh.read(f.size) == b"contents"

    link = entries["l"]
    assert link.type is EntryType.SYMLINK
    assert link.linkname == "a/f"
    assert link.size == 0
    assert link.offset is None


def test_build_index_implicit_parents() -> None:
    entries = build_index(create_tar([("file", "a/b/c", b"x")]))

    assert entries["a"] == RawEntry.directory("a")
    assert entries["a/b"] == RawEntry.directory("a/b")
    assert entries["a/b"].implicit
    assert entries["a/b/c"].type is EntryType.FILE


def test_build_index_explicit_replaces_implicit() -> None:
    fh = create_tar(
        [
            ("file", "a/f", b"x"),
            ("dir", "a"),
        ]
    )
    entries = build_index(fh)

    assert not entries["a"].implicit
    assert entries["a"].mtime == MTIME


def test_build_index_symlink_replaces_implicit() -> None:
    fh = create_tar(
        [
            ("dir", "b"),
            ("file", "a/x", b"x"),
            ("sym", "a", "b"),
        ]
    )
    entries = build_index(fh)

    assert entries["a"].type is EntryType.SYMLINK


def test_build_index_duplicate_later_wins() -> None:
    fh = create_tar(
        [
            ("file", "f", b"first"),
            ("file", "f", b"second!"),
        ]
    )
    entries = build_index(fh)

    assert entries["f"].size == 7

    fh.seek(entries["f"].offset)
    assert fh.read(7) == b"second!"


@pytest.mark.parametrize(
    "members",
    [
        [("dir", "a"), ("file", "a", b"")],
        [("file", "a", b""), ("dir", "a")],
        [("file", "a", b""), ("sym", "a", "b")],
        [("sym", "a", "b"), ("dir", "a")],
    ],
)
def test_build_index_conflict(members: list[tuple]) -> None:
    with pytest.raises(ConflictError):
        build_index(create_tar(members))


def test_add_entry_conflict() -> None:
    entries = {ROOT: RawEntry.directory(ROOT)}
    add_entry(entries, RawEntry("a", EntryType.FILE))

    with pytest.raises(ConflictError):
        add_entry(entries, RawEntry("a", EntryType.DIR))


@pytest.mark.parametrize(
    ("type", "linkname"),
    [
        (tarfile.LNKTYPE, "f"),
        (tarfile.CHRTYPE, ""),
        (tarfile.BLKTYPE, ""),
        (tarfile.FIFOTYPE, ""),
    ],
)
def test_build_index_unsupported(type: bytes, linkname: str) -> None:
    fh = create_tar(
        [
            ("file", "f", b"contents"),
            ("other", "special", type, linkname),
        ]
    )

    with pytest.raises(UnsupportedEntryError):
        build_index(fh)


def test_build_index_absolute_member() -> None:
    buf = io.BytesIO()
    with tarfile.TarFile(fileobj=buf, mode="w") as tf:
        info = tarfile.TarInfo("/etc/passwd")
        tf.addfile(info, io.BytesIO())
    buf.seek(0)

    with pytest.raises(InvalidPathError):
        build_index(buf)


def test_build_index_root_member() -> None:
    buf = io.BytesIO()
    with tarfile.TarFile(fileobj=buf, mode="w") as tf:
        info = tarfile.TarInfo("./")
        info.type = tarfile.DIRTYPE
        info.mode = 0o700
        tf.addfile(info)
    buf.seek(0)

    entries = build_index(buf)

    assert list(entries) == [ROOT]
    assert not entries[ROOT].implicit
    assert entries[ROOT].mode == 0o700


def test_build_index_root_is_file() -> None:
    with pytest.raises(InvalidPathError):
        build_index(create_tar([("file", ".", b"")]))


def test_build_index_empty_archive() -> None:
    entries = build_index(io.BytesIO(bytes(1024)))

    assert list(entries) == [ROOT]


@pytest.mark.parametrize("data", [b"", b"this is not a tar archive" * 40])
def test_build_index_not_a_tar(data: bytes) -> None:
    with pytest.raises(FilesystemError) as exc_info:
        build_index(io.BytesIO(data))

    assert isinstance(exc_info.value.__cause__, tarfile.TarError)


def test_build_index_rewinds() -> None:
    fh = create_tar([("file", "f", b"x")])
    fh.seek(0, io.SEEK_END)

    assert "f" in build_index(fh)
