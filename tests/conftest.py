from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

import pytest

from dissect.tarfs.filesystems.tar import TarFilesystem
from tests._utils import create_tar

if TYPE_CHECKING:
    from collections.abc import Iterator


def _simple_members(prefix: str = "", tar_dir: bool = True) -> list[tuple]:
    members = []
    if prefix and tar_dir:
        cur = []
        for p in prefix.strip("/").split("/"):
            cur.append(p)
            members.append(("dir", "/".join(cur)))

    members.append(("file", f"{prefix}file_1", b"file 1 contents"))
    members.append(("file", f"{prefix}file_2", b"file 2 contents"))

    if tar_dir:
        members.append(("dir", f"{prefix}dir/"))

    members.extend(("file", f"{prefix}dir/{i}", f"contents {i}".encode()) for i in range(100))
    return members


@pytest.fixture
def tar_simple() -> Iterator[BinaryIO]:
    yield create_tar(_simple_members())


@pytest.fixture
def tar_base() -> Iterator[BinaryIO]:
    yield create_tar(_simple_members("base/"))


@pytest.fixture
def tar_relative() -> Iterator[BinaryIO]:
    yield create_tar(_simple_members("./", False))


@pytest.fixture
def tar_relative_dir() -> Iterator[BinaryIO]:
    yield create_tar(_simple_members("./"))


@pytest.fixture
def tar_virtual_dir() -> Iterator[BinaryIO]:
    yield create_tar(_simple_members("", False))


@pytest.fixture
def tar_symlink() -> Iterator[BinaryIO]:
    members = _simple_members()
    members.append(("sym", "sym_1", "file_1"))
    members.append(("sym", "sym_2", "dir"))
    yield create_tar(members)


@pytest.fixture
def fs_simple(tar_simple: BinaryIO) -> TarFilesystem:
    return TarFilesystem(tar_simple)


@pytest.fixture
def fs_symlink(tar_symlink: BinaryIO) -> TarFilesystem:
    return TarFilesystem(tar_symlink)


@pytest.fixture
def fs_nested() -> TarFilesystem:
    fh = create_tar(
        [
            ("dir", "etc"),
            ("file", "etc/hostname", b"example\n"),
            ("dir", "etc/ssh"),
            ("file", "etc/ssh/sshd_config", b"PermitRootLogin no\n"),
            ("dir", "usr"),
            ("dir", "usr/lib"),
            ("file", "usr/lib/os-release", b"ID=example\n"),
            ("sym", "etc/os-release", "../usr/lib/os-release"),
            ("sym", "lib", "usr/lib"),
        ]
    )
    return TarFilesystem(fh)
