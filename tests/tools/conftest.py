from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dissect.tarfs.tools.logging import configure_logging
from tests._utils import create_tar

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def prevent_logging_setup(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    def noop(*args, **kwargs) -> None:
        pass

    with monkeypatch.context() as m:
        m.setattr(configure_logging, "__code__", noop.__code__)
        yield


@pytest.fixture
def archive(tmp_path: Path) -> Path:
    path = tmp_path / "archive.tar"
    with path.open("wb") as fh:
        create_tar(
            [
                ("dir", "etc"),
                ("file", "etc/hostname", b"example\n"),
                ("dir", "etc/ssh"),
                ("file", "etc/ssh/sshd_config", b"PermitRootLogin no\n"),
                ("file", "usr/lib/os-release", b"ID=example\n"),
                ("sym", "etc/os-release", "../usr/lib/os-release"),
                ("file", "bin/data", bytes(range(256))),
            ],
            fh,
        )
    return path
