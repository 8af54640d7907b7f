from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING
from unittest.mock import Mock

import pytest

from dissect.tarfs.filesystems.tar import TarFilesystem
from dissect.tarfs.tools.fs import _extract_path, cp
from dissect.tarfs.tools.fs import main as tarfs_main

if TYPE_CHECKING:
    from pathlib import Path


def run(monkeypatch: pytest.MonkeyPatch, *args: str) -> int:
    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["tarfs", *args])
        return tarfs_main()


def test_tarfs_ls(archive: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "ls") == 0

    stdout, _ = capsys.readouterr()
    assert stdout == "bin\netc\nusr\n"


def test_tarfs_ls_long(archive: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "ls", "-l", "etc") == 0

    stdout, _ = capsys.readouterr()
    lines = stdout.splitlines()
    assert lines[0] == "total 3"
    assert lines[1].startswith("-rw-r--r-- 1000 1000          8 ")
    assert lines[1].endswith(" hostname")
    assert lines[2].startswith("-rw-r--r-- 1000 1000         11 ")
    assert lines[2].endswith(" os-release")
    assert lines[3].startswith("drwxr-xr-x 1000 1000          0 ")
    assert lines[3].endswith(" ssh")


def test_tarfs_ls_recursive(archive: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "ls", "-R", "etc") == 0

    stdout, _ = capsys.readouterr()
    assert stdout == "hostname\nos-release\nssh\n\netc/ssh:\nsshd_config\n"


def test_tarfs_cat(archive: Path, capsysbinary: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "cat", "bin/data") == 0

    stdout, _ = capsysbinary.readouterr()
    assert stdout == bytes(range(256))


def test_tarfs_cat_symlink(archive: Path, capsysbinary: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "cat", "/etc/os-release") == 0

    stdout, _ = capsysbinary.readouterr()
    assert stdout == b"ID=example\n"


def test_tarfs_stat(archive: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "stat", "etc/hostname") == 0

    stdout, _ = capsys.readouterr()
    assert "  File: etc/hostname\n" in stdout
    assert "  Size: 8       regular file\n" in stdout
    assert "Access: (0o644/-rw-r--r--)  Uid: ( 1000 )   Gid: ( 1000 )\n" in stdout


def test_tarfs_walk(archive: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "walk", "etc") == 0

    stdout, _ = capsys.readouterr()
    assert stdout.splitlines() == ["etc/hostname", "etc/os-release", "etc/ssh", "etc/ssh/sshd_config"]


def test_tarfs_hash(archive: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert run(monkeypatch, str(archive), "hash", "etc/hostname") == 0

    content = b"example\n"
    stdout, _ = capsys.readouterr()
    assert f"md5     {hashlib.md5(content).hexdigest()}\n" in stdout
    assert f"sha1    {hashlib.sha1(content).hexdigest()}\n" in stdout
    assert f"sha256  {hashlib.sha256(content).hexdigest()}\n" in stdout


def test_tarfs_cp_directory(
    archive: Path, tmp_path: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    output_path = tmp_path / "out"

    assert run(monkeypatch, str(archive), "cp", "etc", "-o", str(output_path)) == 0

    stdout, _ = capsys.readouterr()
    assert len(stdout.splitlines()) == 5

    assert output_path.joinpath("hostname").read_bytes() == b"example\n"
    assert output_path.joinpath("os-release").read_bytes() == b"ID=example\n"
    assert output_path.joinpath("ssh", "sshd_config").read_bytes() == b"PermitRootLogin no\n"


def test_tarfs_cp_file(
    archive: Path, tmp_path: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    output_path = tmp_path / "out"

    assert run(monkeypatch, str(archive), "cp", "etc/ssh/sshd_config", "-o", str(output_path)) == 0

    assert output_path.joinpath("sshd_config").read_bytes() == b"PermitRootLogin no\n"


def test_tarfs_path_not_found(
    archive: Path, capsys: pytest.CaptureFixture, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    assert run(monkeypatch, str(archive), "cat", "etc/nope") == 1
    assert "etc/nope" in caplog.text


def test_tarfs_archive_not_found(tmp_path: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    missing = tmp_path / "missing.tar"

    assert run(monkeypatch, str(missing), "ls") == 1

    stdout, _ = capsys.readouterr()
    assert stdout == f"[!] Archive doesn't exist: {missing}\n"


def test_tarfs_invalid_archive(tmp_path: Path, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "invalid.tar"
    path.write_bytes(b"\x01" * 2048)

    assert run(monkeypatch, str(path), "ls") == 1
    assert "Failed to read tar archive" in caplog.text


def test_tarfs_no_subcommand(archive: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(SystemExit):
        run(monkeypatch, str(archive))


def test_extract_path_directory(archive: Path, tmp_path: Path) -> None:
    output_path = tmp_path / "out"

    with archive.open("rb") as fh:
        fs = TarFilesystem(fh)
        _extract_path(fs.get("etc/ssh"), output_path)

    assert output_path.is_dir()
    assert list(output_path.iterdir()) == []


def test_cp_root(archive: Path, tmp_path: Path) -> None:
    output_path = tmp_path / "out"

    args = Mock()
    args.output = str(output_path)

    with archive.open("rb") as fh:
        fs = TarFilesystem(fh)
        cp(fs, fs.get(""), args)

    assert output_path.joinpath("bin", "data").read_bytes() == bytes(range(256))
    assert output_path.joinpath("usr", "lib", "os-release").read_bytes() == b"ID=example\n"
    assert output_path.joinpath("etc", "os-release").read_bytes() == b"ID=example\n"
