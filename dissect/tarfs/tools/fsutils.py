from __future__ import annotations

import os
import stat
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dissect.tarfs.filesystem import FilesystemEntry
    from dissect.tarfs.helpers import fsutil

STAT_TEMPLATE = """  File: {path}
  Size: {size}       {filetype}
Device: {device}     Inode: {inode}      Links: {nlink}
Access: ({modeord}/{modestr})  Uid: ( {uid} )   Gid: ( {gid} )
Modify: {mtime}"""

FALLBACK_LS_COLORS = "rs=0:di=01;34:fi=0"


def prepare_ls_colors() -> dict[str, str]:
    """Parse the LS_COLORS environment variable so we can use it later."""
    d = {}
    ls_colors = os.environ.get("LS_COLORS", FALLBACK_LS_COLORS)
    for line in ls_colors.split(":"):
        if not line:
            continue

        ft, _, value = line.partition("=")
        d[ft.removeprefix("*")] = f"\x1b[{value}m{{}}\x1b[0m"

    return d


LS_COLORS = prepare_ls_colors()


def fmt_ls_colors(entry: FilesystemEntry) -> str:
    """Colorize the name of ``entry`` according to LS_COLORS."""
    ft = "di" if entry.is_dir() else "fi"
    try:
        return LS_COLORS[ft].format(entry.name)
    except KeyError:
        return entry.name


def human_size(bytes: int, units: Sequence[str] = ("", "K", "M", "G", "T", "P", "E")) -> str:
    """Helper function to return the human readable string representation of bytes."""
    return str(bytes) + units[0] if bytes < 1024 else human_size(bytes >> 10, units[1:])


def stat_modestr(st: fsutil.stat_result) -> str:
    """Helper method for generating a mode string from a numerical mode value."""
    return stat.filemode(st.st_mode)


def isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="seconds")


def print_extensive_file_stat_listing(
    stdout: TextIO,
    name: str,
    entry: FilesystemEntry,
    human_readable: bool = False,
) -> None:
    """Print the file status as a single line."""
    entry_stat = entry.lstat()
    size = f"{human_size(entry_stat.st_size):5s}" if human_readable else f"{entry_stat.st_size:10d}"

    print(
        (
            f"{stat_modestr(entry_stat)} {entry_stat.st_uid:4d} {entry_stat.st_gid:4d} {size} "
            f"{isoformat(entry_stat.st_mtime)} {name}"
        ),
        file=stdout,
    )


def print_ls(
    entry: FilesystemEntry,
    depth: int,
    stdout: TextIO,
    long_listing: bool = False,
    human_readable: bool = False,
    recursive: bool = False,
    color: bool = False,
) -> None:
    """Print ls output."""
    contents = entry.listdir_ext() if entry.is_dir() else [entry]
    subdirs = [child for child in contents if child.is_dir()] if entry.is_dir() else []

    if depth > 0:
        print(f"\n{entry.path}:", file=stdout)

    if long_listing and len(contents) > 1:
        print(f"total {len(contents)}", file=stdout)

    for child in contents:
        name = fmt_ls_colors(child) if color else child.name
        if long_listing:
            print_extensive_file_stat_listing(stdout, name, child, human_readable)
        else:
            print(name, file=stdout)

    if recursive:
        for subdir in subdirs:
            print_ls(subdir, depth + 1, stdout, long_listing, human_readable, recursive, color)


def print_stat(entry: FilesystemEntry, stdout: TextIO) -> None:
    """Print file status."""
    s = entry.stat()

    res = STAT_TEMPLATE.format(
        path=entry.path or ".",
        size=s.st_size,
        filetype="directory" if entry.is_dir() else "regular file",
        device=hex(s.st_dev),
        inode=s.st_ino,
        nlink=s.st_nlink,
        modeord=oct(stat.S_IMODE(s.st_mode)),
        modestr=stat_modestr(s),
        uid=s.st_uid,
        gid=s.st_gid,
        mtime=isoformat(s.st_mtime),
    )
    print(res, file=stdout)
