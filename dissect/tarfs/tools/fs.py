#!/usr/bin/env python
from __future__ import annotations

import argparse
import logging
import pathlib
import shutil
import sys

from dissect.tarfs.exceptions import FilesystemError
from dissect.tarfs.filesystems.tar import TarFilesystem, TarFilesystemEntry
from dissect.tarfs.tools.fsutils import print_ls, print_stat
from dissect.tarfs.tools.utils import (
    catch_sigpipe,
    configure_generic_arguments,
    process_generic_arguments,
)

log = logging.getLogger(__name__)
logging.lastResort = None
logging.raiseExceptions = False


def ls(fs: TarFilesystem, entry: TarFilesystemEntry, args: argparse.Namespace) -> None:
    # Only output with colors if stdout is a tty
    use_colors = sys.stdout.isatty()

    print_ls(entry, 0, sys.stdout, args.l, args.human_readable, args.recursive, use_colors)


def cat(fs: TarFilesystem, entry: TarFilesystemEntry, args: argparse.Namespace) -> None:
    stdout = sys.stdout
    if hasattr(stdout, "buffer"):
        stdout = stdout.buffer

    with entry.open() as fh:
        shutil.copyfileobj(fh, stdout)
    stdout.flush()


def walk(fs: TarFilesystem, entry: TarFilesystemEntry, args: argparse.Namespace) -> None:
    for e in entry.recurse():
        if e is not entry:
            print(e.path)


def cp(fs: TarFilesystem, entry: TarFilesystemEntry, args: argparse.Namespace) -> None:
    output = pathlib.Path(args.output).expanduser().resolve()

    if entry.is_file():
        _extract_path(entry, output.joinpath(entry.name))
    else:
        base = entry.path
        for extract_entry in entry.recurse():
            relpath = extract_entry.path[len(base) :].lstrip("/")
            _extract_path(extract_entry, output.joinpath(relpath) if relpath else output)


def stat(fs: TarFilesystem, entry: TarFilesystemEntry, args: argparse.Namespace) -> None:
    print_stat(entry, sys.stdout)


def hashes(fs: TarFilesystem, entry: TarFilesystemEntry, args: argparse.Namespace) -> None:
    md5, sha1, sha256 = entry.hash()
    print(f"md5     {md5}")
    print(f"sha1    {sha1}")
    print(f"sha256  {sha256}")


def _extract_path(entry: TarFilesystemEntry, output_path: pathlib.Path) -> None:
    print(f"{entry.path or '.'} -> {output_path}")

    out_dir = output_path if entry.is_dir() else output_path.parent

    try:
        out_dir.mkdir(parents=True, exist_ok=True)

        if entry.is_file():
            with entry.open() as fh, output_path.open("wb") as out:
                shutil.copyfileobj(fh, out)
    except OSError:
        print(f"[!] Failed: {entry.path}")
        log.exception("Error extracting file: %s -> %s", entry.path, output_path)


@catch_sigpipe
def main() -> int:
    help_formatter = argparse.ArgumentDefaultsHelpFormatter
    parser = argparse.ArgumentParser(
        description="dissect.tarfs",
        fromfile_prefix_chars="@",
        formatter_class=help_formatter,
    )
    parser.add_argument("archive", type=pathlib.Path, help="tar archive to read", metavar="ARCHIVE")

    baseparser = argparse.ArgumentParser(add_help=False)
    baseparser.add_argument("path", nargs="?", default=".", help="path to perform an action on", metavar="PATH")

    subparsers = parser.add_subparsers(dest="subcommand", help="subcommands for performing various actions")
    parser_ls = subparsers.add_parser(
        "ls", help="Show a directory listing", parents=[baseparser], conflict_handler="resolve"
    )
    parser_ls.add_argument("-l", action="store_true")
    parser_ls.add_argument("-h", "--human-readable", action="store_true")
    parser_ls.add_argument("-R", "--recursive", action="store_true", help="recursively list subdirectories encountered")
    parser_ls.set_defaults(handler=ls)

    parser_cat = subparsers.add_parser("cat", help="dump file contents", parents=[baseparser])
    parser_cat.set_defaults(handler=cat)

    parser_stat = subparsers.add_parser("stat", help="display file status", parents=[baseparser])
    parser_stat.set_defaults(handler=stat)

    parser_walk = subparsers.add_parser("walk", help="perform a walk", parents=[baseparser])
    parser_walk.set_defaults(handler=walk)

    parser_cp = subparsers.add_parser(
        "cp",
        help="copy a file or a directory tree to a directory specified by --output",
        parents=[baseparser],
    )
    parser_cp.add_argument("-o", "--output", default=".", help="output directory")
    parser_cp.set_defaults(handler=cp)

    parser_hash = subparsers.add_parser("hash", help="print the md5, sha1 and sha256 of a file", parents=[baseparser])
    parser_hash.set_defaults(handler=hashes)

    configure_generic_arguments(parser)

    args = parser.parse_args()
    process_generic_arguments(args)

    if args.subcommand is None:
        parser.error("No subcommand specified")

    if not args.archive.is_file():
        print(f"[!] Archive doesn't exist: {args.archive}")
        return 1

    try:
        with args.archive.open("rb") as fh:
            fs = TarFilesystem(fh)
            args.handler(fs, fs.get(args.path), args)
    except FilesystemError as e:
        log.error(e)  # noqa: TRY400
        log.debug("", exc_info=e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
