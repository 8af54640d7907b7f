from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, BinaryIO, Callable

if TYPE_CHECKING:
    from hashlib._hashlib import HASH

BUFFER_SIZE = 32768

COMMON = ("md5", "sha1", "sha256")


def digest(fh: BinaryIO, algos: tuple[str | Callable[[], HASH], ...] | list[str | Callable[[], HASH]]) -> tuple[str]:
    """Read ``fh`` to the end and return the hex digest for each of ``algos``.

    Algorithms are given either by their :mod:`hashlib` name or as a constructor.
    """
    ctx = [hashlib.new(algo) if isinstance(algo, str) else algo() for algo in algos]

    while data := fh.read(BUFFER_SIZE):
        for c in ctx:
            c.update(data)

    return tuple(c.hexdigest() for c in ctx)


def md5(fh: BinaryIO) -> str:
    return digest(fh, ["md5"])[0]


def sha1(fh: BinaryIO) -> str:
    return digest(fh, ["sha1"])[0]


def sha256(fh: BinaryIO) -> str:
    return digest(fh, ["sha256"])[0]


def common(fh: BinaryIO) -> tuple[str]:
    return digest(fh, COMMON)
