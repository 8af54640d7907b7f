from __future__ import annotations

import io
import os
import threading
from typing import BinaryIO

from dissect.util.stream import AlignedStream

from dissect.tarfs.exceptions import NotSeekableError


class Source:
    """Random access to the bytes of an archive, shared by every view and open file of a filesystem.

    If the file-like object is backed by a real file descriptor, reads are done with :func:`os.pread` and never
    touch the file position. Otherwise every read is a ``seek`` followed by a ``read`` under a lock, since all
    readers share the single position of ``fh``.

    Args:
        fh: A seekable binary file-like object.

    Raises:
        NotSeekableError: If ``fh`` does not support seeking.
    """

    def __init__(self, fh: BinaryIO):
        seekable = getattr(fh, "seekable", None)
        if seekable is None or not seekable():
            raise NotSeekableError(f"Source does not support random access: {fh!r}")

        self.fh = fh
        self.lock = threading.Lock()
        self.fd = self._fileno(fh) if hasattr(os, "pread") else None

    def __repr__(self) -> str:
        return f"<Source fh={self.fh!r}>"

    @staticmethod
    def _fileno(fh: BinaryIO) -> int | None:
        try:
            fd = fh.fileno()
        except (AttributeError, OSError, io.UnsupportedOperation):
            return None

        try:
            os.fstat(fd)
        except OSError:
            return None
        return fd

    def pread(self, offset: int, length: int) -> bytes:
        """Read up to ``length`` bytes at ``offset`` without affecting any other reader."""
        if length <= 0:
            return b""

        if self.fd is not None:
            chunks = []
            while length > 0:
                buf = os.pread(self.fd, length, offset)
                if not buf:
                    break
                chunks.append(buf)
                offset += len(buf)
                length -= len(buf)
            return b"".join(chunks)

        with self.lock:
            self.fh.seek(offset)
            return self.fh.read(length)


class TarMemberStream(AlignedStream):
    """Read-only stream over the data of a single archive member.

    Every instance has its own position and buffer, opening the same member twice gives two independent streams.

    Args:
        source: The :class:`Source` of the archive.
        offset: The offset of the member data in the archive.
        size: The size of the member data.
    """

    def __init__(self, source: Source, offset: int, size: int):
        self.source = source
        self.offset = offset
        super().__init__(size)

    def _read(self, offset: int, length: int) -> bytes:
        length = min(length, self.size - offset)
        return self.source.pread(self.offset + offset, length)
