"""The Streamer: block-level reading and member writes.

The archive arrives as a byte stream of unknown total length.
``BlockReader`` hands it out in exact-size pieces and turns every short
read into ``TruncatedArchiveError``; ``write_member_streaming`` copies a
member's data to disk in bounded chunks.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = (
    "BlockReader",
    "ensure_stream",
    "write_member_streaming",
)

import contextlib
import io
import os
import random
from pathlib import Path
from typing import BinaryIO

from ipfsloader._exceptions import TruncatedArchiveError
from ipfsloader._guard import BLOCK_SIZE, padded_size

# Chunk size for streaming copies and skips.
_CHUNK_SIZE = 65536


def ensure_stream(source: bytes | bytearray | memoryview | BinaryIO) -> BinaryIO:
    """Return a binary file object for *source*.

    In-memory buffers are wrapped in ``io.BytesIO``; file objects are
    returned as-is.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(source)
    if not hasattr(source, "read"):
        raise TypeError(
            f"Archive source must be bytes or a binary file object, "
            f"got {type(source).__name__}"
        )
    return source


class BlockReader:
    """Sequential reader over a TAR byte stream.

    Tracks the current offset and, for seekable sources, the number of
    bytes left so oversized entries can be rejected up front.
    """

    def __init__(self, source: BinaryIO) -> None:
        self._source = source
        self._offset = 0
        self._length: int | None = None

        seekable = getattr(source, "seekable", None)
        if seekable is not None and seekable():
            start = source.tell()
            source.seek(0, io.SEEK_END)
            self._length = source.tell() - start
            source.seek(start)

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int | None:
        """Bytes left in the stream, or ``None`` if unknown."""
        if self._length is None:
            return None
        return self._length - self._offset

    def read_block(self) -> bytes:
        """Read the next 512-byte block.

        Returns ``b""`` at a clean end of stream.  A partial block raises
        ``TruncatedArchiveError``.
        """
        block = self._read_upto(BLOCK_SIZE)
        if block and len(block) != BLOCK_SIZE:
            raise TruncatedArchiveError(
                f"Stream ended inside a header block at offset {self._offset}"
            )
        return block

    def read_exact(self, n: int) -> bytes:
        data = self._read_upto(n)
        if len(data) != n:
            raise TruncatedArchiveError(
                f"Expected {n} bytes at offset {self._offset - len(data)}, "
                f"got {len(data)}"
            )
        return data

    def skip(self, n: int) -> None:
        """Advance past *n* bytes without keeping them."""
        remaining = self.remaining
        if remaining is not None:
            if n > remaining:
                raise TruncatedArchiveError(
                    f"Cannot skip {n} bytes at offset {self._offset}: only "
                    f"{remaining} remain"
                )
            self._source.seek(n, io.SEEK_CUR)
            self._offset += n
            return

        while n > 0:
            chunk = self.read_exact(min(n, _CHUNK_SIZE))
            n -= len(chunk)

    def skip_entry(self, size: int) -> None:
        """Advance past an entry's data region including its padding."""
        self.skip(padded_size(size))

    def copy_to(self, out: BinaryIO, n: int) -> None:
        """Copy exactly *n* bytes to *out* in bounded chunks."""
        while n > 0:
            chunk = self.read_exact(min(n, _CHUNK_SIZE))
            out.write(chunk)
            n -= len(chunk)

    def _read_upto(self, n: int) -> bytes:
        # Raw and network-backed streams may return short reads before EOF.
        parts: list[bytes] = []
        wanted = n
        while wanted > 0:
            chunk = self._source.read(wanted)
            if not chunk:
                break
            parts.append(chunk)
            wanted -= len(chunk)
        data = b"".join(parts)
        self._offset += len(data)
        return data


def write_member_streaming(reader: BlockReader, size: int, dest_path: Path) -> None:
    """Write the next *size* bytes of *reader* to *dest_path*.

    Uses atomic writes: content is written to a temporary file and
    renamed over the destination only on success.  The data region's
    padding is consumed but never written.
    """
    suffix = f".ipfsloader_tmp_{os.getpid()}_{random.randint(0, 999999):06d}"
    temp_path = dest_path.with_name(dest_path.name + suffix)

    try:
        temp_path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "wb") as out:
            reader.copy_to(out, size)
        temp_path.replace(dest_path)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise

    reader.skip(padded_size(size) - size)
