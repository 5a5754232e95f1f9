"""TarStreamExtractor: single-pass extraction of a TAR byte stream.

The stream is walked as consecutive 512-byte blocks.  Every header goes
through Guard (decode + validate) and Sandbox (path containment) before
the Streamer writes any of its data.  Only regular files and
directories are materialised.  PAX and GNU long-name records are read
and applied to the member that follows them; every other member's data
region is skipped so the following header stays aligned.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = (
    "TarStreamExtractor",
    "extract_archive",
)

import contextlib
import logging
import os
from pathlib import Path
from typing import BinaryIO

from ipfsloader._exceptions import MalformedHeaderError, TruncatedArchiveError
from ipfsloader._guard import (
    MAX_EXTENDED_SIZE,
    apply_extended,
    decode_extended,
    is_zero_block,
    padded_size,
    parse_header,
    validate_entry_size,
)
from ipfsloader._sandbox import resolve_member_path
from ipfsloader._streamer import BlockReader, ensure_stream, write_member_streaming
from ipfsloader._types import ArchiveHeader, EntryType, TerminatorPolicy

log = logging.getLogger("ipfsloader.extract")


class TarStreamExtractor:
    """Extract a TAR stream onto the filesystem.

    :param source: The archive as ``bytes`` or an open binary file
        object positioned at the first header.
    :param terminator_policy: How the end of the archive is recognised.
    :param verify_checksum: Verify each header's checksum.
    :param max_entry_size: Reject entries declaring more data than this
        (bytes).  ``None`` means no limit beyond the stream's length.
    """

    def __init__(
        self,
        source: bytes | bytearray | memoryview | BinaryIO,
        *,
        terminator_policy: TerminatorPolicy = TerminatorPolicy.BLANK_NAME,
        verify_checksum: bool = True,
        max_entry_size: int | None = None,
    ) -> None:
        self._owns_stream = not hasattr(source, "read")
        self._stream = ensure_stream(source)
        self._terminator_policy = terminator_policy
        self._verify_checksum = verify_checksum
        self._max_entry_size = max_entry_size
        self._consumed = False

    # ---- context manager ---------------------------------------------------

    def __enter__(self) -> TarStreamExtractor:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying stream if this extractor created it."""
        if self._owns_stream:
            with contextlib.suppress(Exception):
                self._stream.close()

    # ---- extraction --------------------------------------------------------

    def extractall(self, path: str | os.PathLike[str]) -> list[Path]:
        """Extract every supported member under *path*.

        *path* need not exist; directories are created as members are
        written.  Returns the materialised paths in archive order.

        Raises ``TypeError`` if *path* is ``None``.
        """
        if path is None:
            raise TypeError(
                "TarStreamExtractor.extractall() requires an explicit 'path' "
                "argument; extraction to the current working directory "
                "is not permitted"
            )
        if self._consumed:
            raise ValueError("The archive stream has already been extracted")
        self._consumed = True

        target = Path(path)
        reader = BlockReader(self._stream)
        extracted: list[Path] = []
        # Overrides from PAX "x" / GNU "L" records, consumed by the next member.
        pending: dict[str, str] = {}

        while True:
            block = reader.read_block()
            if not block:
                raise TruncatedArchiveError(
                    f"Stream ended at offset {reader.offset} without an "
                    "end-of-archive marker"
                )

            header = parse_header(block, verify_checksum=self._verify_checksum)
            if header is None:
                if pending:
                    raise MalformedHeaderError(
                        "Extended header is not followed by a member"
                    )
                self._check_terminator(block, reader)
                break

            if header.type is EntryType.EXTENDED:
                pending.update(self._read_extended(header, reader))
                continue
            if pending:
                header = apply_extended(header, pending)
                pending = {}

            validate_entry_size(
                header,
                remaining=reader.remaining,
                max_entry_size=self._max_entry_size,
            )
            dest_path = self._extract_one(header, target, reader)
            if dest_path is not None:
                extracted.append(dest_path)

        log.debug("Extracted %d member(s) into %s", len(extracted), target)
        return extracted

    # ---- internal ----------------------------------------------------------

    def _extract_one(
        self,
        header: ArchiveHeader,
        target: Path,
        reader: BlockReader,
    ) -> Path | None:
        """Materialise one member, leaving *reader* at the next header."""
        if header.type is EntryType.UNSUPPORTED:
            log.warning(
                "Skipping unsupported member %r (type flag %r, %d bytes)",
                header.name,
                header.typeflag,
                header.size,
            )
            reader.skip_entry(header.size)
            return None

        if header.is_root:
            reader.skip_entry(header.size)
            return None

        dest_path = resolve_member_path(target, header.name)

        try:
            if header.type is EntryType.DIRECTORY:
                dest_path.mkdir(parents=True, exist_ok=True)
                reader.skip_entry(header.size)
                log.debug("Created directory %s", dest_path)
                return dest_path

            dest_path.parent.mkdir(parents=True, exist_ok=True)
            write_member_streaming(reader, header.size, dest_path)
        except (FileExistsError, NotADirectoryError, IsADirectoryError) as exc:
            raise MalformedHeaderError(
                f"Member {header.name!r} conflicts with an existing path of "
                f"another type: {exc.filename}"
            ) from exc
        log.debug("Wrote %s (%d bytes)", dest_path, header.size)
        return dest_path

    def _read_extended(self, header: ArchiveHeader, reader: BlockReader) -> dict[str, str]:
        """Read a PAX or GNU long-name record and return its overrides."""
        if header.size > MAX_EXTENDED_SIZE:
            raise MalformedHeaderError(
                f"Extended header {header.name!r} declares {header.size} bytes, "
                f"more than {MAX_EXTENDED_SIZE}"
            )
        validate_entry_size(
            header,
            remaining=reader.remaining,
            max_entry_size=None,
        )
        data = reader.read_exact(header.size)
        reader.skip(padded_size(header.size) - header.size)
        overrides = decode_extended(header, data)
        log.debug("Extended header %r for the next member: %r", header.name, overrides)
        return overrides

    def _check_terminator(self, block: bytes, reader: BlockReader) -> None:
        if self._terminator_policy is TerminatorPolicy.BLANK_NAME:
            return

        if not is_zero_block(block):
            raise MalformedHeaderError(
                f"End-of-archive block at offset {reader.offset - len(block)} "
                "has a blank name but is not all zeros"
            )
        second = reader.read_block()
        if not second:
            raise TruncatedArchiveError(
                "Stream ended after the first end-of-archive block"
            )
        if not is_zero_block(second):
            raise MalformedHeaderError(
                "End-of-archive marker is a single zero block followed by data"
            )


def extract_archive(
    source: bytes | bytearray | memoryview | BinaryIO,
    destination: str | os.PathLike[str],
    **kwargs: object,
) -> list[Path]:
    """Extract *source* to *destination* using ``TarStreamExtractor``.

    All keyword arguments are forwarded to the ``TarStreamExtractor``
    constructor.
    """
    with TarStreamExtractor(source, **kwargs) as extractor:  # type: ignore[arg-type]
        return extractor.extractall(destination)
