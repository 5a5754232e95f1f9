"""Policy enums and transient records for ipfsloader."""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TerminatorPolicy(Enum):
    """Controls how the end of a TAR stream is recognised.

    ``BLANK_NAME``
        Stop at the first header whose name field is blank.  Nothing
        after it is read.  *(default)*
    ``ZERO_BLOCKS``
        The terminal header must be an all-zero block followed by a
        second all-zero block, as POSIX requires.  Anything else raises
        ``MalformedHeaderError`` (or ``TruncatedArchiveError`` if the
        second block is missing).
    """

    BLANK_NAME = "blank_name"
    ZERO_BLOCKS = "zero_blocks"


class EntryType(Enum):
    """What the extractor does with a member."""

    FILE = "file"
    DIRECTORY = "directory"
    UNSUPPORTED = "unsupported"
    # PAX "x" or GNU "L" record describing the member that follows.
    EXTENDED = "extended"


@dataclass(frozen=True, slots=True)
class ArchiveHeader:
    """One decoded 512-byte header record.

    Only lives for the duration of a single extraction pass.
    """

    name: str
    """Member name, cut at the first NUL and stripped of fill bytes."""

    size: int
    """Size of the member's data region in bytes (before padding)."""

    type: EntryType
    """How the member is materialised."""

    typeflag: bytes = b"0"
    """Raw type byte, kept for logging unsupported members."""

    @property
    def is_root(self) -> bool:
        """``./`` names the archive's own root and is never materialised."""
        return self.name in ("./", ".")


@dataclass(frozen=True, slots=True)
class SizeReport:
    """Result of a ``files/stat`` size probe.

    Exactly one of ``cumulative_size`` and ``message`` is meaningful.
    """

    cumulative_size: int | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.cumulative_size is not None

    @classmethod
    def from_json(cls, payload: Any) -> SizeReport:
        """Build a report from a decoded ``files/stat`` response body.

        Keys follow the node's JSON (``CumulativeSize`` on success,
        ``Message`` on failure).  Anything else is ignored.
        """
        if not isinstance(payload, dict):
            return cls()
        size = payload.get("CumulativeSize")
        # bool is an int subclass; a JSON true is not a size
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            size = None
        message = payload.get("Message")
        if message is not None and not isinstance(message, str):
            message = str(message)
        return cls(cumulative_size=size, message=message)
