"""The Guard: decoding and validation of 512-byte TAR header blocks.

Each header is decoded and checked before a single byte of that
member's content reaches the filesystem.  Only the fields the extractor
needs are decoded (name, ustar prefix, size, type flag and the checksum
that protects them); owner, permission and timestamp fields are skipped.

Names longer than the 100-byte name field arrive in one of three ways,
all honoured: the ustar ``prefix`` field, a PAX ``x`` record with a
``path`` key, or a GNU ``L`` record.  The last two precede the member
they describe and are applied with ``apply_extended``.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = (
    "BLOCK_SIZE",
    "MAX_EXTENDED_SIZE",
    "apply_extended",
    "classify_type",
    "decode_name",
    "decode_extended",
    "decode_octal",
    "decode_prefix",
    "is_zero_block",
    "padded_size",
    "parse_header",
    "parse_pax_records",
    "validate_entry_size",
    "verify_header_checksum",
)

from ipfsloader._exceptions import MalformedHeaderError, TruncatedArchiveError
from ipfsloader._types import ArchiveHeader, EntryType

BLOCK_SIZE = 512

# Field offsets within a ustar header block.
_NAME = slice(0, 100)
_SIZE = slice(124, 136)
_CHKSUM = slice(148, 156)
_TYPEFLAG = 156
_MAGIC = slice(257, 263)
_PREFIX = slice(345, 500)

# POSIX ustar only.  GNU headers ("ustar  \0") use bytes 345-500 for
# other fields.
_USTAR_MAGIC = b"ustar\x00"

# Type flags we materialise.  NUL and "0" are regular files ("7", the
# contiguous file, is extracted as a regular file too, like GNU tar does).
_FILE_TYPES = {b"\x00", b"0", b"7"}
_DIR_TYPES = {b"5"}
_EXTENDED_TYPES = {b"x", b"L"}

# Upper bound on the data region of one extended record.
MAX_EXTENDED_SIZE = 1024 * 1024

# PAX keys applied to the next member; the rest (mtime, uname, ...) are
# ignored.
_PAX_KEYS = ("path", "size")

_OCTAL_DIGITS = frozenset(b"01234567")


def padded_size(size: int) -> int:
    """Return *size* rounded up to the next multiple of ``BLOCK_SIZE``."""
    return -(-size // BLOCK_SIZE) * BLOCK_SIZE


def is_zero_block(block: bytes) -> bool:
    return not any(block)


def decode_name(block: bytes) -> str:
    """Decode the member name from the first 100 bytes of *block*.

    The field is NUL-terminated; everything from the first NUL on is
    fill.  Raises ``MalformedHeaderError`` if the name is not UTF-8.
    """
    return _decode_utf8(bytes(block[_NAME]).split(b"\x00", 1)[0], "Member name")


def decode_prefix(block: bytes) -> str:
    """Decode the ustar ``prefix`` field (bytes 345-499) of *block*.

    Returns ``""`` when the field is empty or the header is not POSIX
    ustar.
    """
    if bytes(block[_MAGIC]) != _USTAR_MAGIC:
        return ""
    raw = bytes(block[_PREFIX]).split(b"\x00", 1)[0]
    return _decode_utf8(raw, "Member name prefix")


def _decode_utf8(raw: bytes, label: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedHeaderError(f"{label} is not valid UTF-8: {raw!r}") from exc


def decode_octal(field: bytes, label: str = "numeric") -> int:
    """Decode a NUL/space padded octal text field.

    An empty field decodes to ``0``.  Base-256 (binary) fields, signs and
    non-octal characters raise ``MalformedHeaderError``.
    """
    if field and field[0] & 0x80:
        raise MalformedHeaderError(f"Binary {label} field is not supported: {field!r}")

    text = bytes(field).split(b"\x00", 1)[0].strip(b" ")
    if not text:
        return 0
    if not _OCTAL_DIGITS.issuperset(text):
        raise MalformedHeaderError(f"Invalid octal {label} field: {field!r}")
    return int(text, 8)


def classify_type(typeflag: bytes, name: str = "") -> EntryType:
    """Map a raw type flag byte (and the member *name*) to an ``EntryType``."""
    if typeflag in _FILE_TYPES:
        # Pre-POSIX archives mark directories with a NUL type and a trailing slash.
        if typeflag == b"\x00" and name.endswith("/"):
            return EntryType.DIRECTORY
        return EntryType.FILE
    if typeflag in _DIR_TYPES:
        return EntryType.DIRECTORY
    if typeflag in _EXTENDED_TYPES:
        return EntryType.EXTENDED
    return EntryType.UNSUPPORTED


def verify_header_checksum(block: bytes) -> None:
    """Check the header checksum stored at offsets 148-155.

    The checksum is the sum of all header bytes with the checksum field
    itself counted as eight spaces.  Both the unsigned sum (POSIX) and
    the signed sum (some historic implementations) are accepted.
    """
    stored = decode_octal(block[_CHKSUM], "checksum")
    header = bytes(block[:BLOCK_SIZE])
    unsigned = sum(header[:148]) + 8 * 0x20 + sum(header[156:])
    if stored == unsigned:
        return
    signed = unsigned - 256 * sum(1 for b in header[:148] + header[156:] if b > 127)
    if stored == signed:
        return
    raise MalformedHeaderError(
        f"Header checksum mismatch: stored {stored}, computed {unsigned}"
    )


def parse_header(block: bytes, *, verify_checksum: bool = True) -> ArchiveHeader | None:
    """Decode one header block.

    Returns ``None`` for the terminal header (blank or whitespace-only
    name).  Whether that terminal block is acceptable is the caller's
    decision (see ``TerminatorPolicy``).

    A non-empty ustar ``prefix`` is joined in front of the name.

    Raises ``MalformedHeaderError`` for undecodable fields.
    """
    if len(block) != BLOCK_SIZE:
        raise TruncatedArchiveError(
            f"Header block is {len(block)} bytes, expected {BLOCK_SIZE}"
        )

    name = decode_name(block)
    if not name.strip():
        return None

    if verify_checksum:
        verify_header_checksum(block)

    prefix = decode_prefix(block)
    if prefix:
        name = f"{prefix}/{name}"

    size = decode_octal(block[_SIZE], "size")
    typeflag = bytes(block[_TYPEFLAG : _TYPEFLAG + 1])
    return ArchiveHeader(
        name=name,
        size=size,
        type=classify_type(typeflag, name),
        typeflag=typeflag,
    )


# ---- extended records ------------------------------------------------------


def parse_pax_records(data: bytes) -> dict[str, str]:
    """Split a PAX extended header's data into ``{key: value}``.

    Each record reads ``"<length> <key>=<value>\\n"`` where *length*
    counts the whole record, digits and newline included.  Trailing NUL
    fill is ignored.

    Raises ``MalformedHeaderError`` for records that do not follow that
    layout or are not UTF-8.
    """
    records: dict[str, str] = {}
    pos = 0
    end = len(data.rstrip(b"\x00"))
    while pos < end:
        space = data.find(b" ", pos, end)
        digits = data[pos:space] if space != -1 else b""
        if not digits.isdigit():
            raise MalformedHeaderError(f"Invalid PAX record length at byte {pos}")
        length = int(digits)
        record_end = pos + length
        if (
            record_end <= space
            or record_end > end
            or data[record_end - 1 : record_end] != b"\n"
        ):
            raise MalformedHeaderError(f"PAX record at byte {pos} does not match its length")
        key, sep, value = data[space + 1 : record_end - 1].partition(b"=")
        if not sep or not key:
            raise MalformedHeaderError(f"PAX record at byte {pos} has no key")
        records[_decode_utf8(key, "PAX key")] = _decode_utf8(value, "PAX value")
        pos = record_end
    return records


def decode_extended(header: ArchiveHeader, data: bytes) -> dict[str, str]:
    """Return the overrides an extended record carries for the next member.

    *data* is the record's data region without padding.  A GNU ``L``
    record holds the long name itself; a PAX ``x`` record may hold
    ``path`` and ``size``.
    """
    if header.typeflag == b"L":
        return {"path": _decode_utf8(data.split(b"\x00", 1)[0], "GNU long name")}
    records = parse_pax_records(data)
    return {key: records[key] for key in _PAX_KEYS if key in records}


def apply_extended(header: ArchiveHeader, overrides: dict[str, str]) -> ArchiveHeader:
    """Return *header* with the ``path``/``size`` *overrides* applied."""
    name = overrides.get("path", header.name)
    size = header.size
    raw_size = overrides.get("size")
    if raw_size is not None:
        if not (raw_size.isascii() and raw_size.isdigit()):
            raise MalformedHeaderError(f"Invalid PAX size record: {raw_size!r}")
        size = int(raw_size)
    return ArchiveHeader(
        name=name,
        size=size,
        type=classify_type(header.typeflag, name),
        typeflag=header.typeflag,
    )


# ---- size checks -----------------------------------------------------------


def validate_entry_size(
    header: ArchiveHeader,
    *,
    remaining: int | None,
    max_entry_size: int | None,
) -> None:
    """Reject entry sizes the stream cannot possibly satisfy.

    *remaining* is the number of bytes left after the header, or
    ``None`` if the stream length is unknown.
    """
    if max_entry_size is not None and header.size > max_entry_size:
        raise MalformedHeaderError(
            f"Entry size ({header.size}) exceeds max_entry_size "
            f"({max_entry_size}): {header.name!r}"
        )
    if remaining is not None and header.size > remaining:
        raise TruncatedArchiveError(
            f"Entry {header.name!r} declares {header.size} bytes but only "
            f"{remaining} remain in the stream"
        )
