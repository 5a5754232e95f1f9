"""The Sandbox: path resolution and containment.

Every candidate extraction path is resolved against a strictly enforced
base directory.  The same containment test guards the download root
against the application's base storage directory.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = (
    "is_within",
    "resolve_member_path",
)

import os
import re
import unicodedata
from pathlib import Path

from ipfsloader._exceptions import PathEscapeError

# Longest resolved path accepted, in characters.
MAX_PATH = 4096

_DRIVE_LETTER = re.compile(r"[A-Za-z]:/")


# ---- containment -----------------------------------------------------------


def is_within(base_dir: str | os.PathLike[str], candidate: str | os.PathLike[str]) -> bool:
    """Return True if *candidate* is *base_dir* or lies beneath it.

    Both paths are resolved first and compared component-wise, so
    ``/base/cacheX`` is never considered to be inside ``/base/cache``.
    """
    base = Path(base_dir).resolve()
    real = Path(candidate).resolve()
    return real == base or real.is_relative_to(base)


# ---- path resolution -------------------------------------------------------


def resolve_member_path(
    base_dir: str | os.PathLike[str],
    member_name: str,
) -> Path:
    """Return the path *member_name* is written to under *base_dir*.

    The name is split by ``_member_parts`` and joined onto the resolved
    base.  The joined path must stay under ``MAX_PATH`` characters and,
    once symlinks already on disk are followed, inside *base_dir*.

    Raises ``PathEscapeError`` otherwise.
    """
    base = Path(base_dir).resolve()
    resolved = base.joinpath(*_member_parts(member_name))

    if len(str(resolved)) > MAX_PATH:
        raise PathEscapeError(f"Resolved path length exceeds MAX_PATH ({MAX_PATH})")
    if not is_within(base, resolved):
        raise PathEscapeError(f"Resolved path escapes base directory: {member_name!r}")
    return resolved


def _member_parts(member_name: str) -> list[str]:
    """Split *member_name* into the components to join onto the base.

    The name is NFC-normalised and ``\\`` counts as a separator.  Empty
    and ``.`` components are dropped.  Absolute names (POSIX or drive
    letter), ``..`` components, NUL bytes and names with nothing left
    raise ``PathEscapeError``.
    """
    name = unicodedata.normalize("NFC", member_name).replace("\\", "/")

    if name.startswith("/"):
        raise PathEscapeError(f"Absolute path detected in member name: {member_name!r}")
    if _DRIVE_LETTER.match(name):
        raise PathEscapeError(
            f"Absolute Windows path detected in member name: {member_name!r}"
        )

    parts = [part for part in name.split("/") if part not in ("", ".")]
    if ".." in parts:
        raise PathEscapeError(
            f"Path traversal component '..' in member name: {member_name!r}"
        )
    if not parts:
        raise PathEscapeError(f"Member name resolves to empty path: {member_name!r}")
    if any("\x00" in part for part in parts):
        raise PathEscapeError(f"Null byte in member name: {member_name!r}")
    return parts
