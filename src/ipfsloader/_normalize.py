"""Validation and canonicalisation of the strings ipfsloader accepts.

Three inputs come from the caller: the node's API endpoint, the content
address to download, and the directory to download into.  Each is
normalised here before any network or filesystem work happens.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = (
    "DEFAULT_API_ENDPOINT",
    "DEFAULT_ROOT_NAME",
    "IPFS_PREFIX",
    "extraction_target",
    "normalize_content_address",
    "normalize_download_root",
    "normalize_endpoint",
)

import os
from pathlib import Path
from urllib.parse import urlsplit

from ipfsloader._exceptions import (
    InvalidAddressError,
    InvalidEndpointError,
    InvalidRootError,
)
from ipfsloader._sandbox import is_within

DEFAULT_API_ENDPOINT = "http://localhost:5001"
DEFAULT_ROOT_NAME = "IPFS-Cache"
IPFS_PREFIX = "/ipfs/"
_IPFS_SCHEME = "ipfs://"


def normalize_endpoint(raw: str | None) -> str:
    """Return *raw* as a canonical API endpoint.

    The URI must be absolute, use ``http`` or ``https`` and carry no
    query string or fragment (a path is allowed).  The scheme is
    lower-cased and a trailing slash removed.  Empty input yields
    ``DEFAULT_API_ENDPOINT``.

    Raises ``InvalidEndpointError`` otherwise.
    """
    if not raw:
        return DEFAULT_API_ENDPOINT
    if not isinstance(raw, str):
        raise InvalidEndpointError(f"Invalid api endpoint uri: {raw!r} is not a string")

    try:
        parsed = urlsplit(raw.strip())
        # Accessing .port validates it.
        parsed.port  # noqa: B018
    except ValueError as exc:
        raise InvalidEndpointError(
            f"Invalid api endpoint uri: It is not an url ({exc})"
        ) from exc

    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https"):
        raise InvalidEndpointError("Invalid api endpoint uri: It must be http or https")

    if not parsed.hostname:
        raise InvalidEndpointError(f"Invalid api endpoint uri: No host in {raw!r}")

    if parsed.query or parsed.fragment or "?" in raw or "#" in raw:
        raise InvalidEndpointError(
            "Invalid api endpoint uri: It must not have querystring nor hash/fragment"
        )

    return f"{scheme}://{parsed.netloc}{parsed.path}".rstrip("/")


def normalize_content_address(raw: str | None) -> str:
    """Return *raw* as a canonical ``/ipfs/<id>[/<segment>...]`` path.

    Surrounding whitespace and trailing slashes are stripped and an
    ``ipfs://`` prefix (any case) is rewritten to ``/ipfs/``.

    Raises ``InvalidAddressError`` if the result does not start with
    ``/ipfs/``, has no content id, or contains ``.``/``..`` segments.
    """
    if raw is None:
        raise InvalidAddressError("The ipfs path must not be None")
    if not isinstance(raw, str):
        raise InvalidAddressError(f"The ipfs path must be a string, got {type(raw).__name__}")

    address = raw.strip().rstrip("/")
    if address[: len(_IPFS_SCHEME)].lower() == _IPFS_SCHEME:
        address = IPFS_PREFIX + address[len(_IPFS_SCHEME) :]

    if not address.startswith(IPFS_PREFIX):
        raise InvalidAddressError(f"The ipfs path must begin with {IPFS_PREFIX}: {raw!r}")

    segments = address[len(IPFS_PREFIX) :].split("/")
    if not segments[0]:
        raise InvalidAddressError(f"The ipfs path has no content id: {raw!r}")
    if any(segment in (".", "..") for segment in segments):
        raise InvalidAddressError(
            f"The ipfs path must not contain '.' or '..' segments: {raw!r}"
        )

    return address


def normalize_download_root(
    raw: str | os.PathLike[str] | None,
    base: str | os.PathLike[str],
) -> Path:
    """Return the absolute download root for *raw* under *base*.

    Empty input yields ``<base>/IPFS-Cache``.  Anything else is joined
    onto *base* (an absolute *raw* replaces it) and must resolve to
    *base* itself or a descendant of it.

    Raises ``InvalidRootError`` otherwise.
    """
    base_dir = Path(base).resolve()
    if raw is None or str(raw) == "":
        return base_dir / DEFAULT_ROOT_NAME

    candidate = (base_dir / raw).resolve()
    if not is_within(base_dir, candidate):
        raise InvalidRootError(
            f"The download root must be empty or be a child of {base_dir}: {raw!r}"
        )
    return candidate


def extraction_target(root: str | os.PathLike[str], address: str) -> Path:
    """Return the directory the archive for *address* is unpacked into.

    The ``/ipfs/`` prefix and the last segment (the archive's single
    root member) are dropped; what remains is joined onto *root*::

        /ipfs/<id>/sub/file.txt  ->  <root>/<id>/sub
        /ipfs/<id>               ->  <root>
    """
    parts = address[len(IPFS_PREFIX) :].split("/")[:-1]
    target = Path(root).joinpath(*parts)
    if not is_within(root, target):
        raise InvalidAddressError(
            f"The ipfs path resolves outside the download root: {address!r}"
        )
    return target
