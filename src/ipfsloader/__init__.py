"""ipfsloader — size-gated download and safe extraction of IPFS content.

Fetches ``/ipfs/...`` content through a node's RPC API and unpacks the
returned TAR stream into a sandboxed directory tree.  Python 3.10+.
"""

from __future__ import annotations

__title__ = "ipfsloader"
__version__ = "0.1"
__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"

from ipfsloader._exceptions import (
    FetchFailedError,
    InvalidAddressError,
    InvalidEndpointError,
    InvalidRootError,
    IpfsLoaderError,
    MalformedHeaderError,
    PathEscapeError,
    ProbeFailedError,
    SizeExceededError,
    TruncatedArchiveError,
    UnexpectedResponseFormatError,
)
from ipfsloader._normalize import (
    extraction_target,
    normalize_content_address,
    normalize_download_root,
    normalize_endpoint,
)
from ipfsloader._types import (
    ArchiveHeader,
    EntryType,
    SizeReport,
    TerminatorPolicy,
)

# Deferred imports so that ``import ipfsloader`` does not pull in httpx
# until a loader or client is actually needed.

_LAZY = {
    "TarStreamExtractor": "ipfsloader._core",
    "extract_archive": "ipfsloader._core",
    "GatewayClient": "ipfsloader._client",
    "IPFSLoader": "ipfsloader._loader",
    "download": "ipfsloader._loader",
}


def __getattr__(name: str) -> object:
    if name in _LAZY:
        import importlib

        value = getattr(importlib.import_module(_LAZY[name]), name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Core
    "IPFSLoader",
    "download",
    "GatewayClient",
    "TarStreamExtractor",
    "extract_archive",
    # Normalisation
    "normalize_endpoint",
    "normalize_content_address",
    "normalize_download_root",
    "extraction_target",
    # Exceptions
    "IpfsLoaderError",
    "InvalidEndpointError",
    "InvalidAddressError",
    "InvalidRootError",
    "UnexpectedResponseFormatError",
    "ProbeFailedError",
    "SizeExceededError",
    "FetchFailedError",
    "TruncatedArchiveError",
    "MalformedHeaderError",
    "PathEscapeError",
    # Types & Policies
    "ArchiveHeader",
    "EntryType",
    "SizeReport",
    "TerminatorPolicy",
]
