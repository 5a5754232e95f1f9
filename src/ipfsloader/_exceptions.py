"""Exception hierarchy for ipfsloader.

All exceptions inherit from ``IpfsLoaderError`` so callers can catch the
package's entire error surface with a single ``except`` clause.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"


class IpfsLoaderError(Exception):
    """Base exception for all ipfsloader failures."""


# ---- input validation (raised before any network I/O) ---------------------


class InvalidEndpointError(IpfsLoaderError, ValueError):
    """The API endpoint is not an absolute http(s) URI.

    Also raised when the URI carries a query string or a fragment.
    """


class InvalidAddressError(IpfsLoaderError, ValueError):
    """The content address does not normalise to ``/ipfs/<id>[/...]``."""


class InvalidRootError(IpfsLoaderError, ValueError):
    """The download root does not resolve inside the base directory."""


# ---- pre-flight size gate --------------------------------------------------


class UnexpectedResponseFormatError(IpfsLoaderError):
    """The node answered the size probe with something other than JSON.

    Usually a sign of a misconfigured or incompatible endpoint (a public
    gateway instead of the RPC API, a proxy error page, ...).
    """


class ProbeFailedError(IpfsLoaderError):
    """The size probe was rejected by the node or could not be sent."""

    def __init__(self, address: str, message: str) -> None:
        self.address = address
        self.message = message
        super().__init__(f"Size probe failed for {address}: {message}")


class SizeExceededError(IpfsLoaderError):
    """The reported cumulative size is above the caller's ceiling.

    A policy decision rather than an infrastructure fault; callers may
    want to handle it differently from ``FetchFailedError``.
    """

    def __init__(self, address: str, actual: int, max_size: int) -> None:
        self.address = address
        self.actual = actual
        self.max_size = max_size
        super().__init__(
            f"The size for {address} is {actual} while the allowed size "
            f"is {max_size}"
        )


# ---- content retrieval -----------------------------------------------------


class FetchFailedError(IpfsLoaderError):
    """The content request failed (non-200 status or transport error)."""

    def __init__(self, address: str, reason: str | None = None) -> None:
        self.address = address
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Path {address} not found or not available{detail}")


# ---- archive integrity and safety ------------------------------------------


class TruncatedArchiveError(IpfsLoaderError):
    """The stream ended before a header or a member's data was complete."""


class MalformedHeaderError(IpfsLoaderError):
    """A header block is structurally invalid.

    Raised for unparseable size fields, checksum mismatches, undecodable
    names, oversized entries and terminators that break the configured
    terminator policy.
    """


class PathEscapeError(IpfsLoaderError):
    """A member's path resolves outside the extraction target.

    Raised for parent-directory components (``../``), absolute paths and
    null bytes in member names.
    """
