"""HTTP access to an IPFS node's RPC API.

Two commands are used, both issued as ``POST`` with the content address
as the single ``arg`` query parameter:

- ``files/stat`` for the pre-flight size probe;
- ``get`` for the TAR stream itself.

Transport errors (connection failures, timeouts, protocol errors) are
wrapped in the package's own exceptions so callers never need to import
``httpx`` to handle a failed download.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = ("GatewayClient",)

import logging
import tempfile
from typing import BinaryIO

import httpx

from ipfsloader._exceptions import (
    FetchFailedError,
    ProbeFailedError,
    UnexpectedResponseFormatError,
)
from ipfsloader._normalize import normalize_endpoint
from ipfsloader._types import SizeReport

log = logging.getLogger("ipfsloader.client")

_STAT_COMMAND = "files/stat"
_GET_COMMAND = "get"
_JSON_MEDIA_TYPE = "application/json"

# Chunk size for reading the archive off the wire.
_CHUNK_SIZE = 65536

# Fetched archives stay in memory up to this size, then spill to disk.
_SPOOL_MAX_SIZE = 16 * 1024**2


def _media_type(response: httpx.Response) -> str:
    content_type = response.headers.get("Content-Type", "")
    return content_type.split(";", 1)[0].strip().lower()


def _describe(exc: httpx.HTTPError) -> str:
    return str(exc) or type(exc).__name__


class GatewayClient:
    """Thin client for the two RPC commands ipfsloader needs.

    :param endpoint: The node's API endpoint, e.g. ``http://localhost:5001``.
    :param client: An ``httpx.Client`` to send requests with.  When
        omitted a client is created (and closed by ``close()``).
    :param timeout: Timeout in seconds for the client created here.
    :param spool_max_size: In-memory buffer size for fetched archives.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
        spool_max_size: int = _SPOOL_MAX_SIZE,
    ) -> None:
        self.endpoint = normalize_endpoint(endpoint)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            trust_env=True,
        )
        self._spool_max_size = spool_max_size

    # ---- context manager ---------------------------------------------------

    def __enter__(self) -> GatewayClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying ``httpx.Client`` if this instance created it."""
        if self._owns_client:
            self._client.close()

    # ---- commands ----------------------------------------------------------

    def command_url(self, command: str) -> str:
        return f"{self.endpoint}/api/v0/{command}"

    def probe_size(self, address: str) -> SizeReport:
        """Ask the node for the cumulative size of *address*.

        Raises ``UnexpectedResponseFormatError`` when the answer is not a
        JSON report, ``ProbeFailedError`` when the node reports an error
        or cannot be reached.
        """
        url = self.command_url(_STAT_COMMAND)
        log.debug("POST %s arg=%s", url, address)
        try:
            response = self._client.post(url, params={"arg": address})
        except httpx.HTTPError as exc:
            raise ProbeFailedError(address, _describe(exc)) from exc

        # Checked before the status: a non-JSON error page is a format problem,
        # not a node-reported failure.
        media_type = _media_type(response)
        if media_type != _JSON_MEDIA_TYPE:
            raise UnexpectedResponseFormatError(
                f"The response is not JSON ({media_type or 'no content type'}). "
                "Perhaps the gateway is misconfigured"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UnexpectedResponseFormatError(
                f"The size probe response for {address} is not valid JSON"
            ) from exc

        report = SizeReport.from_json(payload)
        if response.status_code != 200:
            raise ProbeFailedError(
                address,
                report.message or f"HTTP {response.status_code}",
            )
        if not report.ok:
            raise UnexpectedResponseFormatError(
                f"The size probe response for {address} has no CumulativeSize"
            )

        log.debug("Cumulative size of %s is %d", address, report.cumulative_size)
        return report

    def fetch(self, address: str) -> BinaryIO:
        """Download the TAR stream for *address*.

        The body is read in chunks into a spooled temporary file which is
        returned rewound.  The caller owns (and must close) it.

        Raises ``FetchFailedError`` on a non-200 status or transport error.
        """
        url = self.command_url(_GET_COMMAND)
        log.debug("POST %s arg=%s", url, address)
        spool: BinaryIO = tempfile.SpooledTemporaryFile(  # type: ignore[assignment]  # noqa: SIM115
            max_size=self._spool_max_size,
        )
        try:
            with self._client.stream("POST", url, params={"arg": address}) as response:
                if response.status_code != 200:
                    raise FetchFailedError(address, f"HTTP {response.status_code}")
                total = 0
                for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
                    spool.write(chunk)
                    total += len(chunk)
        except httpx.HTTPError as exc:
            spool.close()
            raise FetchFailedError(address, _describe(exc)) from exc
        except Exception:
            spool.close()
            raise

        log.debug("Fetched %d bytes for %s", total, address)
        spool.seek(0)
        return spool
