"""IPFSLoader: size-gated download and extraction of IPFS content.

``IPFSLoader.download()`` runs the whole pipeline for one content
address: normalise, probe the size (only when a ceiling is given),
fetch the TAR stream and unpack it under the download root.  Every
failure aborts the call and propagates unchanged; nothing is retried.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = (
    "IPFSLoader",
    "default_base_path",
    "download",
)

import logging
import os
from pathlib import Path

import httpx
import platformdirs

from ipfsloader._client import GatewayClient
from ipfsloader._core import extract_archive
from ipfsloader._exceptions import SizeExceededError
from ipfsloader._normalize import (
    extraction_target,
    normalize_content_address,
    normalize_download_root,
    normalize_endpoint,
)
from ipfsloader._types import TerminatorPolicy

log = logging.getLogger("ipfsloader.loader")

_APP_NAME = "ipfsloader"


# ---- environment-variable configuration helpers ----------------------------
# Each helper reads the relevant IPFSLOADER_* variable and returns its typed
# value, falling back to *fallback* on absence or parse failure.


def _env_float(name: str, fallback: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return fallback
    try:
        return float(raw)
    except ValueError:
        return fallback


def _env_bool(name: str, fallback: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return fallback
    return raw.lower() not in ("0", "false", "no", "off", "")


def _env_terminator_policy() -> TerminatorPolicy:
    raw = os.environ.get("IPFSLOADER_TERMINATOR_POLICY")
    if raw is None:
        return TerminatorPolicy.BLANK_NAME
    try:
        return TerminatorPolicy(raw.lower())
    except ValueError:
        return TerminatorPolicy.BLANK_NAME


# Module-level singletons evaluated once at import time.
_DEFAULT_TERMINATOR_POLICY: TerminatorPolicy = _env_terminator_policy()


def default_base_path() -> Path:
    """Return the base storage directory all download roots live under.

    ``IPFSLOADER_BASE_PATH`` wins; otherwise the per-user data directory
    for the application as reported by ``platformdirs``.
    """
    raw = os.environ.get("IPFSLOADER_BASE_PATH")
    if raw:
        return Path(raw)
    return Path(platformdirs.user_data_dir(_APP_NAME))


class IPFSLoader:
    """Downloads ``/ipfs/...`` content into a sandboxed directory tree.

    :param api_endpoint: The node's RPC endpoint.  ``None`` reads
        ``IPFSLOADER_API_ENDPOINT``; empty means ``http://localhost:5001``.
    :param download_root: Where content is unpacked, relative to
        *base_path* (absolute paths must still lie inside it).  ``None``
        means ``<base_path>/IPFS-Cache``.
    :param base_path: The directory no write may ever escape.  ``None``
        means ``default_base_path()``.
    :param client: An ``httpx.Client`` to send requests with.  When
        omitted the loader creates (and closes) its own.
    :param timeout: Timeout in seconds for the client created here.
    :param terminator_policy: How the end of the TAR stream is recognised.
    :param verify_checksum: Verify TAR header checksums.
    :param max_entry_size: Reject members declaring more data than this.
    :raises InvalidEndpointError: If *api_endpoint* is not a clean
        http(s) URI.
    :raises InvalidRootError: If *download_root* escapes *base_path*.
    """

    def __init__(
        self,
        api_endpoint: str | None = None,
        download_root: str | os.PathLike[str] | None = None,
        *,
        base_path: str | os.PathLike[str] | None = None,
        client: httpx.Client | None = None,
        timeout: float = _env_float("IPFSLOADER_TIMEOUT", 30.0),
        terminator_policy: TerminatorPolicy = _DEFAULT_TERMINATOR_POLICY,
        verify_checksum: bool = _env_bool("IPFSLOADER_VERIFY_CHECKSUM", True),
        max_entry_size: int | None = None,
    ) -> None:
        if api_endpoint is None:
            api_endpoint = os.environ.get("IPFSLOADER_API_ENDPOINT")
        self.api_endpoint = normalize_endpoint(api_endpoint)

        self.base_path = Path(base_path or default_base_path()).resolve()
        self.download_root = normalize_download_root(download_root, self.base_path)

        self._terminator_policy = terminator_policy
        self._verify_checksum = verify_checksum
        self._max_entry_size = max_entry_size
        self._gateway = GatewayClient(self.api_endpoint, client=client, timeout=timeout)

    # ---- context manager ---------------------------------------------------

    def __enter__(self) -> IPFSLoader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._gateway.close()

    # ---- download ----------------------------------------------------------

    def download(self, address: str, max_size: int = 0) -> Path:
        """Download *address* into the download root.

        *address* is ``/ipfs/<cid>[/path...]`` or ``ipfs://<cid>[/path...]``.
        When *max_size* is nonzero the node is asked for the content's
        cumulative size first and nothing is fetched if it is larger.
        Zero means no limit (and no probe request).

        The archive's single root member is unpacked into
        ``<download_root>/<cid>/<path minus last segment>``, which is
        returned.

        Members already extracted stay on disk if a later one fails.
        """
        address = normalize_content_address(address)
        if isinstance(max_size, bool) or not isinstance(max_size, int):
            raise TypeError(f"max_size must be an int, got {type(max_size).__name__}")
        if max_size < 0:
            raise ValueError(f"max_size must not be negative, got {max_size}")

        target = extraction_target(self.download_root, address)
        log.info("Downloading object %s to: %s", address, self.download_root)

        if max_size:
            report = self._gateway.probe_size(address)
            actual = report.cumulative_size
            if actual is not None and actual > max_size:
                raise SizeExceededError(address, actual, max_size)

        with self._gateway.fetch(address) as stream:
            extracted = extract_archive(
                stream,
                target,
                terminator_policy=self._terminator_policy,
                verify_checksum=self._verify_checksum,
                max_entry_size=self._max_entry_size,
            )

        log.info("Downloaded %s: %d member(s) into %s", address, len(extracted), target)
        return target


def download(address: str, max_size: int = 0, **kwargs: object) -> Path:
    """Download *address* with a one-shot ``IPFSLoader``.

    All keyword arguments are forwarded to the ``IPFSLoader`` constructor.
    """
    with IPFSLoader(**kwargs) as loader:  # type: ignore[arg-type]
        return loader.download(address, max_size)
