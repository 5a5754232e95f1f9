"""Command line entry point: download one or more addresses serially."""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"
__all__ = ("main",)

import argparse
import logging
from collections.abc import Sequence

from ipfsloader._exceptions import IpfsLoaderError
from ipfsloader._loader import IPFSLoader

log = logging.getLogger("ipfsloader")


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {raw!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {raw!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ipfsloader",
        description="Download IPFS content through a node's RPC API and "
        "unpack it under a sandboxed download root.",
    )
    parser.add_argument(
        "addresses",
        nargs="+",
        metavar="ADDRESS",
        help="/ipfs/<cid>[/path] or ipfs://<cid>[/path]",
    )
    parser.add_argument("--api-endpoint", default=None, help="RPC endpoint URL")
    parser.add_argument(
        "--base-path",
        default=None,
        help="directory no download may escape",
    )
    parser.add_argument(
        "--download-root",
        default=None,
        help="download directory, relative to the base path",
    )
    parser.add_argument(
        "--max-size",
        type=_non_negative_int,
        default=0,
        help="maximum cumulative size in bytes (0 = unlimited)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        loader = IPFSLoader(
            args.api_endpoint,
            args.download_root,
            base_path=args.base_path,
        )
    except IpfsLoaderError as exc:
        log.error("%s", exc)
        return 2

    failures = 0
    with loader:
        for address in args.addresses:
            try:
                target = loader.download(address, args.max_size)
            except IpfsLoaderError as exc:
                failures += 1
                log.error("Could not download %s: %s", address, exc)
                continue
            print(target)
    return 1 if failures else 0
