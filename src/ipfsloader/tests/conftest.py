"""Archive and gateway fixtures for ipfsloader tests.

Archives are real byte streams, built either with Python's ``tarfile``
module or header by header when a test needs a stream ``tarfile``
refuses to write.  The node is an ``httpx.MockTransport`` that answers
the two RPC commands and records every request it sees.
"""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"

import io
import json
import tarfile

import httpx
import pytest

# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _tar_bytes(callback, *, format: int = tarfile.USTAR_FORMAT) -> bytes:
    """Create a TAR archive in memory via *callback(tf)* and return bytes."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=format) as tf:
        callback(tf)
    return buf.getvalue()


def _add_regular(tf, name: str, content: bytes) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(content)
    tf.addfile(info, io.BytesIO(content))


def _add_directory(tf, name: str) -> None:
    info = tarfile.TarInfo(name=name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tf.addfile(info)


def _raw_header(
    name: str | bytes,
    size: int = 0,
    typeflag: bytes = b"0",
    *,
    size_field: bytes | None = None,
    checksum: bool = True,
) -> bytes:
    """Build one 512-byte ustar header block by hand."""
    raw_name = name.encode("utf-8") if isinstance(name, str) else name
    header = bytearray(512)
    header[0:100] = raw_name[:100].ljust(100, b"\x00")
    header[100:108] = b"0000644\x00"
    header[108:116] = b"0000000\x00"
    header[116:124] = b"0000000\x00"
    header[124:136] = size_field if size_field is not None else b"%011o\x00" % size
    header[136:148] = b"14672033000\x00"
    header[148:156] = b" " * 8
    header[156:157] = typeflag
    header[257:265] = b"ustar\x0000"
    if checksum:
        header[148:156] = b"%06o\x00 " % sum(header)
    return bytes(header)


def _raw_member(name: str, data: bytes = b"", typeflag: bytes = b"0") -> bytes:
    padding = -len(data) % 512
    return _raw_header(name, len(data), typeflag) + data + b"\x00" * padding


def _pax_record(key: str, value: str) -> bytes:
    """Encode one ``"<len> <key>=<value>\\n"`` PAX record."""
    body = f" {key}={value}\n".encode()
    length = len(body) + 1
    while len(str(length)) + len(body) != length:
        length += 1
    return str(length).encode() + body


_END_OF_ARCHIVE = b"\x00" * 1024


# ---------------------------------------------------------------------------
# factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def header_factory():
    """Return a builder for single raw header blocks."""
    return _raw_header


@pytest.fixture()
def pax_record():
    """Return a builder for single PAX extended header records."""
    return _pax_record


@pytest.fixture()
def tarfile_factory():
    """Return a builder for archives written by ``tarfile``.

    ``build([(name, data), ...], format=...)`` adds a regular file per
    member, or a directory where *data* is ``None``.
    """

    def build(members, *, format: int = tarfile.USTAR_FORMAT) -> bytes:
        def add(tf):
            for name, data in members:
                if data is None:
                    _add_directory(tf, name)
                else:
                    _add_regular(tf, name, data)

        return _tar_bytes(add, format=format)

    return build


@pytest.fixture()
def archive_factory():
    """Return a builder for raw archives.

    ``build([(name, data, typeflag), ...], terminator=...)`` packs the
    members in order and appends *terminator* (two zero blocks by
    default).
    """

    def build(members, *, terminator: bytes = _END_OF_ARCHIVE) -> bytes:
        body = b"".join(_raw_member(*member) for member in members)
        return body + terminator

    return build


# ---------------------------------------------------------------------------
# legitimate archives
# ---------------------------------------------------------------------------


@pytest.fixture()
def legitimate_archive():
    """A safe archive with a directory, nested files and a top-level file."""

    def build(tf):
        _add_regular(tf, "readme.txt", b"Hello, world!\n")
        _add_directory(tf, "data/")
        _add_regular(tf, "data/report.csv", b"a,b,c\n1,2,3\n")
        _add_regular(tf, "data/notes.txt", b"Some notes.\n")

    return _tar_bytes(build)


@pytest.fixture()
def single_file_archive():
    """What a node returns for ``/ipfs/<cid>/.../file.txt``."""

    def build(tf):
        _add_regular(tf, "file.txt", b"hello world")

    return _tar_bytes(build)


@pytest.fixture()
def directory_archive():
    """What a node returns for a directory CID: one root directory member."""

    def build(tf):
        _add_directory(tf, "bafyDIR")
        _add_regular(tf, "bafyDIR/index.html", b"<h1>hi</h1>")
        _add_directory(tf, "bafyDIR/assets")
        _add_regular(tf, "bafyDIR/assets/logo.svg", b"<svg/>" * 200)

    return _tar_bytes(build)


@pytest.fixture()
def dot_root_archive():
    """Archive rooted at ``./`` as produced by ``tar -C dir .``."""

    def build(tf):
        _add_directory(tf, "./")
        _add_regular(tf, "./hello.txt", b"hi from the root\n")

    return _tar_bytes(build)


@pytest.fixture()
def pax_archive():
    """Archive whose file is preceded by a PAX extended header.

    The extended header (type ``x``) carries more than one block of
    data, so skipping it without consuming that data would desync every
    following header.
    """

    def build(tf):
        info = tarfile.TarInfo(name="described.txt")
        data = b"payload after pax\n"
        info.size = len(data)
        info.pax_headers = {"comment": "x" * 1500}
        tf.addfile(info, io.BytesIO(data))
        _add_regular(tf, "after.txt", b"still aligned\n")

    return _tar_bytes(build, format=tarfile.PAX_FORMAT)


@pytest.fixture()
def symlink_archive():
    """Archive with a symlink between two regular files."""

    def build(tf):
        _add_regular(tf, "before.txt", b"before\n")
        info = tarfile.TarInfo(name="link")
        info.type = tarfile.SYMTYPE
        info.linkname = "before.txt"
        tf.addfile(info)
        _add_regular(tf, "after.txt", b"after\n")

    return _tar_bytes(build)


# ---------------------------------------------------------------------------
# hostile and broken archives
# ---------------------------------------------------------------------------


@pytest.fixture()
def traversal_archive():
    """Archive with a relative path traversal entry ``../../evil.txt``."""
    return _raw_member("../../evil.txt", b"pwned") + _END_OF_ARCHIVE


@pytest.fixture()
def absolute_path_archive():
    """Archive with an absolute path entry ``/etc/passwd``."""
    return _raw_member("/etc/passwd", b"root:x:0:0:") + _END_OF_ARCHIVE


@pytest.fixture()
def truncated_archive():
    """A header declaring 1000 bytes followed by only 100."""
    return _raw_header("big.bin", 1000) + b"A" * 100


@pytest.fixture()
def unterminated_archive():
    """A complete member with no end-of-archive marker after it."""
    return _raw_member("lonely.txt", b"no marker follows")


# ---------------------------------------------------------------------------
# storage
# ---------------------------------------------------------------------------


@pytest.fixture()
def base_path(tmp_path):
    """An isolated application-storage base directory."""
    path = tmp_path / "storage"
    path.mkdir()
    return path


# ---------------------------------------------------------------------------
# gateway double
# ---------------------------------------------------------------------------


class RecordingGateway:
    """Answers ``files/stat`` and ``get`` and records every request.

    Tests tweak the public attributes before issuing requests.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.archive = b""
        self.cumulative_size = 0
        self.stat_status = 200
        self.stat_body: object = None
        self.stat_content_type = "application/json"
        self.get_status = 200
        self.error: type[httpx.HTTPError] | None = None
        self.client = httpx.Client(transport=httpx.MockTransport(self.handle))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("simulated transport failure", request=request)

        if request.url.path.endswith("/api/v0/files/stat"):
            return self._stat()
        if request.url.path.endswith("/api/v0/get"):
            return self._get()
        return httpx.Response(404, text="404 page not found")

    def _stat(self) -> httpx.Response:
        body = self.stat_body
        if body is None:
            if self.stat_status == 200:
                body = {
                    "Hash": "bafyEXAMPLE",
                    "Size": self.cumulative_size,
                    "CumulativeSize": self.cumulative_size,
                    "Type": "file",
                }
            else:
                body = {"Message": "node not found", "Code": 0, "Type": "error"}
        content = body if isinstance(body, bytes) else json.dumps(body).encode()
        return httpx.Response(
            self.stat_status,
            headers={"Content-Type": self.stat_content_type},
            content=content,
        )

    def _get(self) -> httpx.Response:
        if self.get_status != 200:
            return httpx.Response(
                self.get_status,
                json={"Message": "failed to resolve", "Code": 0, "Type": "error"},
            )
        return httpx.Response(
            200,
            headers={"Content-Type": "text/plain"},
            content=self.archive,
        )

    def commands(self) -> list[str]:
        """Return the RPC commands seen so far, in order."""
        return [
            request.url.path.split("/api/v0/", 1)[-1] for request in self.requests
        ]


@pytest.fixture()
def gateway():
    node = RecordingGateway()
    yield node
    node.client.close()
