"""Shared test fixtures for savebutton."""

from __future__ import annotations

import base64
import threading
from email.parser import BytesParser
from email.policy import HTTP
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

import pytest

from savebutton.config import Config, ensure_directories, save_config

EMAIL = "me@example.com"
PASSWORD = "secret"


class RemoteServerStub:
    """In-memory account server speaking the /api/v1 file API.

    Attributes:
        files: ``{"anga": {name: bytes}, "meta": {...}}``.
        words: ``{anga_name: {name: bytes}}``.
        fail: Forced status per path below the account, e.g. ``"meta"``
            or ``"anga/c.txt"``.
        push_status: Forced status for every upload, if set.
        uploads: ``(collection, filename, content, mime)`` per accepted POST.
        requests: ``(method, raw_path)`` for every request seen.
    """

    def __init__(self, email: str = EMAIL, password: str = PASSWORD) -> None:
        self.email = email
        self.password = password
        self.files: dict[str, dict[str, bytes]] = {"anga": {}, "meta": {}}
        self.words: dict[str, dict[str, bytes]] = {}
        self.fail: dict[str, int] = {}
        self.push_status: Optional[int] = None
        self.uploads: list[tuple[str, str, bytes, str]] = []
        self.requests: list[tuple[str, str]] = []
        self._server: Optional[ThreadingHTTPServer] = None

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self._server.server_address[1]}"

    def start(self) -> None:
        handler = type("StubHandler", (_StubHandler,), {"stub": self})
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        threading.Thread(target=self._server.serve_forever, daemon=True).start()

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()

    def handle(self, req: BaseHTTPRequestHandler, method: str) -> None:
        raw = urlsplit(req.path).path
        self.requests.append((method, raw))
        body = b""
        if method == "POST":
            body = req.rfile.read(int(req.headers.get("Content-Length") or 0))

        parts = [unquote(p) for p in raw.strip("/").split("/")]
        if parts[:2] != ["api", "v1"] or len(parts) < 4:
            return _reply(req, 404)
        if not self._authorized(req.headers.get("Authorization"), parts[2]):
            return _reply(req, 401, b"Unauthorized")

        rest = parts[3:]
        forced = self.fail.get("/".join(rest))
        if forced is not None:
            return _reply(req, forced, b"error")

        if method == "POST":
            return self._push(req, rest, body)
        if rest == ["words"]:
            return _reply(req, 200, _listing(self.words))
        if rest[0] == "words":
            bucket = self.words.get(rest[1])
        else:
            bucket = self.files.get(rest[0])
        depth = 2 if rest[0] == "words" else 1
        if bucket is None:
            return _reply(req, 404)
        if len(rest) == depth:
            return _reply(req, 200, _listing(bucket))
        content = bucket.get(rest[depth])
        if content is None:
            return _reply(req, 404)
        return _reply(req, 200, content)

    def _push(self, req, rest, body) -> None:
        if len(rest) != 2 or rest[0] not in self.files:
            return _reply(req, 404)
        if self.push_status is not None:
            return _reply(req, self.push_status)
        collection, filename = rest
        if filename in self.files[collection]:
            return _reply(req, 409, b"exists")

        envelope = b"Content-Type: " + req.headers["Content-Type"].encode() + b"\r\n\r\n"
        message = BytesParser(policy=HTTP).parsebytes(envelope + body)
        for part in message.iter_parts():
            content = part.get_payload(decode=True)
            self.uploads.append(
                (collection, part.get_filename(), content, part.get_content_type())
            )
            self.files[collection][filename] = content
        return _reply(req, 201, b"created")

    def _authorized(self, header: Optional[str], email: str) -> bool:
        if not header or not header.startswith("Basic ") or email != self.email:
            return False
        decoded = base64.b64decode(header[len("Basic "):]).decode("utf-8")
        return decoded == f"{self.email}:{self.password}"


class _StubHandler(BaseHTTPRequestHandler):
    stub: RemoteServerStub

    def do_GET(self):
        self.stub.handle(self, "GET")

    def do_POST(self):
        self.stub.handle(self, "POST")

    def log_message(self, format, *args):
        pass


def _listing(names) -> bytes:
    return "\n".join(sorted(names)).encode("utf-8")


def _reply(req: BaseHTTPRequestHandler, status: int, body: bytes = b"") -> None:
    req.send_response(status)
    req.send_header("Content-Length", str(len(body)))
    req.end_headers()
    req.wfile.write(body)


@pytest.fixture
def kaya_home(tmp_path: Path) -> Path:
    """Provide a temporary Kaya home with anga/meta/words created."""
    home = tmp_path / ".kaya"
    home.mkdir()
    ensure_directories(home)
    return home


@pytest.fixture
def remote():
    """Run a stub account server for the duration of a test."""
    stub = RemoteServerStub()
    stub.start()
    yield stub
    stub.stop()


@pytest.fixture
def configured_home(kaya_home: Path, remote: RemoteServerStub) -> Path:
    """A Kaya home whose config points at the stub server."""
    save_config(
        Config().updated(server=remote.url, email=EMAIL, password=PASSWORD),
        kaya_home,
    )
    return kaya_home
