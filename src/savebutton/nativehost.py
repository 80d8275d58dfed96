"""
Native messaging host -- the browser-launched front-end.

The browser starts this process and speaks length-prefixed JSON over
stdin/stdout: a 4-byte native-endian length, then that many bytes of
UTF-8 JSON. Each inbound message gets exactly one reply. EOF on stdin
means the browser has gone away and the host shuts down.

Inbound ``message`` values:

    config            store server/email and, if given, a new password
    config_status     report whether a password is stored
    test_connection   try the credentials against the server
    anga              save a file to ~/.kaya/anga (text or base64)
    meta              save a TOML sidecar to ~/.kaya/meta

Anything else is answered with ``success: false``.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import struct
import sys
import threading
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import (
    Config,
    Credentials,
    ensure_directories,
    load_config,
    resolve_home,
    save_config,
)
from .errors import ConfigIncomplete, DecodeFailure, SaveButtonError
from .logs import setup_logging
from .scheduler import DEFAULT_SYNC_INTERVAL, PeriodicSync
from .store import bookmarked_urls, write_file
from .sync.client import RemoteStore
from .sync.engine import SyncEngine
from .sync.models import CollectionKind

logger = logging.getLogger("savebutton.nativehost")

LOG_FILE = "log"
HEADER = struct.Struct("=I")
MAX_TO_BROWSER = 1024 * 1024


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def read_frame(stream: BinaryIO) -> Optional[bytes]:
    """Read one framed message body.

    Returns:
        The raw JSON bytes, or None at end of input (including a
        connection that drops mid-frame).
    """
    header = _read_exact(stream, HEADER.size)
    if len(header) < HEADER.size:
        return None
    (length,) = HEADER.unpack(header)
    body = _read_exact(stream, length)
    if len(body) < length:
        return None
    return body


def write_frame(stream: BinaryIO, payload: dict[str, Any]) -> None:
    """Frame and write one JSON message.

    Raises:
        ValueError: If the encoded message exceeds the browser's 1 MiB limit.
    """
    body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    if len(body) > MAX_TO_BROWSER:
        raise ValueError(f"Message of {len(body)} bytes exceeds browser limit")
    stream.write(HEADER.pack(len(body)))
    stream.write(body)
    stream.flush()


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class MessageKind(str, Enum):
    """Every inbound message tag the host understands."""

    CONFIG = "config"
    CONFIG_STATUS = "config_status"
    TEST_CONNECTION = "test_connection"
    ANGA = "anga"
    META = "meta"


class IncomingMessage(BaseModel):
    """One request from the extension."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    message: str
    filename: Optional[str] = None
    content_type: Optional[str] = Field(default=None, alias="type")
    text: Optional[str] = None
    base64: Optional[str] = None
    server: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class OutgoingMessage(BaseModel):
    """One reply to the extension. Unset optional fields are omitted."""

    id: Optional[int] = None
    success: bool
    error: Optional[str] = None
    urls: Optional[list[str]] = None
    message_type: Optional[str] = None
    has_password: Optional[bool] = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"id": self.id, "success": self.success}
        if self.error is not None:
            wire["error"] = self.error
        if self.urls is not None:
            wire["urls"] = self.urls
        if self.message_type is not None:
            wire["type"] = self.message_type
        if self.has_password is not None:
            wire["has_password"] = self.has_password
        return wire


class NativeHostConfig:
    """Settings for the native host process.

    Attributes:
        home: Kaya home directory.
        sync_interval: Seconds between background sync passes.
        log_file: Path for host log output.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        sync_interval: int = DEFAULT_SYNC_INTERVAL,
    ):
        self.home = resolve_home(home)
        self.sync_interval = sync_interval
        self.log_file = self.home / LOG_FILE


# ---------------------------------------------------------------------------
# Host
# ---------------------------------------------------------------------------


class NativeHost:
    """Reads requests from the browser, answers them, keeps ~/.kaya synced.

    Args:
        config: Host settings.
        engine: Sync engine; built from ``config.home`` if omitted.
        store_factory: Builds the RemoteStore used by test_connection.
    """

    def __init__(
        self,
        config: NativeHostConfig,
        engine: Optional[SyncEngine] = None,
        store_factory: Callable[[Credentials], RemoteStore] = RemoteStore,
    ):
        self.config = config
        self.home = config.home
        self.engine = engine or SyncEngine(config.home)
        self.periodic = PeriodicSync(self.engine, interval=config.sync_interval)
        self.store_factory = store_factory
        self._write_lock = threading.Lock()
        self._handlers: dict[MessageKind, Callable[[IncomingMessage], OutgoingMessage]] = {
            MessageKind.CONFIG: self.handle_config,
            MessageKind.CONFIG_STATUS: self.handle_config_status,
            MessageKind.TEST_CONNECTION: self.handle_test_connection,
            MessageKind.ANGA: self.handle_anga,
            MessageKind.META: self.handle_meta,
        }

    # -- loop ---------------------------------------------------------------

    def run(self, stdin: Optional[BinaryIO] = None, stdout: Optional[BinaryIO] = None) -> None:
        """Serve messages until the browser closes stdin."""
        stdin = stdin or sys.stdin.buffer
        stdout = stdout or sys.stdout.buffer

        ensure_directories(self.home)
        logger.info("Save Button native host started")
        self.periodic.start()
        try:
            while True:
                frame = read_frame(stdin)
                if frame is None:
                    break
                self._serve(frame, stdout)
        finally:
            self.periodic.stop()
            logger.info("Save Button native host shutting down")

    def _serve(self, frame: bytes, stdout: BinaryIO) -> None:
        try:
            msg = IncomingMessage.model_validate_json(frame)
        except ValidationError as exc:
            logger.error("Error reading message: %s", exc)
            self._send(stdout, OutgoingMessage(success=False, error=f"JSON error: {exc}"))
            return

        response = self.dispatch(msg)
        self._send(stdout, response)

        if response.success and msg.message in (MessageKind.ANGA.value, MessageKind.META.value):
            self.periodic.run_once()

    def _send(self, stdout: BinaryIO, response: OutgoingMessage) -> None:
        try:
            with self._write_lock:
                write_frame(stdout, response.to_wire())
        except (OSError, ValueError) as exc:
            logger.error("Failed to write response: %s", exc)

    def dispatch(self, msg: IncomingMessage) -> OutgoingMessage:
        """Route a message to its handler and turn errors into replies."""
        try:
            kind = MessageKind(msg.message)
        except ValueError:
            return OutgoingMessage(
                id=msg.id, success=False, error=f"Unknown message type: {msg.message}"
            )
        try:
            return self._handlers[kind](msg)
        except (SaveButtonError, ValueError) as exc:
            logger.error("%s message failed: %s", kind.value, exc)
            return OutgoingMessage(id=msg.id, success=False, error=str(exc))

    def _bookmarks_reply(self, msg: IncomingMessage) -> OutgoingMessage:
        return OutgoingMessage(
            id=msg.id,
            success=True,
            urls=bookmarked_urls(self.home),
            message_type="bookmarks",
        )

    # -- handlers -------------------------------------------------------------

    def handle_config(self, msg: IncomingMessage) -> OutgoingMessage:
        """Merge server/email into the stored config; re-key on a new password."""
        logger.info("Received config message: server=%s, email=%s", msg.server, msg.email)
        try:
            existing = load_config(self.home)
        except SaveButtonError as exc:
            logger.warning("Ignoring unreadable config: %s", exc)
            existing = Config()
        save_config(
            existing.updated(server=msg.server, email=msg.email, password=msg.password),
            self.home,
        )
        return self._bookmarks_reply(msg)

    def handle_config_status(self, msg: IncomingMessage) -> OutgoingMessage:
        config = load_config(self.home)
        return OutgoingMessage(id=msg.id, success=True, has_password=config.has_password)

    def handle_test_connection(self, msg: IncomingMessage) -> OutgoingMessage:
        """Check credentials, preferring values in the message over stored ones."""
        config = load_config(self.home)
        server = msg.server or config.server
        if not server:
            raise ConfigIncomplete("Missing server")
        email = msg.email or config.email
        if not email:
            raise ConfigIncomplete("Missing email")
        password = msg.password if msg.password is not None else config.password()

        store = self.store_factory(Credentials(server=server, email=email, password=password))
        try:
            store.check_connection()
        finally:
            store.close()
        return self._bookmarks_reply(msg)

    def handle_anga(self, msg: IncomingMessage) -> OutgoingMessage:
        logger.info("Received anga message: filename=%s, type=%s", msg.filename, msg.content_type)
        filename = _require(msg.filename, "Missing filename")
        if msg.content_type == "base64":
            encoded = _require(msg.base64, "Missing base64 content")
            try:
                content = base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise DecodeFailure(f"Base64 decode error: {exc}") from exc
        elif msg.content_type in (None, "text"):
            content = _require(msg.text, "Missing text content").encode("utf-8")
        else:
            raise DecodeFailure(f"Unknown content type: {msg.content_type}")

        write_file(self.home, CollectionKind.ANGA, filename, content)
        return self._bookmarks_reply(msg)

    def handle_meta(self, msg: IncomingMessage) -> OutgoingMessage:
        logger.info("Received meta message: filename=%s", msg.filename)
        filename = _require(msg.filename, "Missing filename")
        text = _require(msg.text, "Missing text content")
        write_file(self.home, CollectionKind.META, filename, text.encode("utf-8"))
        return self._bookmarks_reply(msg)


def _require(value: Optional[str], error: str) -> str:
    if value is None:
        raise DecodeFailure(error)
    return value


def run_native_host(config: Optional[NativeHostConfig] = None) -> None:
    """Entry point used by the CLI: set up logging and serve stdio."""
    config = config or NativeHostConfig()
    setup_logging(config.log_file)
    NativeHost(config).run()


def main() -> None:
    """Console-script entry point named in the browser's host manifest."""
    run_native_host()
