"""
Save Button Daemon -- the optional localhost front-end.

The extension pushes files here over plain HTTP when the daemon is
running. Every write lands in ~/.kaya; a background thread reconciles
~/.kaya with the account server every minute, and anga/meta writes
trigger an immediate pass as well.

    GET  /health                  ok
    GET  /anga | /meta            newline-joined filenames
    GET  /words                   anga names with words
    GET  /words/{anga}            filenames under words/{anga}
    POST /anga/{name}             raw body -> ~/.kaya/anga/{name}
    POST /meta/{name}             raw body -> ~/.kaya/meta/{name}
    POST /words/{anga}/{name}     raw body -> ~/.kaya/words/{anga}/{name}
    POST /config                  {"server","email","password"}
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ValidationError

from .config import Config, ensure_directories, resolve_home, save_config
from .errors import SaveButtonError
from .logs import setup_logging
from .scheduler import DEFAULT_SYNC_INTERVAL, PeriodicSync
from .store import (
    InvalidName,
    list_collection,
    list_words_dirs,
    list_words_files,
    write_file,
    write_words_file,
)
from .sync.engine import SyncEngine
from .sync.models import CollectionKind

logger = logging.getLogger("savebutton.daemon")

DEFAULT_PORT = 21420
PID_FILE = "daemon.pid"
LOG_FILE = "daemon-log"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class DaemonConfig:
    """Configuration for the daemon process.

    Attributes:
        home: Kaya home directory.
        port: Localhost port for the extension.
        sync_interval: Seconds between background sync passes.
        log_file: Path for daemon log output.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        port: int = DEFAULT_PORT,
        sync_interval: int = DEFAULT_SYNC_INTERVAL,
    ):
        self.home = resolve_home(home)
        self.port = port
        self.sync_interval = sync_interval
        self.log_file = self.home / LOG_FILE


class ConfigUpdate(BaseModel):
    """Body of ``POST /config``. All three fields are required."""

    server: str
    email: str
    password: str


class DaemonService:
    """The localhost daemon: HTTP listener plus periodic sync.

    Args:
        config: Daemon configuration.
        engine: Sync engine; built from ``config.home`` if omitted.
    """

    def __init__(self, config: DaemonConfig, engine: Optional[SyncEngine] = None):
        self.config = config
        self.engine = engine or SyncEngine(config.home)
        self.periodic = PeriodicSync(self.engine, interval=config.sync_interval)
        self._stop_event = threading.Event()
        self._server: Optional[ThreadingHTTPServer] = None
        self._server_thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        """Bound port (differs from the configured one when that was 0)."""
        if self._server is not None:
            return self._server.server_address[1]
        return self.config.port

    def start(self) -> None:
        """Create directories, start the listener and the sync loop.

        Raises:
            OSError: If the port cannot be bound.
        """
        self._setup_logging()
        ensure_directories(self.config.home)
        self._write_pid()
        self._setup_signals()

        self._start_api_server()
        self.periodic.start()
        logger.info("Save Button daemon listening on 127.0.0.1:%d", self.port)

    def stop(self) -> None:
        """Stop the listener and the sync loop, remove the PID file."""
        logger.info("Daemon stopping...")
        self._stop_event.set()
        self.periodic.stop()

        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._server_thread:
            self._server_thread.join(timeout=5)
            self._server_thread = None

        self._remove_pid()
        logger.info("Daemon stopped.")

    def run_forever(self) -> None:
        """Block until a stop signal arrives, then shut down."""
        try:
            while not self._stop_event.is_set():
                self._stop_event.wait(timeout=1)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    # ------------------------------------------------------------------
    # Request handling (called from handler threads)
    # ------------------------------------------------------------------

    def handle_config(self, body: bytes) -> None:
        """Replace the stored config wholesale from a ``POST /config`` body.

        Raises:
            ValueError: If the body is not valid JSON with all fields.
            SaveButtonError: If the config cannot be written.
        """
        try:
            incoming = ConfigUpdate.model_validate_json(body)
        except ValidationError as exc:
            raise ValueError(f"Invalid config: {exc}") from exc
        config = Config().updated(
            server=incoming.server, email=incoming.email, password=incoming.password
        )
        save_config(config, self.config.home)
        logger.info("Config updated via POST /config")

    def _start_api_server(self) -> None:
        """Start the HTTP listener in a background thread."""
        service = self
        home = self.config.home

        class DaemonHandler(BaseHTTPRequestHandler):
            """Routes for the browser extension."""

            def do_OPTIONS(self):
                self._respond(204, b"")

            def do_GET(self):
                parts = self._segments()
                try:
                    if parts == ["health"]:
                        self._respond(200, "ok")
                    elif parts in (["anga"], ["meta"]):
                        names = list_collection(home, CollectionKind(parts[0]))
                        self._respond(200, "\n".join(names))
                    elif parts == ["words"]:
                        self._respond(200, "\n".join(list_words_dirs(home)))
                    elif len(parts) == 2 and parts[0] == "words":
                        self._respond(200, "\n".join(list_words_files(home, parts[1])))
                    else:
                        self._respond(404, "Not found")
                except InvalidName:
                    self._respond(400, "Invalid anga name")
                except OSError as exc:
                    self._respond(500, str(exc))

            def do_POST(self):
                parts = self._segments()
                body = self._read_body()
                try:
                    if len(parts) >= 2 and parts[0] in ("anga", "meta"):
                        kind = CollectionKind(parts[0])
                        write_file(home, kind, "/".join(parts[1:]), body)
                        self._respond(200, "ok")
                        service.periodic.run_once()
                    elif len(parts) >= 3 and parts[0] == "words":
                        anga, filename = parts[1], "/".join(parts[2:])
                        write_words_file(home, anga, filename, body)
                        self._respond(200, "ok")
                    elif parts == ["config"]:
                        service.handle_config(body)
                        self._respond(200, '{"ok":true}', "application/json")
                    else:
                        self._respond(404, "Not found")
                except ValueError as exc:
                    self._respond(400, str(exc))
                except SaveButtonError as exc:
                    logger.error("Failed to handle POST %s: %s", self.path, exc)
                    self._respond(500, str(exc))

            def _segments(self) -> list[str]:
                path = urlsplit(self.path).path.lstrip("/")
                return [unquote(part) for part in path.split("/")]

            def _read_body(self) -> bytes:
                length = int(self.headers.get("Content-Length") or 0)
                return self.rfile.read(length) if length > 0 else b""

            def _respond(self, status: int, body, content_type: str = "text/plain"):
                data = body.encode("utf-8") if isinstance(body, str) else body
                self.send_response(status)
                for name, value in CORS_HEADERS.items():
                    self.send_header(name, value)
                if status != 204:
                    self.send_header("Content-Type", f"{content_type}; charset=utf-8")
                    self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                if data:
                    self.wfile.write(data)
                self.wfile.flush()

            def log_message(self, format, *args):
                logger.debug("API: %s", format % args)

        self._server = ThreadingHTTPServer(("127.0.0.1", self.config.port), DaemonHandler)
        self._server_thread = threading.Thread(
            target=self._server.serve_forever,
            name="savebutton-api",
            daemon=True,
        )
        self._server_thread.start()

    def _setup_logging(self) -> None:
        setup_logging(self.config.log_file)

    def _setup_signals(self) -> None:
        """Register signal handlers for graceful shutdown."""
        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, self._handle_signal)

    def _handle_signal(self, signum, frame):
        logger.info("Received signal %s, stopping", signal.Signals(signum).name)
        self._stop_event.set()

    def _write_pid(self) -> None:
        pid_path = self.config.home / PID_FILE
        pid_path.parent.mkdir(parents=True, exist_ok=True)
        pid_path.write_text(str(os.getpid()), encoding="utf-8")

    def _remove_pid(self) -> None:
        pid_path = self.config.home / PID_FILE
        if pid_path.exists():
            pid_path.unlink()


def read_pid(home: Optional[Path] = None) -> Optional[int]:
    """Read the daemon PID from the PID file.

    Args:
        home: Kaya home directory.

    Returns:
        PID as int, or None if not running.
    """
    pid_path = resolve_home(home) / PID_FILE
    if not pid_path.exists():
        return None
    try:
        pid = int(pid_path.read_text(encoding="utf-8").strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        pid_path.unlink(missing_ok=True)
        return None


def is_running(home: Optional[Path] = None) -> bool:
    """Check if the daemon is currently running."""
    return read_pid(home) is not None
