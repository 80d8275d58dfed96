"""
Periodic sync -- the background heartbeat of both front-ends.

One daemon thread runs ``SyncEngine.sync()`` at start and then every
``interval`` seconds until ``stop()`` sets the stop event. Front-ends
also call ``run_once()`` right after a local write; the engine's
per-collection guard keeps the two from racing.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from .errors import SaveButtonError
from .sync.engine import SyncEngine
from .sync.models import SyncReport

logger = logging.getLogger("savebutton.scheduler")

DEFAULT_SYNC_INTERVAL = 60


class SyncState:
    """Thread-safe record of recent sync activity."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.last_sync: Optional[datetime] = None
        self.syncs_completed: int = 0
        self.errors: list[str] = []

    def record_sync(self) -> None:
        with self._lock:
            self.last_sync = datetime.now(timezone.utc)
            self.syncs_completed += 1

    def record_error(self, error: str) -> None:
        """Record an error, keeping only the last 50."""
        with self._lock:
            ts = datetime.now(timezone.utc).isoformat()
            self.errors.append(f"[{ts}] {error}")
            if len(self.errors) > 50:
                self.errors = self.errors[-50:]


class PeriodicSync:
    """Cancellable fixed-cadence sync task.

    Args:
        engine: The engine to drive.
        interval: Seconds between passes.
    """

    def __init__(self, engine: SyncEngine, interval: float = DEFAULT_SYNC_INTERVAL) -> None:
        self.engine = engine
        self.interval = interval
        self.state = SyncState()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread. Calling twice is a no-op."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="savebutton-sync", daemon=True
        )
        self._thread.start()
        logger.info("Periodic sync started (every %ss)", self.interval)

    def stop(self, timeout: float = 5) -> None:
        """Signal the loop to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Periodic sync stopped")

    def run_once(self) -> Optional[SyncReport]:
        """Run one pass now, on the calling thread.

        Errors are logged and recorded, never raised.
        """
        try:
            report = self.engine.sync()
        except SaveButtonError as exc:
            logger.error("Sync error: %s", exc)
            self.state.record_error(str(exc))
            return None
        for label, error in report.errors.items():
            self.state.record_error(f"{label}: {error}")
        self.state.record_sync()
        return report

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as exc:
                logger.exception("Unexpected sync failure: %s", exc)
                self.state.record_error(f"Unexpected: {exc}")
            self._stop_event.wait(timeout=self.interval)
