"""
Single-writer guard per collection.

A periodic tick and an immediate post-write sync can overlap, and the
daemon and native host may both run against the same ~/.kaya. Each
collection kind gets one try-lock: an in-process lock plus an advisory
``flock`` on ``~/.kaya/.locks/<kind>.lock``. Whoever fails to take it
skips the pass instead of waiting.
"""

from __future__ import annotations

import logging
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional

from ..errors import IoFailure

if sys.platform != "win32":
    import fcntl

    HAS_FCNTL = True
else:
    HAS_FCNTL = False

logger = logging.getLogger("savebutton.sync.guard")

LOCK_DIR = ".locks"


class CollectionGuard:
    """Non-blocking exclusive guard for one collection kind.

    Args:
        home: Kaya home directory.
        name: Lock name, normally the collection kind.
    """

    def __init__(self, home: Path, name: str) -> None:
        self.name = name
        self.lock_file = home / LOCK_DIR / f"{name}.lock"
        self._lock = threading.Lock()

    @contextmanager
    def try_hold(self) -> Iterator[bool]:
        """Yield True while holding the guard, False if someone else has it."""
        if not self._lock.acquire(blocking=False):
            logger.debug("%s pass already running in this process", self.name)
            yield False
            return
        handle: Optional[IO[str]] = None
        try:
            handle = self._lock_file()
            if HAS_FCNTL and handle is None:
                yield False
                return
            yield True
        finally:
            if handle is not None:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
                handle.close()
            self._lock.release()

    def _lock_file(self) -> Optional[IO[str]]:
        if not HAS_FCNTL:
            return None
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.lock_file, "w")
        except OSError as exc:
            raise IoFailure(f"Cannot open lock file {self.lock_file}: {exc}") from exc
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            handle.close()
            logger.debug("%s pass already running in another process", self.name)
            return None
        return handle
