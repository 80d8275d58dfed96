"""Logging setup shared by the daemon and the native host."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(
    log_file: Optional[Path] = None,
    stream: Optional[TextIO] = None,
    level: int = logging.INFO,
) -> None:
    """Send log records to a file and to stderr.

    The native host talks to the browser over stdout, so nothing here
    ever writes there.

    Args:
        log_file: File to append to. Skipped with a warning if it cannot
            be opened.
        stream: Console stream. Defaults to stderr.
        level: Root log level.
    """
    formatter = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file is None:
        return
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file)
    except OSError as exc:
        logging.getLogger("savebutton.logs").warning(
            "Could not open log file %s, logging to stderr only: %s", log_file, exc
        )
        return
    handler.setFormatter(formatter)
    root.addHandler(handler)
