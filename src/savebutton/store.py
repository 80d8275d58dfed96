"""
Local Store -- the ~/.kaya files both front-ends read and write.

The HTTP daemon and the native host are thin adapters over these
functions, so name validation, listings and bookmark extraction behave
the same no matter which front-end the extension talks to.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import ensure_directories
from .errors import IoFailure
from .sync.listing import scan_local_dirs, scan_local_files
from .sync.models import Collection, CollectionKind

logger = logging.getLogger("savebutton.store")

URL_PREFIX = "URL="


class InvalidName(ValueError):
    """A filename or anga name that must not touch the filesystem."""


def validate_name(name: str, what: str = "filename") -> str:
    """Reject empty names and names containing ``/`` or ``..``.

    Returns:
        The name unchanged.

    Raises:
        InvalidName: If the name is unusable.
    """
    if not name or "/" in name or ".." in name:
        raise InvalidName(f"Invalid {what}")
    return name


def list_collection(home: Path, kind: CollectionKind) -> list[str]:
    """Sorted non-hidden filenames in the anga or meta directory.

    Only dotfiles are hidden; the meta ``.toml`` filter applies to sync.
    """
    directory = home / kind.value
    if not directory.is_dir():
        return []
    return sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.is_file() and not entry.name.startswith(".")
    )


def list_words_dirs(home: Path) -> list[str]:
    """Sorted anga names that have a words sub-directory."""
    return scan_local_dirs(home / CollectionKind.WORDS.value)


def list_words_files(home: Path, anga: str) -> list[str]:
    """Sorted filenames inside one words sub-directory."""
    collection = Collection.words(validate_name(anga, "anga name"))
    return sorted(scan_local_files(collection.local_dir(home), collection))


def _write(path: Path, content: bytes) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        raise IoFailure(f"IO error: {exc}") from exc
    return path


def write_file(home: Path, kind: CollectionKind, filename: str, content: bytes) -> Path:
    """Write an anga or meta file, replacing any existing one.

    Raises:
        InvalidName: If the filename is unusable.
        IoFailure: If the write fails.
    """
    if kind == CollectionKind.WORDS:
        raise ValueError("words files are written with write_words_file")
    validate_name(filename)
    ensure_directories(home)
    path = _write(home / kind.value / filename, content)
    logger.info("Wrote %s %s", kind.value, filename)
    return path


def write_words_file(home: Path, anga: str, filename: str, content: bytes) -> Path:
    """Write one file under words/<anga>/, creating the directory."""
    validate_name(anga, "anga name")
    validate_name(filename)
    path = _write(Collection.words(anga).local_dir(home) / filename, content)
    logger.info("Wrote words/%s/%s", anga, filename)
    return path


def bookmarked_urls(home: Path) -> list[str]:
    """Every ``URL=`` line from the ``.url`` files in anga.

    Unreadable files are skipped.
    """
    anga_dir = home / CollectionKind.ANGA.value
    if not anga_dir.is_dir():
        return []

    urls: list[str] = []
    for path in sorted(anga_dir.glob("*.url")):
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable bookmark %s: %s", path.name, exc)
            continue
        urls.extend(
            line[len(URL_PREFIX):]
            for line in content.splitlines()
            if line.startswith(URL_PREFIX)
        )
    return urls
