"""
File listings -- what the server has, what the disk has.

Server listings are newline-delimited filenames. Names are compared
exactly as received: ``India%20Tax.pdf`` stays percent-encoded and is a
different name from ``India Tax.pdf``.
"""

from __future__ import annotations

from pathlib import Path

from .models import Collection

MIME_TYPES = {
    "md": "text/markdown",
    "url": "text/plain",
    "txt": "text/plain",
    "json": "application/json",
    "toml": "application/toml",
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "html": "text/html",
    "htm": "text/html",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def parse_file_listing(body: str) -> set[str]:
    """Turn a listing response into a set of filenames.

    Lines are stripped; blank lines are dropped. Nothing is decoded.
    """
    return {line.strip() for line in body.splitlines() if line.strip()}


def scan_local_files(directory: Path, collection: Collection) -> set[str]:
    """List regular files in a collection directory that pass its filter.

    A missing directory is an empty listing.
    """
    if not directory.is_dir():
        return set()
    return {
        entry.name
        for entry in directory.iterdir()
        if entry.is_file() and collection.accepts(entry.name)
    }


def scan_local_dirs(directory: Path) -> list[str]:
    """Sorted non-hidden sub-directory names of a directory."""
    if not directory.is_dir():
        return []
    return sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )


def is_safe_name(name: str) -> bool:
    """True if a name can be joined onto a directory without escaping it.

    ``v1..2.pdf`` is fine; ``..`` or anything with a separator is not.
    """
    if name in ("", ".", ".."):
        return False
    return "/" not in name and "\\" not in name


def mime_type_for(filename: str) -> str:
    """Guess the upload MIME type from a filename's extension."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)
