"""
Sync data models -- collections and per-pass results.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class CollectionKind(str, Enum):
    """The three kinds of synced content."""

    ANGA = "anga"
    META = "meta"
    WORDS = "words"


class Collection(BaseModel):
    """One reconcilable directory and its remote counterpart.

    Anga and Meta are flat, bidirectional collections. Words is
    download-only and nested: each ``Collection(kind=WORDS,
    anga_name=...)`` covers one sub-directory of ~/.kaya/words.
    """

    kind: CollectionKind
    anga_name: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def anga(cls) -> "Collection":
        return cls(kind=CollectionKind.ANGA)

    @classmethod
    def meta(cls) -> "Collection":
        return cls(kind=CollectionKind.META)

    @classmethod
    def words(cls, anga_name: str) -> "Collection":
        return cls(kind=CollectionKind.WORDS, anga_name=anga_name)

    @property
    def uploads(self) -> bool:
        """Whether local-only files are pushed to the server."""
        return self.kind != CollectionKind.WORDS

    @property
    def label(self) -> str:
        if self.kind == CollectionKind.WORDS and self.anga_name is not None:
            return f"words/{self.anga_name}"
        return self.kind.value

    def local_dir(self, home: Path) -> Path:
        base = home / self.kind.value
        if self.kind == CollectionKind.WORDS and self.anga_name is not None:
            return base / self.anga_name
        return base

    def accepts(self, filename: str) -> bool:
        """Apply the collection's filename filter.

        Meta keeps non-hidden ``.toml`` files, Anga keeps any non-hidden
        file, Words keeps everything.
        """
        if self.kind == CollectionKind.WORDS:
            return True
        if filename.startswith("."):
            return False
        if self.kind == CollectionKind.META:
            return filename.endswith(".toml")
        return True


class SyncResult(BaseModel):
    """Outcome of reconciling one collection."""

    collection: str
    downloaded: int = 0
    uploaded: int = 0
    failed: int = 0
    skipped: bool = False

    def merge(self, other: "SyncResult") -> None:
        """Fold another result (e.g. a words sub-directory) into this one."""
        self.downloaded += other.downloaded
        self.uploaded += other.uploaded
        self.failed += other.failed


class SyncReport(BaseModel):
    """Everything one ``sync()`` call did."""

    results: dict[str, SyncResult] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def total_downloaded(self) -> int:
        return sum(r.downloaded for r in self.results.values())

    @property
    def total_uploaded(self) -> int:
        return sum(r.uploaded for r in self.results.values())

    @property
    def ok(self) -> bool:
        return not self.errors
