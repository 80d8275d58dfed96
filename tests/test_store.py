"""Tests for the local ~/.kaya store used by both front-ends."""

from __future__ import annotations

from pathlib import Path

import pytest

from savebutton.errors import IoFailure
from savebutton.store import (
    InvalidName,
    bookmarked_urls,
    list_collection,
    list_words_dirs,
    list_words_files,
    validate_name,
    write_file,
    write_words_file,
)
from savebutton.sync.models import CollectionKind


class TestValidateName:
    """Names that may reach the filesystem."""

    def test_accepts_plain_names(self):
        assert validate_name("2024-01-01T000000-note.md") == "2024-01-01T000000-note.md"

    @pytest.mark.parametrize("name", ["", "a/b", "../etc", "..", "x..y"])
    def test_rejects(self, name):
        with pytest.raises(InvalidName):
            validate_name(name)

    def test_message_names_what(self):
        with pytest.raises(InvalidName, match="Invalid anga name"):
            validate_name("a/b", "anga name")


class TestWriteAndList:
    """Writes land in the right directory and show up in listings."""

    def test_write_anga_and_meta(self, kaya_home: Path):
        write_file(kaya_home, CollectionKind.ANGA, "b.md", b"two")
        write_file(kaya_home, CollectionKind.ANGA, "a.md", b"one")
        write_file(kaya_home, CollectionKind.META, "a.toml", b"x = 1")
        assert list_collection(kaya_home, CollectionKind.ANGA) == ["a.md", "b.md"]
        assert list_collection(kaya_home, CollectionKind.META) == ["a.toml"]

    def test_overwrite(self, kaya_home: Path):
        write_file(kaya_home, CollectionKind.ANGA, "a.md", b"old")
        write_file(kaya_home, CollectionKind.ANGA, "a.md", b"new")
        assert (kaya_home / "anga" / "a.md").read_bytes() == b"new"

    def test_write_rejects_traversal(self, kaya_home: Path):
        with pytest.raises(InvalidName):
            write_file(kaya_home, CollectionKind.ANGA, "../escape", b"x")
        assert not (kaya_home / "escape").exists()

    def test_write_file_refuses_words(self, kaya_home: Path):
        with pytest.raises(ValueError):
            write_file(kaya_home, CollectionKind.WORDS, "a.txt", b"x")

    def test_listing_hides_dotfiles(self, kaya_home: Path):
        (kaya_home / "anga" / ".DS_Store").write_bytes(b"")
        assert list_collection(kaya_home, CollectionKind.ANGA) == []

    def test_words(self, kaya_home: Path):
        write_words_file(kaya_home, "my-anga", "w.txt", b"words")
        assert list_words_dirs(kaya_home) == ["my-anga"]
        assert list_words_files(kaya_home, "my-anga") == ["w.txt"]
        assert list_words_files(kaya_home, "other") == []

    def test_words_bad_anga(self, kaya_home: Path):
        with pytest.raises(InvalidName, match="anga name"):
            write_words_file(kaya_home, "..", "w.txt", b"x")

    def test_io_failure(self, kaya_home: Path):
        (kaya_home / "anga" / "taken").mkdir()
        with pytest.raises(IoFailure):
            write_file(kaya_home, CollectionKind.ANGA, "taken", b"x")


class TestBookmarkedUrls:
    """URL extraction from .url anga files."""

    def test_extracts_url_lines(self, kaya_home: Path):
        anga = kaya_home / "anga"
        (anga / "b.url").write_text("[InternetShortcut]\nURL=https://b.example/\n")
        (anga / "a.url").write_text("[InternetShortcut]\r\nURL=https://a.example/\r\n")
        (anga / "note.md").write_text("URL=https://ignored.example/\n")
        assert bookmarked_urls(kaya_home) == ["https://a.example/", "https://b.example/"]

    def test_empty_home(self, tmp_path: Path):
        assert bookmarked_urls(tmp_path) == []

    def test_unreadable_file_skipped(self, kaya_home: Path):
        (kaya_home / "anga" / "bad.url").write_bytes(b"\xff\xfe\x00")
        (kaya_home / "anga" / "ok.url").write_text("URL=https://ok.example/\n")
        assert bookmarked_urls(kaya_home) == ["https://ok.example/"]
