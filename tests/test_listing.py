"""Tests for listing parsing, local scans and MIME detection."""

from __future__ import annotations

from pathlib import Path

from savebutton.sync.listing import (
    DEFAULT_MIME_TYPE,
    is_safe_name,
    mime_type_for,
    parse_file_listing,
    scan_local_dirs,
    scan_local_files,
)
from savebutton.sync.models import Collection


class TestParseFileListing:
    """Newline-delimited server listings."""

    def test_blank_lines_dropped_names_kept_raw(self):
        assert parse_file_listing("a.txt\n\nb%20c.txt\n  \n") == {"a.txt", "b%20c.txt"}

    def test_whitespace_stripped(self):
        assert parse_file_listing("  a.txt \r\nb.txt") == {"a.txt", "b.txt"}

    def test_empty(self):
        assert parse_file_listing("") == set()


class TestLocalScan:
    """Directory scans honour each collection's filter."""

    def test_missing_directory(self, tmp_path: Path):
        assert scan_local_files(tmp_path / "nope", Collection.anga()) == set()

    def test_anga_skips_dotfiles_and_dirs(self, tmp_path: Path):
        (tmp_path / "a.md").write_text("x")
        (tmp_path / ".DS_Store").write_text("x")
        (tmp_path / "sub").mkdir()
        assert scan_local_files(tmp_path, Collection.anga()) == {"a.md"}

    def test_meta_keeps_only_toml(self, tmp_path: Path):
        for name in ("a.toml", "b.txt", ".c.toml"):
            (tmp_path / name).write_text("x")
        assert scan_local_files(tmp_path, Collection.meta()) == {"a.toml"}

    def test_words_keeps_everything(self, tmp_path: Path):
        for name in ("a.txt", ".hidden"):
            (tmp_path / name).write_text("x")
        assert scan_local_files(tmp_path, Collection.words("x")) == {"a.txt", ".hidden"}

    def test_scan_dirs(self, tmp_path: Path):
        for name in ("b", "a", ".git"):
            (tmp_path / name).mkdir()
        (tmp_path / "file").write_text("x")
        assert scan_local_dirs(tmp_path) == ["a", "b"]


class TestMimeAndNames:
    """Upload MIME types and path-safety checks."""

    def test_known_types(self):
        assert mime_type_for("note.md") == "text/markdown"
        assert mime_type_for("link.url") == "text/plain"
        assert mime_type_for("meta.toml") == "application/toml"
        assert mime_type_for("photo.JPEG") == "image/jpeg"
        assert mime_type_for("page.htm") == "text/html"
        assert mime_type_for("logo.svg") == "image/svg+xml"

    def test_unknown_and_missing_extension(self):
        assert mime_type_for("archive.xyz") == DEFAULT_MIME_TYPE
        assert mime_type_for("README") == DEFAULT_MIME_TYPE

    def test_is_safe_name(self):
        assert is_safe_name("a.txt")
        assert is_safe_name("India%20Tax.pdf")
        assert is_safe_name("v1..2.pdf")
        assert is_safe_name("..notes")
        for bad in ("", ".", "..", "../a", "a/b", "a\\b"):
            assert not is_safe_name(bad)
