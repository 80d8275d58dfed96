"""Tests for the per-collection single-writer guard."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from savebutton.sync.guard import HAS_FCNTL, CollectionGuard


class TestCollectionGuard:
    """Try-lock behaviour within and across guard instances."""

    def test_hold_and_release(self, tmp_path: Path):
        guard = CollectionGuard(tmp_path, "anga")
        with guard.try_hold() as held:
            assert held
        with guard.try_hold() as held:
            assert held

    def test_same_guard_busy(self, tmp_path: Path):
        guard = CollectionGuard(tmp_path, "anga")
        with guard.try_hold() as outer:
            with guard.try_hold() as inner:
                assert outer and not inner

    def test_busy_from_other_thread(self, tmp_path: Path):
        guard = CollectionGuard(tmp_path, "meta")
        seen = []
        with guard.try_hold():
            def worker():
                with guard.try_hold() as held:
                    seen.append(held)

            t = threading.Thread(target=worker)
            t.start()
            t.join()
        assert seen == [False]

    def test_independent_kinds(self, tmp_path: Path):
        with CollectionGuard(tmp_path, "anga").try_hold() as a:
            with CollectionGuard(tmp_path, "meta").try_hold() as m:
                assert a and m

    @pytest.mark.skipif(not HAS_FCNTL, reason="flock not available")
    def test_file_lock_shared_across_instances(self, tmp_path: Path):
        first = CollectionGuard(tmp_path, "anga")
        second = CollectionGuard(tmp_path, "anga")
        with first.try_hold() as held:
            assert held
            with second.try_hold() as other:
                assert not other
        assert first.lock_file == tmp_path / ".locks" / "anga.lock"

    def test_released_after_exception(self, tmp_path: Path):
        guard = CollectionGuard(tmp_path, "words")
        with pytest.raises(RuntimeError):
            with guard.try_hold():
                raise RuntimeError("boom")
        with guard.try_hold() as held:
            assert held
