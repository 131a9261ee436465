"""Tests for the incremental large-file scanner."""

from __future__ import annotations

import pytest

from broom.core.scanner import GENTLE_DELAY, CancelToken, IncrementalScanner
from broom.core.sizing import estimate_size

MB = 1024 * 1024


def _sparse(path, size: int) -> None:
    with open(path, "wb") as f:
        f.truncate(size)


@pytest.fixture
def scope(tmp_path):
    root = tmp_path / "scope"
    (root / "videos").mkdir(parents=True)
    _sparse(root / "videos" / "movie.mkv", 600 * MB)
    _sparse(root / "notes.bin", 10 * MB)
    return root


class TestScan:
    def test_threshold(self, scope):
        records = IncrementalScanner().scan([scope], 500 * MB)

        assert len(records) == 1
        assert records[0].path == str(scope / "videos" / "movie.mkv")
        assert records[0].size == 600 * MB
        assert not records[0].is_package

    def test_sorted_largest_first(self, scope):
        records = IncrementalScanner().scan([scope], 1 * MB)
        assert [r.size for r in records] == [600 * MB, 10 * MB]

    def test_negative_threshold_rejected(self, scope):
        with pytest.raises(ValueError):
            IncrementalScanner().scan([scope], -1)

    def test_pruned_subtree_not_entered(self, scope):
        records = IncrementalScanner().scan([scope], 1 * MB, exclude_subtrees=[scope / "videos"])
        assert [r.path for r in records] == [str(scope / "notes.bin")]

    def test_hidden_skipped_by_default(self, scope):
        hidden = scope / ".stash"
        hidden.mkdir()
        _sparse(hidden / "archive.tar", 700 * MB)

        assert len(IncrementalScanner().scan([scope], 500 * MB)) == 1
        assert len(IncrementalScanner().scan([scope], 500 * MB, include_hidden=True)) == 2

    def test_missing_scope_is_ignored(self, scope, tmp_path):
        records = IncrementalScanner().scan([tmp_path / "nope", scope], 500 * MB)
        assert len(records) == 1

    def test_packages(self, tmp_path):
        pkg = tmp_path / "Editor.app"
        (pkg / "bin").mkdir(parents=True)
        (pkg / "bin" / "editor").write_bytes(b"e" * MB)

        assert IncrementalScanner().scan([tmp_path], MB // 2) == []

        records = IncrementalScanner().scan([tmp_path], MB // 2, skip_packages=False)
        assert len(records) == 1
        assert records[0].path == str(pkg)
        assert records[0].is_package
        assert records[0].size == estimate_size(pkg)


class TestBatches:
    def test_batch_size(self, tmp_path):
        for i in range(5):
            (tmp_path / f"f{i}").write_bytes(b"x")

        batches = list(IncrementalScanner(batch_size=2).iter_batches([tmp_path], 0))

        assert [len(b) for b in batches] == [2, 2, 1]

    def test_cancel_mid_walk_keeps_delivered_batches(self, tmp_path):
        for i in range(10):
            (tmp_path / f"f{i}").write_bytes(b"x")
        scanner = IncrementalScanner(batch_size=1)
        token = CancelToken()

        seen = []
        for batch in scanner.iter_batches([tmp_path], 0, token=token):
            seen.extend(batch)
            token.cancel()

        assert len(seen) == 1
        assert token.cancelled

    def test_yields_and_gentle_sleeps(self, tmp_path):
        for i in range(600):
            (tmp_path / f"f{i:03d}").write_bytes(b"x")
        calls = []
        scanner = IncrementalScanner(sleep=calls.append)

        list(scanner.iter_batches([tmp_path], 0, gentle=True))

        assert calls == [GENTLE_DELAY, GENTLE_DELAY, 0, GENTLE_DELAY]
        assert scanner.scanned_count == 600

    def test_no_gentle_sleeps_by_default(self, tmp_path):
        for i in range(600):
            (tmp_path / f"f{i:03d}").write_bytes(b"x")
        calls = []

        list(IncrementalScanner(sleep=calls.append).iter_batches([tmp_path], 0))

        assert calls == [0]

    def test_gentle_sleep_not_skipped_on_yield_entries(self, tmp_path):
        for i in range(1000):
            (tmp_path / f"f{i:04d}").write_bytes(b"x")
        calls = []

        list(IncrementalScanner(sleep=calls.append).iter_batches([tmp_path], 0, gentle=True))

        assert calls.count(GENTLE_DELAY) == 5
        assert calls.count(0) == 2


class TestBackgroundScan:
    def test_start_streams_batches(self, scope):
        scanner = IncrementalScanner(batch_size=1)
        batches = []
        try:
            future = scanner.start([scope], 1 * MB, on_batch=batches.append)
            final = future.result(timeout=30)
        finally:
            scanner.shutdown()

        assert [r.size for r in final] == [600 * MB, 10 * MB]
        assert sum(len(b) for b in batches) == 2
        assert scanner.results == final

    def test_start_rejects_negative_threshold(self, scope):
        with pytest.raises(ValueError):
            IncrementalScanner().start([scope], -5)
