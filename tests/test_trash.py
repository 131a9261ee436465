"""Tests for the home trash."""

from __future__ import annotations

import errno
import os
from urllib.parse import quote

import pytest

from broom.core.reclaimer import DirectoryReclaimer, Reclaimer
from broom.core.trash import Trash


class TestTrash:
    def test_trash_returns_new_location(self, tmp_path, trash):
        f = tmp_path / "report.txt"
        f.write_text("hello")

        new = trash.trash(f)

        assert not f.exists()
        assert new.parent == trash.files_dir
        assert new.read_text() == "hello"

    def test_writes_trashinfo(self, tmp_path, trash):
        f = tmp_path / "with space.txt"
        f.write_text("x")

        new = trash.trash(f)

        info = (trash.info_dir / (new.name + ".trashinfo")).read_text()
        assert info.startswith("[Trash Info]\n")
        assert f"Path={quote(str(f))}\n" in info
        assert "DeletionDate=" in info

    def test_name_collisions_get_numbered(self, tmp_path, trash):
        first_dir = tmp_path / "a"
        second_dir = tmp_path / "b"
        first_dir.mkdir()
        second_dir.mkdir()
        (first_dir / "log.txt").write_text("1")
        (second_dir / "log.txt").write_text("2")

        first = trash.trash(first_dir / "log.txt")
        second = trash.trash(second_dir / "log.txt")

        assert first.name == "log.txt"
        assert second.name == "log.1.txt"
        assert second.read_text() == "2"

    def test_directories_are_moved_whole(self, tmp_path, trash):
        d = tmp_path / "cache"
        (d / "inner").mkdir(parents=True)
        (d / "inner" / "blob").write_bytes(b"b")

        new = trash.trash(d)

        assert not d.exists()
        assert (new / "inner" / "blob").read_bytes() == b"b"

    def test_missing_path_raises(self, tmp_path, trash):
        with pytest.raises(FileNotFoundError):
            trash.trash(tmp_path / "nope")

    def test_restore_puts_item_back(self, tmp_path, trash):
        f = tmp_path / "doc.txt"
        f.write_text("content")
        new = trash.trash(f)

        trash.restore(new, f)

        assert f.read_text() == "content"
        assert not new.exists()
        assert not (trash.info_dir / (new.name + ".trashinfo")).exists()

    def test_default_root_follows_xdg(self, home):
        assert Trash().root == home / ".local" / "share" / "Trash"


@pytest.fixture
def locked(tmp_path):
    d = tmp_path / "locked"
    (d / "subdir").mkdir(parents=True)
    (d / "file.bin").write_bytes(b"f" * 4096)
    (d / "subdir" / "inner.txt").write_text("inner")
    return d


def _refuse_rename(monkeypatch, err: int) -> None:
    def rename(src, dst):
        raise OSError(err, os.strerror(err), str(src))

    monkeypatch.setattr(os, "rename", rename)


class TestRefusedMove:
    @pytest.mark.parametrize("err", [errno.EXDEV, errno.EPERM, errno.EACCES])
    def test_nothing_copied_and_source_untouched(self, monkeypatch, locked, trash, err):
        _refuse_rename(monkeypatch, err)
        reclaimer = DirectoryReclaimer(Reclaimer(trash))

        for _ in range(2):
            result = reclaimer.reclaim_children(locked)
            assert result.items_failed == 2
            assert result.items_removed == 0
            assert result.bytes_freed == 0

        assert list(trash.files_dir.iterdir()) == []
        assert list(trash.info_dir.iterdir()) == []
        assert (locked / "file.bin").read_bytes() == b"f" * 4096
        assert (locked / "subdir" / "inner.txt").read_text() == "inner"

    def test_trash_raises_plain_oserror(self, monkeypatch, locked, trash):
        _refuse_rename(monkeypatch, errno.EXDEV)
        with pytest.raises(OSError) as excinfo:
            trash.trash(locked / "file.bin")
        assert excinfo.value.errno == errno.EXDEV

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_read_only_parent(self, locked, trash):
        locked.chmod(0o555)
        try:
            result = DirectoryReclaimer(Reclaimer(trash)).reclaim_children(locked)
        finally:
            locked.chmod(0o755)

        assert result.items_failed == 2
        assert list(trash.files_dir.iterdir()) == []
        assert (locked / "subdir" / "inner.txt").read_text() == "inner"
