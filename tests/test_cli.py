"""Tests for the command line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from broom.cli import main

pytestmark = pytest.mark.usefixtures("isolate_storage")

MB = 1024 * 1024


@pytest.fixture
def runner():
    return CliRunner()


class TestClean:
    def test_clean_cache_json(self, runner, home):
        (home / ".cache" / "thumbnails").mkdir()
        (home / ".cache" / "thumbnails" / "x.png").write_bytes(b"x" * 4096)

        result = runner.invoke(main, ["clean", "cache", "--level", "advanced", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["items_removed"] == 1
        assert not (home / ".cache" / "thumbnails").exists()

    def test_clean_records_stats(self, runner, home):
        (home / ".cache" / "blob").write_bytes(b"b" * 8192)
        runner.invoke(main, ["clean", "cache", "--level", "advanced", "--json"])

        result = runner.invoke(main, ["stats", "--json"])

        data = json.loads(result.stdout)
        assert data["month_total"] > 0
        assert data["per_kind"]["cache"] == data["month_total"]

    def test_clean_points_at_desktop_trash(self, runner, home):
        (home / ".cache" / "blob").write_bytes(b"b" * 4096)

        result = runner.invoke(main, ["clean", "cache", "--level", "advanced"])

        assert result.exit_code == 0, result.output
        assert "moved to your desktop trash" in result.output
        assert "D-Bus" not in result.output
        assert "Restore method" not in result.output

    def test_unknown_kind_rejected(self, runner, home):
        result = runner.invoke(main, ["clean", "uninstall"])
        assert result.exit_code != 0


class TestScans:
    def test_big(self, runner, home, tmp_path):
        scope = tmp_path / "scope"
        scope.mkdir()
        with open(scope / "disk.img", "wb") as f:
            f.truncate(600 * MB)
        (scope / "small").write_bytes(b"s")

        result = runner.invoke(main, ["big", str(scope), "--min-mb", "500", "--json"])

        assert result.exit_code == 0, result.output
        records = json.loads(result.stdout)
        assert [r["path"] for r in records] == [str(scope / "disk.img")]

    def test_duplicates_trash(self, runner, home, tmp_path):
        scope = tmp_path / "scope"
        scope.mkdir()
        for name in ("a", "b"):
            (scope / name).write_bytes(b"identical")

        result = runner.invoke(main, ["duplicates", str(scope), "--trash", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert len(data["groups"]) == 1
        assert data["result"]["items_removed"] == 1
        assert len(list(scope.iterdir())) == 1


class TestUninstall:
    def test_preview_without_yes(self, runner, home):
        (home / ".config" / "org.example.App").mkdir()

        result = runner.invoke(main, ["uninstall", "org.example.App", "--json"])

        data = json.loads(result.stdout)
        assert data["status"] == "preview"
        assert (home / ".config" / "org.example.App").exists()

    def test_remove_with_yes(self, runner, home):
        (home / ".config" / "org.example.App").mkdir()
        (home / ".config" / "org.example.App" / "prefs").write_text("p")

        result = runner.invoke(main, ["uninstall", "org.example.App", "--yes", "--json"])

        data = json.loads(result.stdout)
        assert data["status"] == "removed"
        assert not (home / ".config" / "org.example.App").exists()

    def test_nothing_found(self, runner, home):
        result = runner.invoke(main, ["uninstall", "org.missing.App"])
        assert "No leftovers" in result.output


class TestRules:
    def test_add_list_remove(self, runner, home):
        result = runner.invoke(main, ["rules", "add", "glob", "*/keep-me"])
        assert result.exit_code == 0, result.output

        rules = json.loads(runner.invoke(main, ["rules", "list", "--json"]).stdout)
        added = [r for r in rules if r["value"] == "*/keep-me"]
        assert len(added) == 1

        result = runner.invoke(main, ["rules", "remove", added[0]["id"]])
        assert result.exit_code == 0

        rules = json.loads(runner.invoke(main, ["rules", "list", "--json"]).stdout)
        assert all(r["value"] != "*/keep-me" for r in rules)

    def test_remove_unknown(self, runner, home):
        result = runner.invoke(main, ["rules", "remove", "nope"])
        assert result.exit_code == 1
