"""Tests for application remnant discovery."""

from __future__ import annotations

import pytest

from broom.core.matcher import PathMatcher
from broom.core.uninstall import AppDescriptor, find_remnants, plan_uninstall
from broom.models.preview import selected_paths, toggle
from broom.models.rules import ExclusionRule, ExclusionRuleSet, RuleKind

APP_ID = "org.example.Editor"


@pytest.fixture
def remnants(home):
    (home / ".config" / APP_ID).mkdir()
    (home / ".config" / APP_ID / "settings.ini").write_text("x" * 100)
    (home / ".cache" / APP_ID).mkdir()
    (home / ".cache" / APP_ID / "blob").write_bytes(b"b" * 20_000)
    launchers = home / ".local" / "share" / "applications"
    launchers.mkdir()
    (launchers / f"{APP_ID}.desktop").write_text("[Desktop Entry]\n")
    sandbox = home / ".var" / "app" / APP_ID
    sandbox.mkdir(parents=True)
    (sandbox / "data").write_text("d")
    # unrelated app
    (home / ".config" / "org.other.App").mkdir()
    return home


class TestFindRemnants:
    def test_finds_everything_once(self, remnants):
        found = find_remnants(AppDescriptor(app_id=APP_ID))
        names = sorted(str(p.relative_to(remnants)) for p in found)
        assert names == sorted([
            f".cache/{APP_ID}",
            f".config/{APP_ID}",
            f".local/share/applications/{APP_ID}.desktop",
            f".var/app/{APP_ID}",
        ])

    def test_name_matches_too(self, home):
        (home / ".config" / "Editor").mkdir()
        found = find_remnants(AppDescriptor(name="Editor"))
        assert found == [home / ".config" / "Editor"]

    def test_identifier_rule_protects_app(self, remnants):
        matcher = PathMatcher(ExclusionRuleSet([ExclusionRule(RuleKind.IDENTIFIER, APP_ID)]))
        assert find_remnants(AppDescriptor(app_id=APP_ID), matcher) == []

    def test_app_path_included(self, remnants, tmp_path):
        app_file = tmp_path / "Editor.AppImage"
        app_file.write_bytes(b"elf")
        found = find_remnants(AppDescriptor(app_id=APP_ID, app_path=app_file))
        assert found[-1] == app_file


class TestPlanUninstall:
    def test_tree_shape(self, remnants):
        plan = plan_uninstall(AppDescriptor(app_id=APP_ID, name="Editor"))

        assert len(plan) == 1
        root = plan[0]
        assert root.title == "Editor"
        assert root.detail == APP_ID
        assert [k.title for k in root.children] == ["Cache", "Config", "Sandbox", "Launchers"]
        assert root.total_size == sum(leaf.own_size for k in root.children for leaf in k.children)
        assert root.children[0].total_size >= 20_000

    def test_nothing_found_is_empty_plan(self, home):
        assert plan_uninstall(AppDescriptor(app_id="org.missing.App")) == []

    def test_deselected_kind_not_removed(self, remnants):
        plan = plan_uninstall(AppDescriptor(app_id=APP_ID))
        cache = plan[0].children[0]
        toggle(plan, cache.id, False)

        paths = selected_paths(plan)

        assert str(remnants / ".cache" / APP_ID) not in paths
        assert str(remnants / ".config" / APP_ID) in paths
        assert len(paths) == 3
