"""Tests for settings and the configuration snapshot."""

from __future__ import annotations

import json

import pytest

from broom.core.retention import RetentionLevel
from broom.models.rules import RuleKind
from broom.settings import DEFAULT_RULES, CleanConfig, Settings, load_config


@pytest.fixture
def settings(tmp_path):
    return Settings(tmp_path / "settings.json")


class TestSettings:
    def test_dot_keys(self, settings):
        settings.set("scan.include_hidden", True)
        assert settings.get("scan.include_hidden") is True
        assert settings.get("scan.missing", "d") == "d"
        assert json.loads(settings.path.read_text()) == {"scan": {"include_hidden": True}}

    def test_defaults(self, settings):
        assert settings.retention_level is RetentionLevel.SAFE
        assert settings.custom_keep_days == 0
        assert set(settings.load_rules()) == {r.id for r in DEFAULT_RULES}

    def test_unknown_level_falls_back(self, settings):
        settings.set("retention.level", "reckless")
        assert settings.retention_level is RetentionLevel.SAFE

    def test_custom_days_clamped(self, settings):
        settings.custom_keep_days = -4
        assert settings.custom_keep_days == 0
        settings.custom_keep_days = 14
        assert Settings(settings.path).custom_keep_days == 14

    def test_add_and_remove_rule(self, settings):
        rule = settings.add_rule("path_prefix", "/home/u/.cache/keep")

        reloaded = Settings(settings.path).load_rules()
        assert reloaded[rule.id].kind is RuleKind.PATH_PREFIX
        assert len(reloaded) == len(DEFAULT_RULES) + 1

        assert settings.remove_rule(rule.id)
        assert not settings.remove_rule(rule.id)
        assert rule.id not in settings.load_rules()

    def test_empty_rule_value_rejected(self, settings):
        with pytest.raises(ValueError):
            settings.add_rule("glob", "")

    def test_invalid_stored_rules_skipped(self, settings):
        settings.set("exclusions.rules", [
            {"kind": "glob", "value": "*/x", "id": "ok"},
            {"kind": "regex", "value": ".*"},
            {"value": "no kind"},
        ])
        assert list(settings.load_rules()) == ["ok"]

    def test_removing_all_rules_persists_empty_set(self, settings):
        for rule in DEFAULT_RULES:
            settings.remove_rule(rule.id)
        assert len(Settings(settings.path).load_rules()) == 0

    def test_corrupt_file_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2")
        assert Settings(path).get("retention.level") is None


class TestLoadConfig:
    def test_snapshot(self, settings):
        settings.set("retention.level", "standard")
        settings.custom_keep_days = 5
        settings.set("scan.include_hidden", True)

        config = load_config(settings)

        assert config == CleanConfig(
            level=RetentionLevel.STANDARD,
            custom_keep_days=5,
            rules=config.rules,
            include_hidden=True,
        )
        assert len(config.rules) == len(DEFAULT_RULES)

    def test_default_location_follows_xdg(self, home):
        assert Settings().path == home / ".config" / "broom" / "settings.json"
