"""JSON-backed settings and the per-operation configuration snapshot."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from broom.core.retention import RetentionLevel
from broom.models.rules import ExclusionRule, ExclusionRuleSet, RuleKind
from broom.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "broom"
_SETTINGS_FILE = "settings.json"

# Caches that running desktops rebuild slowly or rely on constantly
DEFAULT_RULES = (
    ExclusionRule(RuleKind.GLOB, "*/fontconfig", id="default-fontconfig"),
    ExclusionRule(RuleKind.GLOB, "*/mesa_shader_cache*", id="default-mesa-shaders"),
    ExclusionRule(RuleKind.GLOB, "*/nvidia/GLCache", id="default-nvidia-shaders"),
)


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("retention.level")  # reads data["retention"]["level"]
        settings.set("retention.level", "standard")  # writes + saves
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    # ── typed accessors ─────────────────────────────────────────────────

    @property
    def retention_level(self) -> RetentionLevel:
        raw = self.get("retention.level", RetentionLevel.SAFE.value)
        try:
            return RetentionLevel(raw)
        except ValueError:
            log.warning("Unknown retention level %r, using safe", raw)
            return RetentionLevel.SAFE

    @property
    def custom_keep_days(self) -> int:
        raw = self.get("retention.custom_keep_days", 0)
        if not isinstance(raw, int) or isinstance(raw, bool):
            return 0
        return max(0, raw)

    @custom_keep_days.setter
    def custom_keep_days(self, value: int) -> None:
        self.set("retention.custom_keep_days", max(0, int(value)))

    def load_rules(self) -> ExclusionRuleSet:
        """Load exclusion rules; built-in defaults apply until rules are saved."""
        raw = self.get("exclusions.rules")
        if raw is None:
            return ExclusionRuleSet(DEFAULT_RULES)
        rules: list[ExclusionRule] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                rules.append(ExclusionRule.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                log.warning("Skipping invalid exclusion rule %r: %s", item, e)
        return ExclusionRuleSet(rules)

    def save_rules(self, rules: ExclusionRuleSet) -> None:
        self.set("exclusions.rules", rules.to_list())

    def add_rule(self, kind: RuleKind | str, value: str) -> ExclusionRule:
        """Create, persist and return a new rule."""
        if not value:
            raise ValueError("Rule value must not be empty")
        rule = ExclusionRule(kind=RuleKind(kind), value=value)
        self.save_rules(self.load_rules().with_rule(rule))
        return rule

    def remove_rule(self, rule_id: str) -> bool:
        """Delete a rule by id; returns False if it did not exist."""
        rules = self.load_rules()
        if rule_id not in rules:
            return False
        self.save_rules(rules.without(rule_id))
        return True

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            data = {}
        self._data = data if isinstance(data, dict) else {}

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)


@dataclass(frozen=True, slots=True)
class CleanConfig:
    """Configuration snapshot read once at the start of an operation."""

    level: RetentionLevel = RetentionLevel.SAFE
    custom_keep_days: int = 0
    rules: ExclusionRuleSet = field(default_factory=ExclusionRuleSet)
    include_hidden: bool = False


def load_config(settings: Settings | None = None) -> CleanConfig:
    """Read the current settings into an immutable snapshot."""
    settings = settings if settings is not None else Settings()
    return CleanConfig(
        level=settings.retention_level,
        custom_keep_days=settings.custom_keep_days,
        rules=settings.load_rules(),
        include_hidden=bool(settings.get("scan.include_hidden", False)),
    )
