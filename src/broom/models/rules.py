"""Exclusion rule dataclasses."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RuleKind(str, Enum):
    """How a rule value is compared against a path."""

    EXACT_PATH = "exact_path"
    PATH_PREFIX = "path_prefix"
    IDENTIFIER = "identifier"
    GLOB = "glob"


@dataclass(frozen=True, slots=True)
class ExclusionRule:
    """Single exclusion rule. Any matching rule protects the item."""

    kind: RuleKind
    value: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "kind": self.kind.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExclusionRule:
        """Build a rule from its stored form.

        Raises:
            ValueError: If the kind is unknown or the value is missing.
        """
        kind = RuleKind(data["kind"])
        value = data.get("value")
        if not isinstance(value, str) or not value:
            raise ValueError(f"Rule has no value: {data!r}")
        rule_id = data.get("id") or uuid.uuid4().hex
        return cls(kind=kind, value=value, id=str(rule_id))


class ExclusionRuleSet(Mapping[str, ExclusionRule]):
    """Immutable set of rules keyed by rule id."""

    def __init__(self, rules: Iterable[ExclusionRule] = ()) -> None:
        self._rules: dict[str, ExclusionRule] = {}
        for rule in rules:
            self._rules[rule.id] = rule

    def __getitem__(self, rule_id: str) -> ExclusionRule:
        return self._rules[rule_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"ExclusionRuleSet({list(self._rules.values())!r})"

    def with_rule(self, rule: ExclusionRule) -> ExclusionRuleSet:
        """Return a new set that also contains *rule*."""
        return ExclusionRuleSet([*self._rules.values(), rule])

    def without(self, rule_id: str) -> ExclusionRuleSet:
        """Return a new set with *rule_id* removed."""
        return ExclusionRuleSet(r for r in self._rules.values() if r.id != rule_id)

    def to_list(self) -> list[dict[str, str]]:
        return [r.to_dict() for r in self._rules.values()]
