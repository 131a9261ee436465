"""Exclusion rule evaluation."""

from __future__ import annotations

import os
from pathlib import Path

from broom.models.rules import ExclusionRuleSet, RuleKind


def glob_match(text: str, pattern: str) -> bool:
    """Match *text* against a pattern where ``*`` is the only wildcard.

    There are no character classes and no escaping. A pattern without
    ``*`` must equal the text exactly.
    """
    if "*" not in pattern:
        return text == pattern

    parts = pattern.split("*")
    head, tail = parts[0], parts[-1]
    if not text.startswith(head):
        return False

    pos = len(head)
    for part in parts[1:-1]:
        if not part:
            continue
        found = text.find(part, pos)
        if found < 0:
            return False
        pos = found + len(part)

    if not tail:
        return True
    # The last segment has to reach the end without overlapping what was consumed
    return len(text) - len(tail) >= pos and text.endswith(tail)


class PathMatcher:
    """Evaluates paths against an exclusion rule set.

    The rule set is a snapshot taken when the operation starts, so one
    matcher gives consistent answers for the whole operation.
    """

    def __init__(self, rules: ExclusionRuleSet | None = None) -> None:
        self.rules = rules if rules is not None else ExclusionRuleSet()

    def should_exclude(self, path: Path | str, identifier: str | None = None) -> bool:
        """Return True if any rule matches *path* or *identifier*."""
        text = os.fspath(path)
        for rule in self.rules.values():
            match rule.kind:
                case RuleKind.EXACT_PATH:
                    if text == rule.value:
                        return True
                case RuleKind.PATH_PREFIX:
                    if text.startswith(rule.value):
                        return True
                case RuleKind.IDENTIFIER:
                    if identifier is not None and identifier == rule.value:
                        return True
                case RuleKind.GLOB:
                    if glob_match(text, rule.value):
                        return True
        return False
