"""Broom data models."""

from broom.models.rules import ExclusionRule, ExclusionRuleSet, RuleKind
from broom.models.clean_result import OperationResult, ReclaimFailure, TrashedItem
from broom.models.scan_result import BigFileRecord, DuplicateGroup
from broom.models.preview import PreviewNode

__all__ = [
    "BigFileRecord",
    "DuplicateGroup",
    "ExclusionRule",
    "ExclusionRuleSet",
    "OperationResult",
    "PreviewNode",
    "ReclaimFailure",
    "RuleKind",
    "TrashedItem",
]
