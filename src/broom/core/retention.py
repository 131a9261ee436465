"""Retention levels and age cutoffs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum


class RetentionLevel(str, Enum):
    """Named risk level controlling how recent files are protected."""

    SAFE = "safe"
    STANDARD = "standard"
    ADVANCED = "advanced"

    @property
    def keep_days(self) -> int:
        return _KEEP_DAYS[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_KEEP_DAYS = {
    RetentionLevel.SAFE: 7,
    RetentionLevel.STANDARD: 3,
    RetentionLevel.ADVANCED: 0,
}

_DESCRIPTIONS = {
    RetentionLevel.SAFE: "Skips anything modified in the last 7 days.",
    RetentionLevel.STANDARD: "Skips anything modified in the last 3 days.",
    RetentionLevel.ADVANCED: "No age limit, everything is eligible.",
}


def effective_keep_days(level: RetentionLevel, custom_keep_days: int = 0) -> int:
    """Return the longer of the level's window and the user override."""
    if custom_keep_days < 0:
        raise ValueError(f"custom_keep_days must be non-negative, got {custom_keep_days}")
    return max(level.keep_days, custom_keep_days)


def cutoff_date(keep_days: int, now: datetime | None = None) -> datetime | None:
    """Return the modification-time cutoff, or None when nothing is protected.

    Items modified strictly after the cutoff are kept; items modified at
    or before it are eligible.
    """
    if keep_days < 0:
        raise ValueError(f"keep_days must be non-negative, got {keep_days}")
    if keep_days == 0:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    return now - timedelta(days=keep_days)


def is_protected(mtime: float, cutoff: datetime | None) -> bool:
    """Check whether a POSIX mtime falls inside the keep window."""
    if cutoff is None:
        return False
    return mtime > cutoff.timestamp()
