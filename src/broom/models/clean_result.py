"""Cleaning result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class TrashedItem:
    """An item moved to the trash, paired with where it came from."""

    original_path: str
    trashed_path: str

    def to_dict(self) -> dict[str, str]:
        return {"original_path": self.original_path, "trashed_path": self.trashed_path}


@dataclass(frozen=True, slots=True)
class ReclaimFailure:
    """An item that could not be moved to the trash."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


@dataclass(slots=True)
class OperationResult:
    """Accumulated result of a reclaim operation.

    Results from independent sub-scans combine with ``merge()`` or ``+``;
    totals are order independent, ``trashed`` keeps concatenation order.
    """

    items_removed: int = 0
    bytes_freed: int = 0
    items_failed: int = 0
    trashed: list[TrashedItem] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add_success(self, item: TrashedItem, size: int) -> None:
        self.items_removed += 1
        self.bytes_freed += size
        self.trashed.append(item)

    def add_failure(self, failure: ReclaimFailure) -> None:
        self.items_failed += 1
        self.errors.append(str(failure))

    def merge(self, other: OperationResult) -> OperationResult:
        """Fold *other* into this result in place and return self."""
        self.items_removed += other.items_removed
        self.bytes_freed += other.bytes_freed
        self.items_failed += other.items_failed
        self.trashed.extend(other.trashed)
        self.errors.extend(other.errors)
        return self

    def __add__(self, other: OperationResult) -> OperationResult:
        return OperationResult().merge(self).merge(other)

    def to_dict(self) -> dict:
        return {
            "items_removed": self.items_removed,
            "bytes_freed": self.bytes_freed,
            "items_failed": self.items_failed,
            "trashed": [t.to_dict() for t in self.trashed],
            "errors": list(self.errors),
        }
