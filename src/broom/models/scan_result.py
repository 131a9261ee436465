"""Scan result dataclasses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass(slots=True)
class DuplicateGroup:
    """Files with identical size and content.

    Keeping one copy is the baseline, so everything past the first
    file counts as reclaimable.
    """

    files: list[str]
    size_per_file: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def reclaimable_bytes(self) -> int:
        return max(0, len(self.files) - 1) * self.size_per_file

    def default_selection(self) -> list[str]:
        """Keep the first file, mark the rest for removal."""
        return self.files[1:]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "files": list(self.files),
            "size_per_file": self.size_per_file,
            "reclaimable_bytes": self.reclaimable_bytes,
        }


@dataclass(frozen=True, slots=True)
class BigFileRecord:
    """A file (or opaque package) at or above the size threshold."""

    path: str
    size: int
    is_package: bool = False

    def to_dict(self) -> dict:
        return {"path": self.path, "size": self.size, "is_package": self.is_package}
