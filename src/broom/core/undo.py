"""Time-limited undo for items moved to the trash."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterable
from pathlib import Path

from broom.core.trash import Trash
from broom.models.clean_result import TrashedItem

log = logging.getLogger(__name__)

DEFAULT_UNDO_WINDOW = 15 * 60


class UndoLedger:
    """Remembers the most recent operation's trashed items for a while.

    Only one window exists at a time: ``track()`` replaces whatever was
    tracked before. ``tick()`` is called once per second by the host;
    when the countdown reaches zero the items stop being tracked (they
    stay in the trash).
    """

    def __init__(self, trash: Trash | None = None) -> None:
        self.trash = trash if trash is not None else Trash()
        self._lock = threading.Lock()
        self._items: list[TrashedItem] = []
        self._remaining = 0

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def items(self) -> list[TrashedItem]:
        with self._lock:
            return list(self._items)

    @property
    def active(self) -> bool:
        with self._lock:
            return self._remaining > 0 and bool(self._items)

    def track(self, items: Iterable[TrashedItem], window_seconds: int = DEFAULT_UNDO_WINDOW) -> None:
        """Start a new undo window, superseding any previous one."""
        if window_seconds < 0:
            raise ValueError(f"window_seconds must be non-negative, got {window_seconds}")
        items = list(items)
        with self._lock:
            self._items = items
            self._remaining = window_seconds if items else 0
        log.info("Tracking %d items for undo (%d s)", len(items), window_seconds)

    def tick(self, seconds: int = 1) -> int:
        """Advance the countdown and return the seconds left."""
        with self._lock:
            if self._remaining > 0:
                self._remaining = max(0, self._remaining - seconds)
            if self._remaining == 0 and self._items:
                log.info("Undo window expired, %d items stay in the trash", len(self._items))
                self._items = []
            return self._remaining

    def clear(self) -> None:
        with self._lock:
            self._items = []
            self._remaining = 0

    def restore(self) -> int:
        """Move every tracked item back and return how many made it.

        Something now occupying an original path is trashed first, never
        overwritten. Each item succeeds or fails on its own.
        """
        with self._lock:
            items = self._items
            self._items = []
            self._remaining = 0

        restored = 0
        for item in items:
            try:
                self._restore_one(item)
                restored += 1
            except OSError as e:
                log.debug("Cannot restore %s: %s", item.original_path, e)
        log.info("Restored %d of %d items", restored, len(items))
        return restored

    def _restore_one(self, item: TrashedItem) -> None:
        original = Path(item.original_path)
        if not os.path.lexists(item.trashed_path):
            raise FileNotFoundError(item.trashed_path)
        original.parent.mkdir(parents=True, exist_ok=True)
        if os.path.lexists(original):
            self.trash.trash(original)
        self.trash.restore(item.trashed_path, original)
