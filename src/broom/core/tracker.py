"""Records freed-space events for reporting."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from broom.utils import xdg_data_home

log = logging.getLogger(__name__)

MAX_EVENTS = 2000


def history_file() -> Path:
    """Location of the history file under the current XDG data home."""
    return xdg_data_home() / "broom" / "history.json"


def _empty() -> dict[str, Any]:
    return {"events": []}


def load_history(path: Path) -> dict[str, Any]:
    """Read the history at *path*; missing or unreadable files give an empty one."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return _empty()
    except (json.JSONDecodeError, OSError):
        log.exception("Failed to load history file: %s", path)
        return _empty()
    if not isinstance(data, dict) or not isinstance(data.get("events"), list):
        log.warning("Ignoring malformed history file: %s", path)
        return _empty()
    return data


def save_history(path: Path, data: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    except OSError:
        log.exception("Failed to save history file: %s", path)


@dataclass(frozen=True, slots=True)
class CleanEvent:
    """Bytes freed by one operation."""

    bytes_freed: int
    kind: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind,
            "bytes_freed": self.bytes_freed,
        }
        if self.source:
            data["source"] = self.source
        return data


class Tracker:
    """Appends events to the history file.

    Used as the engine's event sink; it only ever writes what it is
    handed and keeps the most recent ``MAX_EVENTS`` entries. Without an
    explicit *path* the file is located anew on every access.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path if self._path is not None else history_file()

    def __call__(self, event: CleanEvent) -> None:
        self.record(event)

    def record(self, event: CleanEvent) -> None:
        """Persist a single event; zero-byte events are ignored."""
        if event.bytes_freed <= 0:
            return
        with self._lock:
            path = self.path
            history = load_history(path)
            events = history["events"]
            events.append(event.to_dict())
            if len(events) > MAX_EVENTS:
                del events[: len(events) - MAX_EVENTS]
            save_history(path, history)
        log.info("Recorded %s event: %d bytes", event.kind, event.bytes_freed)

    def get_events(self) -> list[dict[str, Any]]:
        return load_history(self.path)["events"]

    def month_total(self, kind: str | None = None, now: datetime | None = None) -> int:
        """Total bytes freed in the current calendar month."""
        now = now or datetime.now(timezone.utc)
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        total = 0
        for e in self.get_events():
            if kind is not None and e.get("kind") != kind:
                continue
            try:
                ts = datetime.fromisoformat(e["timestamp"])
            except (KeyError, ValueError):
                continue
            if ts >= start:
                total += e.get("bytes_freed", 0)
        return total
