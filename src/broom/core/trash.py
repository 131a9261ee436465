"""Recoverable holding area backed by the freedesktop.org home trash.

Layout (``$XDG_DATA_HOME/Trash``)::

    files/<name>               the trashed item itself
    info/<name>.trashinfo      original location and deletion date

A name is reserved by creating its ``.trashinfo`` exclusively before the
item is moved, so concurrent trash operations never collide. Items are
only ever renamed into place, never copied: an item on another
filesystem, or one whose parent refuses the rename, fails as a whole and
stays where it was.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from urllib.parse import quote

from broom.utils import xdg_data_home

log = logging.getLogger(__name__)

_INFO_SUFFIX = ".trashinfo"
_MAX_NAME_ATTEMPTS = 10_000


class TrashError(OSError):
    """Raised when the trash itself cannot be used."""


class Trash:
    """Moves items into the home trash and back."""

    def __init__(self, root: Path | None = None) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root if self._root is not None else xdg_data_home() / "Trash"

    @property
    def files_dir(self) -> Path:
        return self.root / "files"

    @property
    def info_dir(self) -> Path:
        return self.root / "info"

    def _ensure_dirs(self) -> None:
        try:
            self.files_dir.mkdir(parents=True, exist_ok=True)
            self.info_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TrashError(f"Trash unavailable at {self.root}: {e}") from e

    def _reserve_name(self, name: str, original: str) -> tuple[str, Path]:
        """Create the .trashinfo for a free name and return (name, info_path)."""
        stem, ext = os.path.splitext(name)
        if not stem:
            stem, ext = name, ""
        content = (
            "[Trash Info]\n"
            f"Path={quote(original)}\n"
            f"DeletionDate={datetime.now().strftime('%Y-%m-%dT%H:%M:%S')}\n"
        )
        for attempt in range(_MAX_NAME_ATTEMPTS):
            candidate = name if attempt == 0 else f"{stem}.{attempt}{ext}"
            info_path = self.info_dir / (candidate + _INFO_SUFFIX)
            if os.path.lexists(self.files_dir / candidate):
                continue
            try:
                fd = os.open(info_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            except FileExistsError:
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            return candidate, info_path
        raise TrashError(f"No free trash name for {name}")

    def trash(self, path: Path | str) -> Path:
        """Move *path* into the trash and return its new location.

        Raises:
            FileNotFoundError: If *path* does not exist.
            OSError: If the rename fails (including ``EXDEV`` across
                filesystems); the item and the trash are left unchanged.
        """
        original = os.path.abspath(os.fspath(path))
        if not os.path.lexists(original):
            raise FileNotFoundError(original)
        self._ensure_dirs()

        name, info_path = self._reserve_name(os.path.basename(original.rstrip(os.sep)), original)
        target = self.files_dir / name
        try:
            os.rename(original, target)
        except OSError:
            info_path.unlink(missing_ok=True)
            raise
        log.debug("Trashed %s -> %s", original, target)
        return target

    def restore(self, trashed: Path | str, original: Path | str) -> None:
        """Move a trashed item back to *original* and drop its info record."""
        trashed = Path(trashed)
        os.rename(trashed, original)
        if trashed.parent == self.files_dir:
            (self.info_dir / (trashed.name + _INFO_SUFFIX)).unlink(missing_ok=True)
        log.debug("Restored %s -> %s", trashed, original)
