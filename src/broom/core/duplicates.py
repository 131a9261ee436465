"""Duplicate file detection.

Candidates are narrowed in three passes so that expensive reads only
happen for files that survived the cheaper ones:

1. bucket by exact size (zero-byte files are never candidates),
2. bucket by an xxh64 digest of the first 128 KiB,
3. confirm with a SHA-256 over the whole file, streamed in chunks.
"""

from __future__ import annotations

import hashlib
import logging
import os
import stat
from collections.abc import Iterable, Sequence
from pathlib import Path

import xxhash

from broom.core.reclaimer import Reclaimer
from broom.core.scanner import CancelToken
from broom.models.clean_result import OperationResult
from broom.models.scan_result import DuplicateGroup
from broom.utils import is_hidden, is_package_name

log = logging.getLogger(__name__)

PARTIAL_READ_SIZE = 128 * 1024
_CHUNK_SIZE = 256 * 1024


def partial_digest(path: Path | str, length: int = PARTIAL_READ_SIZE) -> str:
    """Fast non-cryptographic digest of the first *length* bytes."""
    with open(path, "rb") as f:
        return xxhash.xxh64(f.read(length)).hexdigest()


def full_digest(path: Path | str) -> str:
    """Compute SHA-256 of a file using chunked reads."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            h.update(chunk)
    return h.hexdigest()


class DuplicateDetector:
    """Groups files with identical content across one or more roots."""

    def __init__(self, cancel: CancelToken | None = None) -> None:
        self.cancel = cancel if cancel is not None else CancelToken()

    def scan(
        self,
        roots: Sequence[Path | str],
        include_hidden: bool = False,
        skip_packages: bool = True,
    ) -> list[DuplicateGroup]:
        """Return duplicate groups, largest reclaimable savings first."""
        by_size = self._bucket_by_size(roots, include_hidden, skip_packages)
        if self.cancel.cancelled:
            return []

        by_partial: dict[tuple[int, str], list[str]] = {}
        for size, paths in by_size.items():
            if len(paths) < 2:
                continue
            for path in paths:
                if self.cancel.cancelled:
                    return []
                try:
                    digest = partial_digest(path)
                except OSError:
                    log.debug("Cannot read: %s", path)
                    continue
                by_partial.setdefault((size, digest), []).append(path)

        groups: list[DuplicateGroup] = []
        for (size, _digest), paths in by_partial.items():
            if len(paths) < 2:
                continue
            by_full: dict[str, list[str]] = {}
            for path in paths:
                if self.cancel.cancelled:
                    return []
                try:
                    digest = full_digest(path)
                except OSError:
                    log.debug("Cannot hash: %s", path)
                    continue
                by_full.setdefault(digest, []).append(path)
            for files in by_full.values():
                if len(files) >= 2:
                    groups.append(DuplicateGroup(files=files, size_per_file=size))

        groups.sort(key=lambda g: g.reclaimable_bytes, reverse=True)
        log.info("Found %d duplicate groups", len(groups))
        return groups

    def _bucket_by_size(
        self,
        roots: Sequence[Path | str],
        include_hidden: bool,
        skip_packages: bool,
    ) -> dict[int, list[str]]:
        """Walk the roots and group regular, non-empty files by size."""
        by_size: dict[int, list[str]] = {}
        seen_inodes: set[tuple[int, int]] = set()

        def add(path: str, st: os.stat_result) -> None:
            if st.st_size <= 0:
                return
            key = (st.st_dev, st.st_ino)
            if key in seen_inodes:
                return
            seen_inodes.add(key)
            by_size.setdefault(st.st_size, []).append(path)

        for root in roots:
            root_path = os.path.abspath(os.fspath(root))
            try:
                st = os.lstat(root_path)
            except OSError:
                log.debug("Cannot access root: %s", root_path)
                continue
            if stat.S_ISREG(st.st_mode):
                add(root_path, st)
                continue
            if not stat.S_ISDIR(st.st_mode):
                continue
            if skip_packages and is_package_name(os.path.basename(root_path)):
                continue

            stack = [root_path]
            while stack:
                if self.cancel.cancelled:
                    return by_size
                current = stack.pop()
                try:
                    with os.scandir(current) as it:
                        entries = list(it)
                except OSError:
                    log.debug("Cannot read directory: %s", current)
                    continue
                for entry in entries:
                    if not include_hidden and is_hidden(entry.name):
                        continue
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            if skip_packages and is_package_name(entry.name):
                                continue
                            stack.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            add(entry.path, entry.stat(follow_symlinks=False))
                    except OSError:
                        log.debug("Cannot stat: %s", entry.path)
        return by_size


def trash(paths: Iterable[Path | str], reclaimer: Reclaimer | None = None) -> tuple[int, int]:
    """Trash the given duplicate copies and return (removed, failed)."""
    result = trash_with_result(paths, reclaimer)
    return result.items_removed, result.items_failed


def trash_with_result(paths: Iterable[Path | str], reclaimer: Reclaimer | None = None) -> OperationResult:
    """Trash the given paths and return the full result for undo tracking."""
    reclaimer = reclaimer if reclaimer is not None else Reclaimer()
    return reclaimer.reclaim_paths(paths)
