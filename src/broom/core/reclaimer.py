"""Trash-based removal of single items and of directory contents."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from broom.core.matcher import PathMatcher
from broom.core.retention import cutoff_date, is_protected
from broom.core.sizing import estimate_size
from broom.core.trash import Trash
from broom.models.clean_result import OperationResult, ReclaimFailure, TrashedItem
from broom.utils import is_hidden

log = logging.getLogger(__name__)


class Reclaimer:
    """Moves items to the trash one at a time.

    Never raises for filesystem problems: every call returns either a
    ``TrashedItem`` or a ``ReclaimFailure`` for the caller to count.
    """

    def __init__(self, trash: Trash | None = None) -> None:
        self.trash = trash if trash is not None else Trash()

    def reclaim(self, path: Path | str) -> TrashedItem | ReclaimFailure:
        original = os.path.abspath(os.fspath(path))
        try:
            new_location = self.trash.trash(original)
        except OSError as e:
            log.debug("Cannot trash %s: %s", original, e)
            return ReclaimFailure(path=original, reason=e.strerror or str(e))
        return TrashedItem(original_path=original, trashed_path=os.fspath(new_location))

    def reclaim_paths(self, paths: Iterable[Path | str], include_hidden: bool = True) -> OperationResult:
        """Trash an explicit list of paths, sizing each one first."""
        result = OperationResult()
        for path in paths:
            size = estimate_size(path, include_hidden=include_hidden)
            outcome = self.reclaim(path)
            if isinstance(outcome, TrashedItem):
                result.add_success(outcome, size)
            else:
                result.add_failure(outcome)
        return result


@dataclass(frozen=True, slots=True)
class Target:
    """A directory whose children are reclaimed.

    With ``per_child`` set, ``base`` is an intermediate directory: each of
    its child directories is expanded to ``child / per_child`` and that
    directory's children are reclaimed instead.
    """

    base: Path
    per_child: str | None = None


class DirectoryReclaimer:
    """Reclaims the direct children of target directories.

    Children are skipped when an exclusion rule matches or when they were
    modified inside the keep window; the rest are sized and trashed.
    """

    def __init__(
        self,
        reclaimer: Reclaimer | None = None,
        matcher: PathMatcher | None = None,
    ) -> None:
        self.reclaimer = reclaimer if reclaimer is not None else Reclaimer()
        self.matcher = matcher if matcher is not None else PathMatcher()

    def reclaim_children(
        self,
        directory: Path | str,
        include_hidden: bool = False,
        keep_days: int = 0,
        now: datetime | None = None,
    ) -> OperationResult:
        """Trash eligible children of *directory*.

        A missing directory, or a path that is not a directory, is an
        empty result.
        """
        result = OperationResult()
        directory = Path(directory)
        if not directory.is_dir():
            return result

        cutoff = cutoff_date(keep_days, now)
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError:
            log.debug("Cannot read directory: %s", directory)
            return result

        for entry in children:
            if not include_hidden and is_hidden(entry.name):
                continue
            if self.matcher.should_exclude(entry.path):
                log.debug("Excluded: %s", entry.path)
                continue
            if cutoff is not None:
                try:
                    mtime = entry.stat(follow_symlinks=False).st_mtime
                except OSError:
                    log.debug("Cannot stat, keeping: %s", entry.path)
                    continue
                if is_protected(mtime, cutoff):
                    continue

            size = estimate_size(entry.path, include_hidden=include_hidden)
            outcome = self.reclaimer.reclaim(entry.path)
            if isinstance(outcome, TrashedItem):
                result.add_success(outcome, size)
            else:
                result.add_failure(outcome)
        return result

    def iter_child_dirs(self, directory: Path, include_hidden: bool = False) -> list[Path]:
        """List non-excluded child directories, using each name as identifier."""
        if not directory.is_dir():
            return []
        found: list[Path] = []
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    if not include_hidden and is_hidden(entry.name):
                        continue
                    try:
                        if not entry.is_dir(follow_symlinks=False):
                            continue
                    except OSError:
                        continue
                    if self.matcher.should_exclude(entry.path, identifier=entry.name):
                        log.debug("Excluded: %s", entry.path)
                        continue
                    found.append(Path(entry.path))
        except OSError:
            log.debug("Cannot read directory: %s", directory)
        return sorted(found)

    def reclaim_target(
        self,
        target: Target,
        include_hidden: bool = False,
        keep_days: int = 0,
        now: datetime | None = None,
    ) -> OperationResult:
        """Reclaim a single target, expanding intermediate directories."""
        if target.per_child is None:
            return self.reclaim_children(target.base, include_hidden, keep_days, now)

        result = OperationResult()
        for child in self.iter_child_dirs(target.base, include_hidden):
            result.merge(self.reclaim_children(child / target.per_child, include_hidden, keep_days, now))
        return result

    def reclaim_targets(
        self,
        targets: Iterable[Target],
        include_hidden: bool = False,
        keep_days: int = 0,
        now: datetime | None = None,
    ) -> OperationResult:
        """Reclaim every target and merge the results."""
        result = OperationResult()
        for target in targets:
            result.merge(self.reclaim_target(target, include_hidden, keep_days, now))
        return result
