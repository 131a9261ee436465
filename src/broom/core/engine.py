"""Cleanup orchestration engine."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path

from broom.core.duplicates import DuplicateDetector
from broom.core.matcher import PathMatcher
from broom.core.operations import Operation, targets_for
from broom.core.reclaimer import DirectoryReclaimer, Reclaimer
from broom.core.retention import RetentionLevel, effective_keep_days
from broom.core.scanner import CancelToken
from broom.core.tracker import CleanEvent
from broom.core.trash import Trash
from broom.core.undo import DEFAULT_UNDO_WINDOW, UndoLedger
from broom.core.uninstall import AppDescriptor, plan_uninstall
from broom.models.clean_result import OperationResult
from broom.models.preview import PreviewNode, selected_paths
from broom.models.scan_result import DuplicateGroup
from broom.settings import CleanConfig, load_config

log = logging.getLogger(__name__)

ConfigLoader = Callable[[], CleanConfig]
EventSink = Callable[[CleanEvent], None]
ResultCallback = Callable[[OperationResult], None]


class BroomEngine:
    """Runs cleanup operations and keeps the undo window.

    Every call takes a fresh configuration snapshot, so concurrent
    operations never see rules change halfway through.
    """

    def __init__(
        self,
        config_loader: ConfigLoader = load_config,
        trash: Trash | None = None,
        ledger: UndoLedger | None = None,
        on_event: EventSink | None = None,
        undo_window: int = DEFAULT_UNDO_WINDOW,
    ) -> None:
        self._config_loader = config_loader
        self.trash = trash if trash is not None else Trash()
        self.ledger = ledger if ledger is not None else UndoLedger(self.trash)
        self._on_event = on_event
        self.undo_window = undo_window
        self._executor: ThreadPoolExecutor | None = None

    # ── directory-based operations ──────────────────────────────────────

    def clean(
        self,
        operation: Operation | str,
        level: RetentionLevel | str | None = None,
        include_hidden: bool | None = None,
        aggressive: bool = False,
        now: datetime | None = None,
    ) -> OperationResult:
        """Run a cache/logs/browsers/smart cleanup.

        Args:
            operation: Which target set to clean.
            level: Retention level; defaults to the configured one.
            include_hidden: Whether dotfiles are eligible; defaults to config.
            aggressive: Also clear service worker caches (browsers).
            now: Reference time for the age cutoff.

        Raises:
            ValueError: If *operation* is not directory based.
        """
        operation = Operation(operation)
        if not operation.is_target_based:
            raise ValueError(f"Operation '{operation.value}' works on explicit paths, use trash_paths()")

        config = self._config_loader()
        level = RetentionLevel(level) if level is not None else config.level
        hidden = config.include_hidden if include_hidden is None else include_hidden
        keep_days = effective_keep_days(level, config.custom_keep_days)

        reclaimer = DirectoryReclaimer(Reclaimer(self.trash), PathMatcher(config.rules))
        if operation is Operation.SMART:
            # Caches first, then logs, as two merged sub-results
            result = reclaimer.reclaim_targets(targets_for(Operation.CACHE), hidden, keep_days, now)
            result.merge(reclaimer.reclaim_targets(targets_for(Operation.LOGS), hidden, keep_days, now))
        else:
            result = reclaimer.reclaim_targets(targets_for(operation, aggressive), hidden, keep_days, now)

        log.info(
            "%s: removed %d items, %d bytes, %d failed (keep %d days)",
            operation.value, result.items_removed, result.bytes_freed, result.items_failed, keep_days,
        )
        self._finish(operation, result)
        return result

    def clean_async(
        self,
        operation: Operation | str,
        on_result: ResultCallback | None = None,
        **options,
    ) -> Future:
        """Run ``clean()`` on a worker thread."""

        def _run() -> OperationResult:
            try:
                result = self.clean(operation, **options)
            except Exception:
                log.exception("Operation '%s' failed", operation)
                raise
            if on_result:
                on_result(result)
            return result

        return self.executor.submit(_run)

    # ── explicit path lists ─────────────────────────────────────────────

    def trash_paths(
        self,
        paths: Iterable[Path | str],
        operation: Operation | str,
        source: str | None = None,
    ) -> OperationResult:
        """Trash user-selected paths (duplicates, big files, uninstall leaves).

        Excluded paths are skipped like in directory cleanups.
        """
        operation = Operation(operation)
        config = self._config_loader()
        matcher = PathMatcher(config.rules)

        allowed: list[Path | str] = []
        for path in paths:
            if matcher.should_exclude(path, identifier=source):
                log.debug("Excluded: %s", path)
                continue
            allowed.append(path)

        result = Reclaimer(self.trash).reclaim_paths(allowed)
        log.info("%s: trashed %d items, %d failed", operation.value, result.items_removed, result.items_failed)
        self._finish(operation, result, source)
        return result

    def find_duplicates(
        self,
        roots: Sequence[Path | str],
        include_hidden: bool | None = None,
        skip_packages: bool = True,
        cancel: CancelToken | None = None,
    ) -> list[DuplicateGroup]:
        """Scan roots for duplicate content, largest savings first."""
        config = self._config_loader()
        hidden = config.include_hidden if include_hidden is None else include_hidden
        matcher = PathMatcher(config.rules)

        groups = []
        for group in DuplicateDetector(cancel).scan(roots, hidden, skip_packages):
            files = [f for f in group.files if not matcher.should_exclude(f)]
            if len(files) >= 2:
                group.files = files
                groups.append(group)
        groups.sort(key=lambda g: g.reclaimable_bytes, reverse=True)
        return groups

    def plan_uninstall(self, app: AppDescriptor) -> list[PreviewNode]:
        """Stage an application's remnants as a selectable tree."""
        config = self._config_loader()
        return plan_uninstall(app, PathMatcher(config.rules))

    def uninstall(self, plan: Sequence[PreviewNode], app: AppDescriptor | None = None) -> OperationResult:
        """Trash the selected leaves of an uninstall plan."""
        source = app.app_id if app is not None else None
        return self.trash_paths(selected_paths(plan), Operation.UNINSTALL, source=source)

    # ── undo ────────────────────────────────────────────────────────────

    def restore(self) -> int:
        """Put back everything from the current undo window."""
        return self.ledger.restore()

    @property
    def undo_remaining(self) -> int:
        return self.ledger.remaining_seconds

    # ── internals ───────────────────────────────────────────────────────

    def _finish(self, operation: Operation, result: OperationResult, source: str | None = None) -> None:
        if result.trashed:
            self.ledger.track(result.trashed, self.undo_window)
        if self._on_event is None or result.bytes_freed <= 0:
            return
        try:
            self._on_event(CleanEvent(bytes_freed=result.bytes_freed, kind=operation.value, source=source))
        except Exception:
            log.exception("Event sink failed for '%s'", operation.value)

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Worker pool shared by background operations."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="broom")
        return self._executor

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
