"""Incremental, cancellable search for large files."""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from broom.core.sizing import estimate_size
from broom.models.scan_result import BigFileRecord
from broom.utils import is_hidden, is_package_name, is_within

log = logging.getLogger(__name__)

BATCH_SIZE = 128
# Yield to other threads every N entries visited
YIELD_EVERY = 500
# Gentle mode: sleep GENTLE_DELAY seconds every N entries visited
GENTLE_EVERY = 200
GENTLE_DELAY = 0.002

BatchCallback = Callable[[list[BigFileRecord]], None]


class CancelToken:
    """Cooperative cancellation flag shared between a caller and a walker."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class IncrementalScanner:
    """Walks scope directories and streams large files in batches.

    The walk checks for cancellation before every entry, yields the
    thread every ``YIELD_EVERY`` entries, and in gentle mode also
    sleeps briefly every ``GENTLE_EVERY`` entries. Batches already
    handed out stay valid after a cancel.
    """

    def __init__(
        self,
        batch_size: int = BATCH_SIZE,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self._sleep = sleep
        self._token = CancelToken()
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()
        self.results: list[BigFileRecord] = []
        self.scanned_count = 0

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def cancel(self) -> None:
        """Stop the current walk at the next entry."""
        self._token.cancel()

    def iter_batches(
        self,
        scopes: Sequence[Path | str],
        min_bytes: int,
        include_hidden: bool = False,
        skip_packages: bool = True,
        exclude_subtrees: Sequence[Path | str] = (),
        gentle: bool = False,
        token: CancelToken | None = None,
    ) -> Iterator[list[BigFileRecord]]:
        """Yield batches of records for files of at least *min_bytes*.

        Raises:
            ValueError: If *min_bytes* is negative.
        """
        if min_bytes < 0:
            raise ValueError(f"min_bytes must be non-negative, got {min_bytes}")
        token = token if token is not None else self._token
        pruned = [os.path.abspath(os.fspath(p)) for p in exclude_subtrees]
        batch: list[BigFileRecord] = []
        visited = 0

        for scope in scopes:
            if token.cancelled:
                break
            root = os.path.abspath(os.fspath(scope))
            if not os.path.isdir(root):
                log.debug("Scope is not a directory: %s", root)
                continue

            stack = [root]
            while stack and not token.cancelled:
                current = stack.pop()
                try:
                    with os.scandir(current) as it:
                        entries = list(it)
                except OSError:
                    log.debug("Cannot read directory: %s", current)
                    continue

                for entry in entries:
                    if token.cancelled:
                        break
                    visited += 1
                    self.scanned_count = visited
                    if visited % YIELD_EVERY == 0:
                        self._sleep(0)
                    if gentle and visited % GENTLE_EVERY == 0:
                        self._sleep(GENTLE_DELAY)

                    if not include_hidden and is_hidden(entry.name):
                        continue
                    try:
                        record = self._classify(entry, min_bytes, skip_packages, include_hidden, pruned, stack)
                    except OSError:
                        log.debug("Cannot stat: %s", entry.path)
                        continue
                    if record is None:
                        continue
                    batch.append(record)
                    if len(batch) >= self.batch_size:
                        yield batch
                        batch = []

        if batch:
            yield batch

    def _classify(
        self,
        entry: os.DirEntry,
        min_bytes: int,
        skip_packages: bool,
        include_hidden: bool,
        pruned: list[str],
        stack: list[str],
    ) -> BigFileRecord | None:
        """Push directories onto *stack*; return a record for big files."""
        if entry.is_dir(follow_symlinks=False):
            if any(is_within(entry.path, p) for p in pruned):
                return None
            if is_package_name(entry.name):
                if skip_packages:
                    return None
                size = estimate_size(entry.path, include_hidden=include_hidden)
                if size >= min_bytes:
                    return BigFileRecord(path=entry.path, size=size, is_package=True)
                return None
            stack.append(entry.path)
            return None

        if not entry.is_file(follow_symlinks=False):
            return None
        size = entry.stat(follow_symlinks=False).st_size
        if size >= min_bytes:
            return BigFileRecord(path=entry.path, size=size)
        return None

    def scan(self, scopes: Sequence[Path | str], min_bytes: int, **options) -> list[BigFileRecord]:
        """Run a walk to completion (or cancellation), largest files first."""
        self._token = CancelToken()
        records: list[BigFileRecord] = []
        for batch in self.iter_batches(scopes, min_bytes, token=self._token, **options):
            records.extend(batch)
        records.sort(key=lambda r: r.size, reverse=True)
        return records

    def start(
        self,
        scopes: Sequence[Path | str],
        min_bytes: int,
        on_batch: BatchCallback | None = None,
        **options,
    ) -> Future:
        """Start a walk in a worker thread, cancelling any walk in progress.

        Each batch is appended to ``results`` and passed to *on_batch*.
        The returned future resolves to the final list, largest first.
        """
        if min_bytes < 0:
            raise ValueError(f"min_bytes must be non-negative, got {min_bytes}")
        self.cancel()
        token = CancelToken()
        with self._lock:
            self._token = token
            self.results = []
            self.scanned_count = 0
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="broom-scan")

        def _run() -> list[BigFileRecord]:
            try:
                for batch in self.iter_batches(scopes, min_bytes, token=token, **options):
                    with self._lock:
                        if self._token is not token:
                            break
                        self.results.extend(batch)
                    if on_batch:
                        on_batch(batch)
            except Exception:
                log.exception("Large file scan failed")
                raise
            with self._lock:
                self.results.sort(key=lambda r: r.size, reverse=True)
                final = list(self.results)
            log.info("Large file scan finished: %d files, %d entries", len(final), self.scanned_count)
            return final

        return self._executor.submit(_run)

    def shutdown(self) -> None:
        self.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
