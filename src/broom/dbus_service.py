"""D-Bus service for GUI communication.

D-Bus methods use PascalCase per D-Bus convention, and type signatures
like "as" and "(ss)" are D-Bus protocol types, not Python syntax.
All results are JSON strings.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging

from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, method, signal
from dbus_next import BusType

from broom.core.engine import BroomEngine
from broom.core.operations import Operation
from broom.core.scanner import IncrementalScanner
from broom.core.tracker import Tracker
from broom.models.clean_result import OperationResult

log = logging.getLogger(__name__)

_BUS_NAME = "io.github.broom"
_OBJECT_PATH = "/io/github/broom"
_INTERFACE = "io.github.broom.Manager"

_TICK_SECONDS = 1


# noinspection PyPep8Naming
class BroomDBusService(ServiceInterface):
    """D-Bus service interface for Broom."""

    def __init__(self, engine: BroomEngine | None = None) -> None:
        super().__init__(_INTERFACE)
        self._engine = engine if engine is not None else BroomEngine(on_event=Tracker())
        self._scanner = IncrementalScanner()

    @property
    def engine(self) -> BroomEngine:
        return self._engine

    def _reply(self, result: OperationResult) -> str:
        data = result.to_dict()
        data["undo_remaining"] = self._engine.undo_remaining
        return json.dumps(data)

    # ── JSON handlers, also usable without a bus ───────────────────────
    # Engine calls run on the engine's worker pool, never on the bus loop

    async def _in_worker(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._engine.executor, functools.partial(func, *args, **kwargs))

    async def clean(self, kind: str, level: str = "", include_hidden: bool = False) -> str:
        """Run a cache/logs/browsers/smart cleanup; empty level means configured."""
        try:
            result = await self._in_worker(
                self._engine.clean, kind, level=level or None, include_hidden=include_hidden
            )
        except ValueError as e:
            return json.dumps({"error": str(e)})
        return self._reply(result)

    async def find_duplicates(self, roots: list[str], include_hidden: bool = False, skip_packages: bool = True) -> str:
        groups = await self._in_worker(
            self._engine.find_duplicates, roots, include_hidden=include_hidden, skip_packages=skip_packages
        )
        return json.dumps([g.to_dict() for g in groups])

    async def trash(self, paths: list[str], kind: str) -> str:
        """Trash an explicit selection (duplicates, big files)."""
        try:
            result = await self._in_worker(self._engine.trash_paths, paths, kind)
        except ValueError as e:
            return json.dumps({"error": str(e)})
        return self._reply(result)

    async def restore(self) -> str:
        """Put back everything from the current undo window."""
        restored = await self._in_worker(self._engine.restore)
        self.UndoTick(0)
        return json.dumps({"restored": restored})

    def stats(self) -> str:
        tracker = Tracker()
        data = {
            "month_total": tracker.month_total(),
            "per_kind": {op.value: tracker.month_total(op.value) for op in Operation},
        }
        return json.dumps(data)

    # ── D-Bus methods ───────────────────────────────────────────────────

    @method()
    async def Clean(self, kind: "s", level: "s", include_hidden: "b") -> "s":  # type: ignore[override]
        return await self.clean(kind, level, include_hidden)

    @method()
    async def FindDuplicates(self, roots: "as", include_hidden: "b", skip_packages: "b") -> "s":  # type: ignore[override]
        return await self.find_duplicates(list(roots), include_hidden, skip_packages)

    @method()
    def FindLargeFiles(self, scopes: "as", min_bytes: "t", include_hidden: "b") -> "s":  # type: ignore[override]
        """Start a large-file walk; batches arrive through ScanBatch."""
        loop = asyncio.get_running_loop()

        def on_batch(batch) -> None:
            # Runs on the scan thread; signals must be sent from the bus loop
            payload = json.dumps([r.to_dict() for r in batch])
            loop.call_soon_threadsafe(self.ScanBatch, payload)

        self._scanner.start(list(scopes), min_bytes, on_batch=on_batch, include_hidden=include_hidden)
        return json.dumps({"status": "started"})

    @method()
    def CancelScan(self) -> "b":  # type: ignore[override]
        """Stop the current large-file walk."""
        self._scanner.cancel()
        return True

    @method()
    async def Trash(self, paths: "as", kind: "s") -> "s":  # type: ignore[override]
        return await self.trash(list(paths), kind)

    @method()
    async def Restore(self) -> "s":  # type: ignore[override]
        return await self.restore()

    @method()
    def UndoRemaining(self) -> "u":  # type: ignore[override]
        return self._engine.undo_remaining

    @method()
    def GetStats(self) -> "s":  # type: ignore[override]
        """Bytes freed this month, overall and per operation."""
        return self.stats()

    @signal()
    def ScanBatch(self, records_json: str) -> "s":  # type: ignore[override]
        return records_json

    @signal()
    def UndoTick(self, remaining: int) -> "u":  # type: ignore[override]
        return remaining

    def tick(self) -> None:
        """Advance the undo countdown by one second and announce it."""
        if self._engine.ledger.active:
            self.UndoTick(self._engine.ledger.tick(_TICK_SECONDS))

    def shutdown(self) -> None:
        self._scanner.shutdown()
        self._engine.shutdown()


async def _tick_forever(service: BroomDBusService) -> None:
    while True:
        await asyncio.sleep(_TICK_SECONDS)
        service.tick()


async def run_service() -> None:
    """Start the D-Bus service."""
    bus = await MessageBus(bus_type=BusType.SESSION).connect()
    service = BroomDBusService()
    bus.export(_OBJECT_PATH, service)
    await bus.request_name(_BUS_NAME)
    log.info("D-Bus service started on %s", _BUS_NAME)
    ticker = asyncio.create_task(_tick_forever(service))
    try:
        await bus.wait_for_disconnect()
    finally:
        ticker.cancel()
        service.shutdown()


def start_service() -> None:
    """Entry point to start the D-Bus service."""
    asyncio.run(run_service())
