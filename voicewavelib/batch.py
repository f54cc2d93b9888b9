"""Batch pipeline: runs pending items through a caller-supplied processor."""

from __future__ import annotations

import asyncio
import copy
import importlib
import inspect
import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping

from .config import default_config
from .events import BATCH_COMPLETE, BATCH_START, EXPORT_ITEM, ITEM_STATUS, EventBus
from .models import BatchItem, ItemStatus
from .store import BatchItemStore, StoreRejected

log = logging.getLogger(__name__)

ProcessDelegate = Callable[[list[BatchItem]], Awaitable[Mapping[str, str] | None]]
ExportSink = Callable[[BatchItem], Any]


class BatchAlreadyRunning(Exception):
    """A run was requested while another one is still in progress."""
    pass


class BatchProcessingFailed(Exception):
    """The processing delegate failed; every item of the run is FAILED."""

    def __init__(self, message: str, item_ids: list[str]):
        super().__init__(message)
        self.item_ids = item_ids


@dataclass
class BatchRun:
    """Outcome of one batch run."""
    run_id: int
    item_ids: list[str]
    status: ItemStatus = ItemStatus.PROCESSING
    error: str | None = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None


class BatchPipeline:
    """Drives the items of a :class:`BatchItemStore` through processing.

    A run takes every pending item at once, hands them to the processing
    delegate in a single call and applies the outcome to all of them:
    either every item completes or every item fails.  Only one run may be
    in progress at a time.
    """

    def __init__(self, store: BatchItemStore,
                 config: dict[str, Any] | None = None,
                 event_bus: EventBus | None = None):
        self._store = store
        self._config = {**default_config(), **(config or {})}
        self._bus = event_bus or EventBus()
        self._running = False
        self._run_count = 0

    @property
    def store(self) -> BatchItemStore:
        return self._store

    @property
    def is_running(self) -> bool:
        return self._running

    def can_run(self) -> bool:
        """True if a run would actually reach the delegate."""
        pending = self._store.pending()
        return (not self._running and bool(pending)
                and not all(item.is_blank for item in pending))

    async def run(self, process: ProcessDelegate) -> BatchRun | None:
        """Process every pending item as one unit.

        Returns None when there is nothing to do (no pending items, or all
        of them blank).  Raises :class:`BatchAlreadyRunning` if a run is in
        progress and :class:`BatchProcessingFailed` after marking the run's
        items FAILED when *process* raises.
        """
        if self._running:
            raise BatchAlreadyRunning("A batch run is already in progress")
        if not self.can_run():
            log.info("Nothing to process")
            return None

        self._running = True
        self._run_count += 1
        batch = self._store.begin_processing()
        run = BatchRun(run_id=self._run_count, item_ids=[i.id for i in batch])
        log.info("Batch run %d started with %d item(s)", run.run_id, len(batch))
        self._bus.emit(BATCH_START, run=run)
        for item in batch:
            self._bus.emit(ITEM_STATUS, item=item)

        try:
            outcome = await process([copy.copy(item) for item in batch])
        except asyncio.CancelledError:
            self._finish_failed(run, "Processing cancelled")
            raise
        except Exception as e:
            message = self._config["error_message"]
            self._finish_failed(run, message)
            log.error("Batch run %d failed: %s", run.run_id, e)
            raise BatchProcessingFailed(message, run.item_ids) from e
        else:
            self._finish_completed(run, outcome)
        finally:
            self._running = False
        return run

    async def export_completed(self, sink: ExportSink,
                               delay: float | None = None) -> list[str]:
        """Hand every completed item with a result to *sink*, one by one.

        Items are exported sequentially with *delay* seconds between them
        (default: ``export_delay_ms`` from the config).  A failing item is
        logged and skipped; its status is not changed.  Returns the ids
        that were exported.
        """
        if delay is None:
            delay = self._config["export_delay_ms"] / 1000.0
        items = [i for i in self._store.completed() if i.result]
        exported: list[str] = []
        for index, item in enumerate(items):
            if index and delay > 0:
                await asyncio.sleep(delay)
            try:
                outcome = sink(item)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                log.warning("Export of %s failed: %s", item.result, e)
                self._bus.emit(EXPORT_ITEM, item=item, ok=False)
                continue
            exported.append(item.id)
            self._bus.emit(EXPORT_ITEM, item=item, ok=True)
        return exported

    # ── Internal ─────────────────────────────────────────────────────────

    def _finish_completed(self, run: BatchRun,
                          outcome: Mapping[str, str] | None) -> None:
        results = dict(outcome) if isinstance(outcome, Mapping) else {}
        template = self._config["result_template"]
        for item_id in run.item_ids:
            result = results.get(item_id) or template.format(id=item_id)
            self._settle(run, item_id, self._store.complete, str(result))
        run.status = ItemStatus.COMPLETED
        run.finished_at = datetime.now()
        log.info("Batch run %d completed", run.run_id)
        self._bus.emit(BATCH_COMPLETE, run=run)

    def _finish_failed(self, run: BatchRun, message: str) -> None:
        for item_id in run.item_ids:
            self._settle(run, item_id, self._store.fail, message)
        run.status = ItemStatus.FAILED
        run.error = message
        run.finished_at = datetime.now()
        self._bus.emit(BATCH_COMPLETE, run=run)

    def _settle(self, run: BatchRun, item_id: str,
                transition: Callable[[str, str], BatchItem], value: str) -> None:
        # One refused transition must not leave the rest of the run processing.
        try:
            item = transition(item_id, value)
        except (KeyError, StoreRejected) as e:
            log.error("Batch run %d: cannot settle item %s: %s",
                      run.run_id, item_id, e)
            return
        self._bus.emit(ITEM_STATUS, item=item)


# ---------------------------------------------------------------------------
# Export sinks and delegate loading
# ---------------------------------------------------------------------------

class DirectorySink:
    """Export sink that saves results into a directory.

    A result naming an existing file is copied; any other result reference
    is written as text to ``<item name>.txt``.
    """

    def __init__(self, directory: str):
        self._directory = directory

    @property
    def directory(self) -> str:
        return self._directory

    async def __call__(self, item: BatchItem) -> str:
        return await asyncio.to_thread(self._save, item)

    def _save(self, item: BatchItem) -> str:
        os.makedirs(self._directory, exist_ok=True)
        ref = item.result or ""
        if os.path.isfile(ref):
            target = os.path.join(self._directory, os.path.basename(ref))
            shutil.copy2(ref, target)
        else:
            if item.source_file is not None:
                stem = os.path.splitext(item.source_file.name)[0]
            else:
                stem = item.id
            target = os.path.join(self._directory, f"{stem}.txt")
            with open(target, "w", encoding="utf-8") as f:
                f.write(ref + "\n")
        log.debug("Exported %s -> %s", item.id, target)
        return target


def load_delegate(target: str) -> ProcessDelegate:
    """Resolve ``"package.module:function"`` to a processing delegate."""
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Delegate must look like 'module:function', got {target!r}")
    obj: Any = importlib.import_module(module_name)
    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError:
            raise ValueError(f"{module_name} has no attribute {attr_path!r}") from None
    if not callable(obj):
        raise ValueError(f"Delegate {target!r} is not callable")
    return obj
