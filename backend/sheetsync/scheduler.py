from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from apscheduler.schedulers.background import BackgroundScheduler

from .descriptors import TableDescriptor
from .executor import SyncExecutor, SyncState, TableSyncResult

logger = logging.getLogger(__name__)

JOB_ID = "sheetsync_cycle"


@dataclass
class CycleResult:
    started_at: dt.datetime
    tables: List[TableSyncResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.tables if result.ok)

    @property
    def failed(self) -> int:
        return len(self.tables) - self.succeeded


class SyncScheduler:
    """Runs every table sync once at start, then on a fixed interval.

    Triggers fire on wall-clock time. A trigger that lands while a cycle is
    still running is dropped and counted in :attr:`skipped_cycles`.

    Args:
        executor: Runs one table sync; called once per table per cycle.
        tables: Descriptors synced in this order on every cycle.
        interval_minutes: Minutes between triggers.
        scheduler: APScheduler instance to register the job on; a new
            ``BackgroundScheduler`` is created when omitted.
    """

    def __init__(
        self,
        executor: SyncExecutor,
        tables: Sequence[TableDescriptor],
        interval_minutes: int = 5,
        scheduler: Optional[BackgroundScheduler] = None,
    ) -> None:
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.executor = executor
        self.tables = tuple(tables)
        self.interval_minutes = interval_minutes
        self.skipped_cycles = 0
        self.last_cycle: Optional[CycleResult] = None
        self._scheduler = scheduler or BackgroundScheduler()
        self._cycle_lock = threading.Lock()
        self._stopping = threading.Event()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def run_cycle(self) -> Optional[CycleResult]:
        """Sync every table in order. Never raises; returns ``None`` if skipped."""
        if not self._cycle_lock.acquire(blocking=False):
            self.skipped_cycles += 1
            logger.warning("Previous sync cycle still running; skipping this trigger")
            return None
        try:
            cycle = CycleResult(started_at=dt.datetime.now(dt.timezone.utc))
            for index, table in enumerate(self.tables):
                if self._stopping.is_set():
                    logger.info(
                        "Shutdown requested; skipping %d remaining sheets",
                        len(self.tables) - index,
                    )
                    break
                cycle.tables.append(self._sync_one(table))
            self.last_cycle = cycle
            logger.info(
                "Sync cycle finished: %d tables synced, %d failed",
                cycle.succeeded,
                cycle.failed,
            )
            return cycle
        finally:
            self._cycle_lock.release()

    def _sync_one(self, table: TableDescriptor) -> TableSyncResult:
        try:
            return self.executor.sync_table(table)
        except Exception as exc:
            logger.exception("Unexpected error syncing sheet %r", table.name)
            return TableSyncResult(table=table.name, state=SyncState.ABORTED, error=str(exc))

    def start(self) -> None:
        """Schedule the recurring job with its first run due immediately.

        The job fires every ``interval_minutes`` of wall-clock time whether or
        not the previous cycle has finished; overlapping triggers are dropped
        by :meth:`run_cycle`.
        """
        self._stopping.clear()
        self._scheduler.add_job(
            self.run_cycle,
            "interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            replace_existing=True,
            next_run_time=dt.datetime.now(dt.timezone.utc),
            max_instances=2,
            coalesce=True,
            misfire_grace_time=None,
        )
        self._scheduler.start()
        logger.info("Scheduler started: full sync every %d minutes", self.interval_minutes)

    def stop(self) -> None:
        """Stop triggering new cycles and stop the running one between sheets.

        The sheet being synced when this is called is not awaited or
        interrupted; no further sheet in that cycle is started.
        """
        self._stopping.set()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
