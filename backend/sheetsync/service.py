"""Process entry point: wires the sync pieces together and owns shutdown."""

from __future__ import annotations

import logging
import signal
import sqlite3
import sys
import threading
from typing import Optional, Sequence

from .descriptors import TableDescriptor
from .executor import SyncExecutor
from .fetcher import SourceFetcher
from .scheduler import SyncScheduler
from .settings import Settings
from .store import SyncStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class SyncService:
    def __init__(
        self,
        settings: Settings,
        tables: Optional[Sequence[TableDescriptor]] = None,
        store: Optional[SyncStore] = None,
        fetcher: Optional[SourceFetcher] = None,
        scheduler: Optional[SyncScheduler] = None,
    ) -> None:
        self.settings = settings
        self.tables = tuple(tables) if tables is not None else settings.load_tables()
        self.store = store or SyncStore(settings.database_path)
        self.fetcher = fetcher or SourceFetcher(timeout=settings.http_timeout)
        self.executor = SyncExecutor(
            self.store,
            self.fetcher,
            max_unmatched_ratio=settings.max_unmatched_ratio,
        )
        self.scheduler = scheduler or SyncScheduler(
            self.executor,
            self.tables,
            interval_minutes=settings.interval_minutes,
        )
        self._stopped = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def start(self) -> None:
        self.store.open()
        logger.info(
            "Syncing %d sheets (%s) into %s",
            len(self.tables),
            ", ".join(table.name for table in self.tables),
            self.settings.database_path,
        )
        self.scheduler.start()

    def shutdown(self, signum: Optional[int] = None, frame: object = None) -> None:
        """Stop scheduling, close the database and release :meth:`wait`.

        In-flight statements on the closed handle may fail; the next start
        repopulates every table anyway.
        """
        if self._stopped.is_set():
            return
        name = signal.Signals(signum).name if signum is not None else "shutdown request"
        logger.info("Received %s. Closing DB...", name)
        self.scheduler.stop()
        try:
            self.store.close()
        except sqlite3.Error as exc:
            logger.error("Error closing DB: %s", exc)
        else:
            logger.info("DB closed.")
        self._stopped.set()

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self.shutdown)
        signal.signal(signal.SIGTERM, self.shutdown)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def run_forever(self) -> int:
        self.install_signal_handlers()
        self.start()
        while not self.wait(timeout=1.0):
            pass
        return 0


def main() -> int:
    try:
        settings = Settings.from_env()
        logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
        service = SyncService(settings)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return service.run_forever()
