from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger(__name__)


class SyncStore:
    """Owns the single SQLite connection shared by the sync job.

    The connection is opened in autocommit mode; multi-statement work goes
    through :meth:`transaction`, which serialises writers on one lock.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = str(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._closed = False

    def open(self) -> sqlite3.Connection:
        """Return the shared connection, opening it on first use.

        File databases are switched to WAL so the site keeps reading the last
        committed snapshot while a sync transaction is open.

        Raises:
            sqlite3.ProgrammingError: if the store was already closed.
        """
        if self._closed:
            raise sqlite3.ProgrammingError(f"Store {self.path} has been closed")
        if self._conn is None:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False, isolation_level=None)
            if self.path != ":memory:":
                mode = conn.execute("PRAGMA journal_mode=WAL").fetchone()
                logger.debug("SQLite journal mode for %s: %s", self.path, mode[0] if mode else None)
            self._conn = conn
            logger.info("Opened database %s", self.path)
        return self._conn

    @property
    def connection(self) -> sqlite3.Connection:
        return self.open()

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Run one statement outside any explicit transaction.

        Args:
            sql: Statement text; identifiers must already be quoted.
            params: Positional values bound to ``?`` placeholders.
        """
        with self._lock:
            return self.connection.execute(sql, params)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the body inside ``BEGIN IMMEDIATE`` ... ``COMMIT``.

        Any exception escaping the body rolls the transaction back and is
        re-raised; a failing rollback is logged and does not mask it.
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                try:
                    conn.execute("ROLLBACK")
                except sqlite3.Error as rollback_exc:
                    logger.warning("Rollback failed on %s: %s", self.path, rollback_exc)
                raise

    def close(self) -> None:
        """Close the connection without waiting for in-flight work."""
        self._closed = True
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()
