from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from . import schema
from .coerce import CellValue, coerce_column
from .descriptors import TableDescriptor
from .errors import HeaderMismatchError, SyncError
from .fetcher import FetchedSheet, Row
from .store import SyncStore

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    FETCHING = "fetching"
    SCHEMA_READY = "schema_ready"
    CLEARING = "clearing"
    INSERTING = "inserting"
    DONE = "done"
    ABORTED = "aborted"


class Fetcher(Protocol):
    def fetch(self, source_url: str) -> FetchedSheet: ...


@dataclass
class TableSyncResult:
    table: str
    state: SyncState = SyncState.FETCHING
    rows_attempted: int = 0
    rows_inserted: int = 0
    rows_failed: int = 0
    cell_warnings: int = 0
    unmatched_headers: List[str] = field(default_factory=list)
    failed_at: Optional[SyncState] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is SyncState.DONE


class SyncExecutor:
    """Replaces the contents of one table with a freshly fetched sheet.

    ``FETCHING -> SCHEMA_READY -> CLEARING -> INSERTING -> DONE``. Fetch,
    schema, header-check and commit failures end in ``ABORTED`` and leave the
    table's previous contents in place because clearing and inserting share
    one transaction.

    Args:
        store: Shared database handle.
        fetcher: Anything with ``fetch(url) -> FetchedSheet``.
        max_unmatched_ratio: Share of declared headers that may be missing
            from the live CSV before the table is aborted instead of synced
            with those columns set to NULL.
    """

    def __init__(self, store: SyncStore, fetcher: Fetcher, max_unmatched_ratio: float = 0.5) -> None:
        self.store = store
        self.fetcher = fetcher
        self.max_unmatched_ratio = max_unmatched_ratio

    def sync_table(self, table: TableDescriptor) -> TableSyncResult:
        """Fetch ``table``'s sheet and replace the table's rows with it.

        Args:
            table: Descriptor naming the target table, its CSV export URL and
                the columns to coerce and insert, in insert order.

        Returns:
            The final state and row counts. Fetch, schema and header-check
            failures are reported as ``ABORTED`` rather than raised.
        """
        result = TableSyncResult(table=table.name)
        started = time.monotonic()
        logger.info("Starting sync for sheet: %s", table.name)
        try:
            self._run(table, result)
        except (SyncError, ValueError, sqlite3.Error) as exc:
            result.failed_at = result.state
            result.state = SyncState.ABORTED
            result.error = str(exc)
            logger.error(
                "Error syncing sheet %r during %s: %s", table.name, result.failed_at.value, exc
            )
        finally:
            result.duration_seconds = time.monotonic() - started

        if result.ok:
            logger.info(
                "Synced %s: %d rows attempted, %d inserted, %d failed, %d cell warnings (%.2fs)",
                table.name,
                result.rows_attempted,
                result.rows_inserted,
                result.rows_failed,
                result.cell_warnings,
                result.duration_seconds,
            )
        return result

    def _run(self, table: TableDescriptor, result: TableSyncResult) -> None:
        result.state = SyncState.FETCHING
        sheet = self.fetcher.fetch(table.source_url)

        result.state = SyncState.SCHEMA_READY
        schema.ensure_table(self.store, table.name, table.columns)

        result.unmatched_headers = self._check_headers(table, sheet.headers)

        insert_sql = schema.insert_sql(table.name, table.columns)
        with self.store.transaction() as conn:
            result.state = SyncState.CLEARING
            conn.execute(schema.delete_all_sql(table.name))

            result.state = SyncState.INSERTING
            for ordinal, row in enumerate(sheet.rows, start=1):
                result.rows_attempted += 1
                values = self._row_values(table, row, ordinal, result)
                try:
                    conn.execute(insert_sql, values)
                except (sqlite3.Error, OverflowError) as exc:
                    result.rows_failed += 1
                    logger.error(
                        "Error inserting row %d into %s: %s. Row data: %r",
                        ordinal,
                        table.name,
                        exc,
                        row,
                    )
                else:
                    result.rows_inserted += 1

        result.state = SyncState.DONE

    def _check_headers(self, table: TableDescriptor, live_headers: Sequence[str]) -> List[str]:
        present = set(live_headers)
        unmatched = [header for header in table.headers if header not in present]
        if not unmatched:
            return unmatched

        ratio = len(unmatched) / len(table.columns)
        logger.warning(
            "Sheet %s is missing %d of %d declared headers (%s); live headers: %s",
            table.name,
            len(unmatched),
            len(table.columns),
            ", ".join(repr(h) for h in unmatched),
            ", ".join(repr(h) for h in live_headers) or "<none>",
        )
        if ratio > self.max_unmatched_ratio:
            raise HeaderMismatchError(
                f"{len(unmatched)}/{len(table.columns)} declared headers missing from {table.name} "
                f"(limit {self.max_unmatched_ratio:.0%})"
            )
        return unmatched

    def _row_values(
        self, table: TableDescriptor, row: Row, ordinal: int, result: TableSyncResult
    ) -> List[CellValue]:
        values: List[CellValue] = []
        for column in table.columns:
            value, warning = coerce_column(row.get(column.source_header), column)
            if warning:
                result.cell_warnings += 1
                logger.warning(
                    "Row %d of %s, column %s: %s; storing NULL",
                    ordinal,
                    table.name,
                    column.target_name,
                    warning,
                )
            values.append(value)
        return values
