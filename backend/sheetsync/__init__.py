"""Scheduled sync of published spreadsheet CSVs into the site's SQLite tables."""

from .descriptors import DEFAULT_TABLES, ColumnDescriptor, ColumnType, TableDescriptor
from .executor import SyncExecutor, SyncState, TableSyncResult
from .fetcher import SourceFetcher
from .scheduler import CycleResult, SyncScheduler
from .store import SyncStore

__all__ = [
    "DEFAULT_TABLES",
    "ColumnDescriptor",
    "ColumnType",
    "TableDescriptor",
    "SyncExecutor",
    "SyncState",
    "TableSyncResult",
    "SourceFetcher",
    "CycleResult",
    "SyncScheduler",
    "SyncStore",
]
