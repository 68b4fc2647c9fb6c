from __future__ import annotations

from typing import Dict, List

import pytest

from sheetsync.descriptors import ColumnDescriptor, TableDescriptor
from sheetsync.errors import FetchError
from sheetsync.fetcher import FetchedSheet, parse_csv
from sheetsync.store import SyncStore


class FakeFetcher:
    """Serves CSV text per URL; URLs mapped to an int fail with that HTTP status."""

    def __init__(self, sources: Dict[str, object]) -> None:
        self.sources = dict(sources)
        self.calls: List[str] = []

    def fetch(self, source_url: str) -> FetchedSheet:
        self.calls.append(source_url)
        body = self.sources[source_url]
        if isinstance(body, int):
            raise FetchError(f"GET {source_url} returned HTTP {body}")
        return parse_csv(str(body))


@pytest.fixture
def store(tmp_path):
    sync_store = SyncStore(tmp_path / "data.db")
    sync_store.open()
    yield sync_store
    sync_store.close()


@pytest.fixture
def drivers_table() -> TableDescriptor:
    return TableDescriptor(
        name="driver_overview",
        url="https://sheets.example/drivers.csv",
        columns=(
            ColumnDescriptor(header="DriverGUID", name="driver_guid", type="TEXT"),
            ColumnDescriptor(header="Rank", name="rank", type="INTEGER"),
            ColumnDescriptor(header="Driver", name="driver", type="TEXT"),
            ColumnDescriptor(header="ELO", name="elo", type="INTEGER"),
        ),
    )


def table_rows(store: SyncStore, name: str) -> list:
    return store.execute(f'SELECT * FROM "{name}" ORDER BY rowid').fetchall()
