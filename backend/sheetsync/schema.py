from __future__ import annotations

import logging
import sqlite3
from typing import List, Sequence

from .descriptors import ColumnDescriptor, ColumnType
from .errors import DescriptorError, SchemaError
from .store import SyncStore

logger = logging.getLogger(__name__)


def quote_identifier(ident: str) -> str:
    """Delimit an SQLite identifier, doubling any embedded double quotes."""
    return '"' + ident.replace('"', '""') + '"'


def _validate(name: str, columns: Sequence[ColumnDescriptor]) -> None:
    if not isinstance(name, str) or not name:
        raise DescriptorError("Table name must be a non-empty string")
    if "\x00" in name:
        raise DescriptorError(f"Table name must not contain NUL characters: {name!r}")
    if not columns:
        raise DescriptorError(f"Table {name!r} must declare at least one column")
    seen: set[str] = set()
    for column in columns:
        target = getattr(column, "target_name", None)
        if not isinstance(target, str) or not target or "\x00" in target:
            raise DescriptorError(f"Invalid column name in table {name!r}: {column!r}")
        if target in seen:
            raise DescriptorError(f"Duplicate column name {target!r} in table {name!r}")
        if not isinstance(column.declared_type, ColumnType):
            raise DescriptorError(f"Invalid column type for {target!r}: {column.declared_type!r}")
        seen.add(target)


def create_table_sql(name: str, columns: Sequence[ColumnDescriptor]) -> str:
    _validate(name, columns)
    cols_sql = ", ".join(f"{quote_identifier(c.target_name)} {c.declared_type.value}" for c in columns)
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(name)} ({cols_sql})"


def insert_sql(name: str, columns: Sequence[ColumnDescriptor]) -> str:
    _validate(name, columns)
    quoted = ", ".join(quote_identifier(c.target_name) for c in columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {quote_identifier(name)} ({quoted}) VALUES ({placeholders})"


def delete_all_sql(name: str) -> str:
    return f"DELETE FROM {quote_identifier(name)}"


def existing_columns(store: SyncStore, name: str) -> List[str]:
    rows = store.execute(f"PRAGMA table_info({quote_identifier(name)})").fetchall()
    return [row[1] for row in rows]


def ensure_table(store: SyncStore, name: str, columns: Sequence[ColumnDescriptor]) -> None:
    """Create ``name`` with ``columns`` unless it already exists.

    Existing tables are never altered. Declared columns missing from an
    existing table are reported so the operator can migrate by hand; their
    inserts will fail row by row until then.
    """
    sql = create_table_sql(name, columns)
    logger.debug("Executing SQL: %s", sql)
    try:
        store.execute(sql)
        present = {column.lower() for column in existing_columns(store, name)}
    except sqlite3.Error as exc:
        raise SchemaError(f"Failed to ensure table {name!r}: {exc}") from exc

    missing = [c.target_name for c in columns if c.target_name.lower() not in present]
    if missing:
        logger.warning(
            "Table %s exists without declared columns %s; leaving schema unchanged",
            name,
            ", ".join(missing),
        )
