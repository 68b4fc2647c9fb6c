from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import DescriptorError


class ColumnType(str, Enum):
    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"


def _check_identifier(value: str, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{what} must be a non-empty string")
    if "\x00" in value:
        raise ValueError(f"{what} must not contain NUL characters: {value!r}")
    return value


class ColumnDescriptor(BaseModel):
    """Binds one CSV header to one typed column of the target table."""

    source_header: str = Field(alias="header")
    target_name: str = Field(alias="name")
    declared_type: ColumnType = Field(default=ColumnType.TEXT, alias="type")
    timestamp: bool = Field(default=False, description="Parse with the natural-language date rule")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("source_header")
    @classmethod
    def _header_not_empty(cls, value: str) -> str:
        return _check_identifier(value, "Column header")

    @field_validator("target_name")
    @classmethod
    def _name_not_empty(cls, value: str) -> str:
        return _check_identifier(value, "Column name")

    @field_validator("declared_type", mode="before")
    @classmethod
    def _normalise_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _timestamp_is_integer(self) -> "ColumnDescriptor":
        if self.timestamp and self.declared_type is not ColumnType.INTEGER:
            raise ValueError(f"Timestamp column {self.target_name!r} must be declared INTEGER")
        return self


class TableDescriptor(BaseModel):
    """Static configuration for one spreadsheet tab mirrored into one table."""

    name: str
    source_url: str = Field(alias="url")
    columns: Tuple[ColumnDescriptor, ...] = Field(min_length=1)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("name")
    @classmethod
    def _table_name_not_empty(cls, value: str) -> str:
        return _check_identifier(value, "Table name")

    @field_validator("source_url")
    @classmethod
    def _url_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Source URL must not be empty")
        return value

    @model_validator(mode="after")
    def _unique_column_names(self) -> "TableDescriptor":
        seen: set[str] = set()
        for column in self.columns:
            if column.target_name in seen:
                raise ValueError(f"Duplicate column name {column.target_name!r} in table {self.name!r}")
            seen.add(column.target_name)
        return self

    @property
    def headers(self) -> List[str]:
        return [column.source_header for column in self.columns]


_SHEET_BASE = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vSPXEpA0_3WvJmtxJTKZ97Bi8tbZWsjCZT892N4mNgdaMJyhO-Syh1Xn-Yf4KaGw9SAZjGRwjtCpjZb/pub"
)


def _sheet_url(gid: str) -> str:
    return f"{_SHEET_BASE}?gid={gid}&single=true&output=csv"


DEFAULT_TABLES: Tuple[TableDescriptor, ...] = (
    TableDescriptor(
        name="events",
        url=_sheet_url("1933046167"),
        columns=(
            ColumnDescriptor(header="Event", name="event", type="TEXT"),
            ColumnDescriptor(header="Time", name="time", type="INTEGER", timestamp=True),
        ),
    ),
    TableDescriptor(
        name="driver_overview",
        url=_sheet_url("254771285"),
        columns=(
            ColumnDescriptor(header="DriverGUID", name="driver_guid", type="TEXT"),
            ColumnDescriptor(header="Rank", name="rank", type="INTEGER"),
            ColumnDescriptor(header="Driver", name="driver", type="TEXT"),
            ColumnDescriptor(header="ELO", name="elo", type="INTEGER"),
            ColumnDescriptor(header="License", name="license", type="TEXT"),
            ColumnDescriptor(header="Safety Rating", name="safety_rating", type="TEXT"),
        ),
    ),
    TableDescriptor(
        name="lap_records",
        url=_sheet_url("462474009"),
        columns=(
            ColumnDescriptor(header="DriverGUID", name="driver_guid", type="TEXT"),
            ColumnDescriptor(header="TrackName", name="track_name", type="TEXT"),
            ColumnDescriptor(header="CarModel", name="car_model", type="TEXT"),
            ColumnDescriptor(header="Platform", name="platform", type="TEXT"),
            ColumnDescriptor(header="BestLap", name="best_lap", type="TEXT"),
            ColumnDescriptor(header="Driver", name="driver", type="TEXT"),
            ColumnDescriptor(header="BestLap_Num", name="best_lap_num", type="TEXT"),
            ColumnDescriptor(header="Lap Time", name="lap_time", type="TEXT"),
        ),
    ),
)


def validate_table_set(tables: Sequence[TableDescriptor]) -> Tuple[TableDescriptor, ...]:
    """Reject an empty set or two descriptors writing the same table."""
    if not tables:
        raise DescriptorError("At least one table descriptor is required")
    names: set[str] = set()
    for table in tables:
        if table.name in names:
            raise DescriptorError(f"Duplicate table descriptor: {table.name!r}")
        names.add(table.name)
    return tuple(tables)


def load_table_descriptors(path: Path) -> Tuple[TableDescriptor, ...]:
    """Load table descriptors from a JSON list.

    Each entry looks like ``{"name": ..., "url": ..., "columns": [{"header": ...,
    "name": ..., "type": ...}]}``; the column keys match the ones used by the
    original sheet list so existing configuration can be pasted in as-is.
    """
    if not path.exists():
        raise DescriptorError(f"Table descriptor file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise DescriptorError(f"Could not read table descriptors from {path}: {exc}") from exc

    if not isinstance(raw, list):
        raise DescriptorError(f"{path} must contain a JSON list of tables")

    tables: List[TableDescriptor] = []
    for index, entry in enumerate(raw, start=1):
        try:
            tables.append(TableDescriptor.model_validate(entry))
        except ValidationError as exc:
            raise DescriptorError(f"Invalid table descriptor #{index} in {path}: {exc}") from exc
    return validate_table_set(tables)
