from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .descriptors import DEFAULT_TABLES, TableDescriptor, load_table_descriptors
from .errors import ConfigurationError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def _env_float(name: str, default: float, minimum: float, maximum: Optional[float] = None) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"[{minimum}, {maximum}]" if maximum is not None else f">= {minimum}"
        raise ConfigurationError(f"{name} must be in {bounds}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    database_path: str = "./data.db"
    interval_minutes: int = 5
    http_timeout: float = 30.0
    max_unmatched_ratio: float = 0.5
    tables_file: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        tables_file = os.getenv("SHEETSYNC_TABLES_FILE", "").strip()
        log_level = os.getenv("SHEETSYNC_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"SHEETSYNC_LOG_LEVEL is not a logging level: {log_level!r}")

        http_timeout = _env_float("SHEETSYNC_HTTP_TIMEOUT", 30.0, minimum=0.0)
        if http_timeout == 0:
            raise ConfigurationError("SHEETSYNC_HTTP_TIMEOUT must be positive")

        return cls(
            database_path=os.getenv("SHEETSYNC_DATABASE_PATH", "").strip() or "./data.db",
            interval_minutes=_env_int("SHEETSYNC_INTERVAL_MINUTES", 5),
            http_timeout=http_timeout,
            max_unmatched_ratio=_env_float("SHEETSYNC_MAX_UNMATCHED_RATIO", 0.5, minimum=0.0, maximum=1.0),
            tables_file=Path(tables_file) if tables_file else None,
            log_level=log_level,
        )

    def load_tables(self) -> Tuple[TableDescriptor, ...]:
        if self.tables_file is None:
            return DEFAULT_TABLES
        return load_table_descriptors(self.tables_file)
