from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from .errors import FetchError

logger = logging.getLogger(__name__)

Row = Dict[str, Optional[str]]


@dataclass
class FetchedSheet:
    """Parsed CSV export: the live header line plus one dict per data line."""

    headers: List[str] = field(default_factory=list)
    rows: List[Row] = field(default_factory=list)


def parse_csv(text: str) -> FetchedSheet:
    """Parse CSV text whose first line is the header.

    Cells are keyed by the CSV's own headers. Short lines leave the missing
    cells as ``None``; surplus cells on long lines are dropped.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.DictReader(io.StringIO(text, newline=""))
    rows: List[Row] = []
    for record in reader:
        record.pop(None, None)
        rows.append(record)
    return FetchedSheet(headers=list(reader.fieldnames or []), rows=rows)


class SourceFetcher:
    """Downloads one published sheet per call. No retries at this layer."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def fetch(self, source_url: str) -> FetchedSheet:
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                response = client.get(source_url)
                response.raise_for_status()
                body = response.text
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"GET {source_url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"GET {source_url} failed: {exc}") from exc

        try:
            sheet = parse_csv(body)
        except csv.Error as exc:
            raise FetchError(f"Malformed CSV from {source_url}: {exc}") from exc
        logger.debug("Fetched %d rows from %s", len(sheet.rows), source_url)
        return sheet
