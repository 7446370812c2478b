"""Convert raw table rows into typed Location and Flow records."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from flowmap.config import FLOW_COLUMNS, LAT_RANGE, LOCATION_COLUMNS, LON_RANGE
from flowmap.data.loader import Table
from flowmap.errors import ParseError

LOGGER = logging.getLogger(__name__)


class _Invalid:
    """Tag for a field that failed coercion."""

    _instance: Optional["_Invalid"] = None

    def __new__(cls) -> "_Invalid":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "INVALID"


INVALID = _Invalid()


def coerce_float(raw: object) -> float | _Invalid:
    """Parse a finite float or return INVALID. NaN and inf are INVALID."""
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return INVALID
    if not math.isfinite(value):
        return INVALID
    return value


def coerce_int(raw: object) -> int | _Invalid:
    """Parse an integral number ("12" or "12.0") or return INVALID."""
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        pass
    value = coerce_float(text)
    if value is INVALID or not float(value).is_integer():
        return INVALID
    return int(value)


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def coerce_bool(raw: object) -> bool | _Invalid:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return INVALID


@dataclass(frozen=True)
class Location:
    id: str
    lat: float
    lon: float
    name: Optional[str] = None


@dataclass(frozen=True)
class Flow:
    origin: str
    dest: str
    count: int


@dataclass
class ParseReport:
    """Row-level outcome of a parse; dropped rows never abort the dataset."""

    total_rows: int = 0
    errors: list[ParseError] = field(default_factory=list)
    duplicates: int = 0

    @property
    def dropped(self) -> int:
        return len(self.errors)

    @property
    def parsed(self) -> int:
        return self.total_rows - self.dropped

    def reasons(self) -> dict[str, int]:
        return dict(Counter(err.reason for err in self.errors))

    def log_summary(self, label: str) -> None:
        LOGGER.info("%s: %d/%d rows parsed", label, self.parsed, self.total_rows)
        if self.errors:
            LOGGER.warning("%s: dropped %d rows %s", label, self.dropped, self.reasons())
        if self.duplicates:
            LOGGER.warning("%s: %d duplicate ids, last row wins", label, self.duplicates)


@dataclass(frozen=True)
class ParsedLocations:
    records: tuple[Location, ...]
    report: ParseReport


@dataclass(frozen=True)
class ParsedFlows:
    records: tuple[Flow, ...]
    report: ParseReport


def _column_positions(header: Sequence[str], expected: Iterable[str]) -> dict[str, Optional[int]]:
    """Locate columns by header name.

    A header that names none of the expected columns is read in schema order.
    Once any column is matched by name, unmatched ones are absent (None).
    """
    lower_map = {name.strip().lower(): idx for idx, name in enumerate(header)}
    expected = list(expected)
    if not any(name in lower_map for name in expected):
        return {name: idx for idx, name in enumerate(expected)}
    return {name: lower_map.get(name) for name in expected}


def _field(row: Sequence[str], idx: Optional[int]) -> Optional[str]:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def parse_locations(table: Table) -> ParsedLocations:
    """Parse `id,lat,lon,name` rows. Invalid rows are dropped and reported."""

    cols = _column_positions(table.header, LOCATION_COLUMNS)
    report = ParseReport(total_rows=len(table.rows))
    by_id: dict[str, Location] = {}

    for row_number, row in enumerate(table.rows, start=2):
        raw_id = _field(row, cols["id"])
        raw_lat = _field(row, cols["lat"])
        raw_lon = _field(row, cols["lon"])
        if raw_id is None or raw_lat is None or raw_lon is None:
            report.errors.append(ParseError(row_number, "missing fields"))
            continue
        loc_id = raw_id.strip()
        if not loc_id:
            report.errors.append(ParseError(row_number, "empty id"))
            continue
        lat = coerce_float(raw_lat)
        lon = coerce_float(raw_lon)
        if lat is INVALID or lon is INVALID:
            report.errors.append(ParseError(row_number, "non-numeric coordinate"))
            continue
        if not (LAT_RANGE[0] <= lat <= LAT_RANGE[1]) or not (LON_RANGE[0] <= lon <= LON_RANGE[1]):
            report.errors.append(ParseError(row_number, "coordinate out of range"))
            continue
        raw_name = _field(row, cols["name"])
        name = raw_name.strip() if raw_name is not None else None
        if loc_id in by_id:
            report.duplicates += 1
        by_id[loc_id] = Location(id=loc_id, lat=lat, lon=lon, name=name or None)

    report.log_summary("locations")
    return ParsedLocations(records=tuple(by_id.values()), report=report)


def parse_flows(table: Table) -> ParsedFlows:
    """Parse `origin,dest,count` rows. A count that is not a non-negative integer rejects the row."""

    cols = _column_positions(table.header, FLOW_COLUMNS)
    report = ParseReport(total_rows=len(table.rows))
    records: list[Flow] = []

    for row_number, row in enumerate(table.rows, start=2):
        raw_origin = _field(row, cols["origin"])
        raw_dest = _field(row, cols["dest"])
        raw_count = _field(row, cols["count"])
        if raw_origin is None or raw_dest is None or raw_count is None:
            report.errors.append(ParseError(row_number, "missing fields"))
            continue
        origin, dest = raw_origin.strip(), raw_dest.strip()
        if not origin or not dest:
            report.errors.append(ParseError(row_number, "empty id"))
            continue
        count = coerce_int(raw_count)
        if count is INVALID:
            report.errors.append(ParseError(row_number, "invalid count"))
            continue
        if count < 0:
            report.errors.append(ParseError(row_number, "negative count"))
            continue
        records.append(Flow(origin=origin, dest=dest, count=count))

    report.log_summary("flows")
    return ParsedFlows(records=tuple(records), report=report)
