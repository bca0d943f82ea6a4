"""
CSV parser for punch logs exported from the attendance Google Sheet.

Expected columns (case-insensitive, any of the aliases, any order):
  Name / employee name
  Employee ID / employee_id / id
  Punch Type / type            ("Punch In", "Punch Out", ...)
  Location / gps / coordinates ("lat, long")
  Timestamp / time / datetime  (D/M/YYYY H:MM[:SS] or ISO 8601)
  Manual Location / place
  Distance(m) / distance

Each line is one record. Lines without an employee ID or a parseable timestamp,
or with an unbalanced quote, are dropped and reported, never fatal. Cells beyond
the header width (trailing commas, stray cells) are ignored.
"""

from __future__ import annotations

import csv
import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

import pandas as pd

from punchboard.core.config import Settings, settings
from punchboard.schemas.punch import Coordinates, PunchEvent, PunchType

logger = logging.getLogger(__name__)

COLUMN_ALIASES: dict[str, list[str]] = {
    "name": ["name", "employee name", "employee_name"],
    "employee_id": ["employee id", "employee_id", "employeeid", "id"],
    "punch_type": ["punch type", "punch_type", "punchtype", "type"],
    "location": ["location", "gps", "coordinates"],
    "timestamp": ["timestamp", "time", "date time", "datetime"],
    "manual_location": ["manual location", "manual_location", "manuallocation", "place"],
    "distance": ["distance(m)", "distance", "distance_m", "distancem"],
}

_REQUIRED_COLUMNS = ("employee_id", "timestamp")

_ws_re = re.compile(r"\s+")
# D/M/YYYY H:MM[:SS], as the sheet's form submissions write it
_DMY_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


# ---------------------------------------------------------------------------
# Field normalizers
# ---------------------------------------------------------------------------


def normalize_employee_id(
    raw: str,
    corrections: Iterable[tuple[str, str]] | None = None,
) -> str:
    """
    Canonical employee ID: no whitespace, known typos fixed, uppercased.

    Must be applied to every ID that is compared or grouped, including IDs
    coming from API queries, so " aylb 01", "AYLB01" and "lylb01" all land
    on the same employee.
    """
    if not raw:
        return ""
    if corrections is None:
        corrections = settings.EMPLOYEE_ID_CORRECTIONS
    normalized = _ws_re.sub("", raw.strip())
    for pattern, replacement in corrections:
        normalized = re.sub(pattern, replacement, normalized, flags=re.IGNORECASE)
    return normalized.upper()


def classify_punch_type(raw: str) -> PunchType:
    """
    Lenient classifier: anything mentioning "out" is a punch-out, everything
    else (including blanks) is a punch-in.
    """
    return "out" if "out" in raw.lower() else "in"


def parse_timestamp(raw: str) -> datetime | None:
    raw = raw.strip()
    if not raw:
        return None

    match = _DMY_RE.search(raw)
    if match:
        day, month, year, hour, minute, second = match.groups()
        d, m = int(day), int(month)
        if 1 <= d <= 31 and 1 <= m <= 12:
            try:
                return datetime(int(year), m, d, int(hour), int(minute), int(second or 0))
            except ValueError:
                # 31/2/2026, 25:00 and friends
                pass

    if _ISO_DATE_RE.match(raw):
        try:
            ts = pd.to_datetime(raw, format="ISO8601")
        except (ValueError, TypeError):
            return None
        if pd.isna(ts):
            return None
        if ts.tzinfo is not None:
            # Keep the wall-clock time the sheet shows
            ts = ts.tz_localize(None)
        return ts.to_pydatetime()

    return None


def parse_coordinates(raw: str) -> Coordinates | None:
    if not raw:
        return None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 2:
        return None
    try:
        lat, long = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(long)):
        return None
    if not (-90 <= lat <= 90 and -180 <= long <= 180):
        return None
    return Coordinates(lat=lat, long=long)


def parse_distance(raw: str) -> float | None:
    """Leading number of the cell ("75", "75.5 m"); anything else → None."""
    match = _LEADING_NUMBER_RE.match(raw.strip())
    if not match:
        return None
    value = float(match.group(0))
    if not math.isfinite(value) or value < 0:
        return None
    return value


def decode_blob(data: bytes) -> str:
    """Decode the raw sheet export; corrupted bytes become U+FFFD instead of failing."""
    return data.decode("utf-8-sig", errors="replace")


# ---------------------------------------------------------------------------
# Row level
# ---------------------------------------------------------------------------


def resolve_columns(header_cells: Sequence[str]) -> dict[str, int]:
    """Map canonical field → column index using COLUMN_ALIASES."""
    lower = [str(c).lower().strip() for c in header_cells]
    columns: dict[str, int] = {}
    for canonical, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in lower:
                columns[canonical] = lower.index(alias)
                break
    return columns


def split_line(line: str) -> list[str]:
    """Split one comma-delimited line; double-quoted fields may contain commas."""
    reader = csv.reader([line], skipinitialspace=True)
    try:
        return [cell.strip() for cell in next(reader)]
    except (StopIteration, csv.Error):
        return []


def _build_event(
    cells: Mapping[str, str],
    corrections: Iterable[tuple[str, str]] | None = None,
) -> tuple[PunchEvent | None, str | None]:
    employee_id = normalize_employee_id(cells.get("employee_id", ""), corrections)
    if not employee_id:
        return None, "missing employee id"

    raw_time = cells.get("timestamp", "").strip()
    timestamp = parse_timestamp(raw_time)
    if timestamp is None:
        return None, f"unparseable timestamp '{raw_time}'"

    location = cells.get("location", "").strip()
    event = PunchEvent(
        employee_id=employee_id,
        employee_name=_ws_re.sub(" ", cells.get("name", "").strip()),
        punch_type=classify_punch_type(cells.get("punch_type", "")),
        timestamp=timestamp,
        location=location,
        manual_location=cells.get("manual_location", "").strip(),
        coordinates=parse_coordinates(location),
        distance_m=parse_distance(cells.get("distance", "")),
    )
    return event, None


def _map_cells(values: Sequence[str], columns: Mapping[str, int]) -> dict[str, str]:
    """Pick cells by header position; missing cells are empty, extra cells ignored."""
    return {
        field: values[idx] if idx < len(values) else ""
        for field, idx in columns.items()
    }


def normalize_row(
    cells: Mapping[str, str],
    corrections: Iterable[tuple[str, str]] | None = None,
) -> PunchEvent | None:
    """Canonical-field → raw cell mapping in, zero or one event out."""
    event, _ = _build_event(cells, corrections)
    return event


def parse_line(
    line: str,
    columns: Mapping[str, int],
    corrections: Iterable[tuple[str, str]] | None = None,
) -> PunchEvent | None:
    return normalize_row(_map_cells(split_line(line), columns), corrections)


# ---------------------------------------------------------------------------
# Batch level
# ---------------------------------------------------------------------------


def _is_repeated_header(raw_time: str) -> bool:
    return raw_time.lower() in COLUMN_ALIASES["timestamp"]


def parse_csv(
    text: str,
    config: Settings = settings,
) -> tuple[list[PunchEvent], list[str]]:
    """
    Parse a whole sheet export and return (valid_events, error_messages).

    One record per line: a broken line (unbalanced quote, bad cells) is
    dropped with a message and never affects its neighbours. Quoted fields
    therefore cannot span lines. Empty rows and repeated header rows are
    skipped silently.
    """
    lines = text.lstrip("\ufeff").splitlines()
    header_at = next((i for i, line in enumerate(lines) if line.strip()), None)
    if header_at is None:
        return [], []

    columns = resolve_columns(split_line(lines[header_at]))
    missing = [c for c in _REQUIRED_COLUMNS if c not in columns]
    if missing:
        logger.warning("CSV is missing required columns: %s", ", ".join(missing))
        return [], [f"Missing required columns: {', '.join(missing)}"]

    corrections = config.EMPLOYEE_ID_CORRECTIONS
    events: list[PunchEvent] = []
    errors: list[str] = []
    skipped_empty = 0
    skipped_header = 0

    # Row numbers are 1-based file lines, header included
    for lineno, line in enumerate(lines[header_at + 1:], start=header_at + 2):
        if not line.strip():
            skipped_empty += 1
            continue

        if line.count('"') % 2:
            reason = "unbalanced quote"
        else:
            cells = _map_cells(split_line(line), columns)
            if not any(cells.values()):
                skipped_empty += 1
                continue
            if _is_repeated_header(cells.get("timestamp", "")):
                skipped_header += 1
                continue
            event, reason = _build_event(cells, corrections)
            if event is not None:
                events.append(event)
                continue

        msg = f"Row {lineno}: {reason}"
        logger.debug("Skipped: %s", msg)
        errors.append(msg)

    logger.info(
        "Parsing finished: valid=%d, errors=%d (empty=%d, headers=%d)",
        len(events), len(errors), skipped_empty, skipped_header,
    )
    return events, errors
