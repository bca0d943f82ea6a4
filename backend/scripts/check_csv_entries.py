# -*- coding: utf-8 -*-
"""Show how a sheet export is parsed: column mapping, dropped rows, per-day totals.

Usage:
    python scripts/check_csv_entries.py path/to/export.csv [YYYY-MM-DD]
"""
import sys
from datetime import date
from pathlib import Path

from punchboard.services.aggregates import kpi_snapshot
from punchboard.services.csv_parser import decode_blob, parse_csv, resolve_columns, split_line
from punchboard.services.exception_detector import detect_exceptions
from punchboard.services.repository import EventRepository

if len(sys.argv) < 2:
    print(__doc__)
    sys.exit(1)

text = decode_blob(Path(sys.argv[1]).read_bytes())
header = text.splitlines()[0] if text else ""
print("Header:", split_line(header))
print("Column map:", resolve_columns(split_line(header)))
print("---")

events, errors = parse_csv(text)
print(f"Valid events: {len(events)}, dropped rows: {len(errors)}")
for msg in errors[:20]:
    print("  ", msg)
if len(errors) > 20:
    print(f"   ... and {len(errors) - 20} more")
print("---")

repo = EventRepository(events, dropped_rows=len(errors))
days = [date.fromisoformat(sys.argv[2])] if len(sys.argv) > 2 else sorted(repo.by_date)
for day in days:
    kpis = kpi_snapshot(repo, day)
    exceptions = detect_exceptions(repo, day)
    print(
        f"{day}: active={kpis.active_employees_count} hours={kpis.total_working_hours} "
        f"compliance={kpis.on_site_compliance_pct}% exceptions={len(exceptions)}"
    )
    for exc in exceptions[:5]:
        print(f"   [{exc.severity}] {exc.type} {exc.employee_id} {exc.timestamp:%H:%M} {exc.notes}")
