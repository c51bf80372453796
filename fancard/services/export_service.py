"""
CSV export of the code registry.

Layout
------
Row 1: Code,Created Date,Status,Registered Date,Name,Email
Row 2…: one row per code; Status is literally "Registered" or "Pending"
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Iterable, List, Optional

from fancard.models.models import Code

CSV_HEADER = ["Code", "Created Date", "Status", "Registered Date", "Name", "Email"]


def _fmt_date(value: Optional[datetime], date_format: str) -> str:
    return value.strftime(date_format) if value else ""


def code_row(code: Code, date_format: str) -> List[str]:
    return [
        code.code,
        _fmt_date(code.created_at, date_format),
        code.status_label,
        _fmt_date(code.registered_at, date_format),
        code.fan_name or "",
        code.fan_email or "",
    ]


def codes_to_csv(codes: Iterable[Code], date_format: str = "%m/%d/%Y") -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for code in codes:
        writer.writerow(code_row(code, date_format))
    return buf.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"fancard_codes_{today.isoformat()}.csv"
