"""
Formatting helpers for the pairing history.

History rows come back from storage as dicts with ``user_a``, ``user_b``, ``date`` and
``round_label`` keys.  Dates may have been written by hand over the years, so they show up as
spreadsheet serial numbers, ISO strings or day-first text.  These helpers normalize them to
``yyyy-mm-dd`` before the engine reads them, work out the next round number and build the rows
for a freshly computed round.
"""

from __future__ import annotations

import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from models import Pair

# Spreadsheet serial 25569 is 1970-01-01
_SERIAL_EPOCH = date(1970, 1, 1)
_SERIAL_OFFSET = 25569

_YMD_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_DMY_RE = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$")


def excel_serial_to_date(value: Any) -> Optional[date]:
    if isinstance(value, bool) or not isinstance(value, numbers.Number):
        return None
    try:
        return _SERIAL_EPOCH + timedelta(days=int(value) - _SERIAL_OFFSET)
    except (OverflowError, ValueError):
        return None


def _safe_date(year: str, month: str, day: str) -> Optional[date]:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    """Parse a history date from any of the formats seen in the wild; None if unreadable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, numbers.Number):
        return excel_serial_to_date(value)
    if not isinstance(value, str):
        return None

    s = value.strip()
    m = _YMD_RE.match(s)
    if m:
        return _safe_date(m.group(1), m.group(2), m.group(3))
    m = _DMY_RE.match(s)
    if m:
        return _safe_date(m.group(3), m.group(2), m.group(1))
    return None


def format_date_iso(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def normalize_history_dates(rows: Optional[List[Optional[Dict[str, Any]]]]) -> None:
    """Rewrite every readable row date to ``yyyy-mm-dd`` in place.

    Empty dates and dates that cannot be read are left as they are.
    """
    for row in rows or []:
        if not row or not row.get("date"):
            continue
        parsed = parse_date(row["date"])
        if parsed:
            row["date"] = format_date_iso(parsed)


def remove_empty_rows(rows):
    """Drop null rows and rows missing either participant."""
    if not rows:
        return rows
    return [r for r in rows if r and r.get("user_a") and r.get("user_b")]


def detect_next_round_number(rows: Optional[Sequence[Optional[Dict[str, Any]]]], base_text: str) -> int:
    """Highest ``<base_text> #N`` seen in the round labels, plus one."""
    pattern = re.compile(re.escape(base_text) + r"\s*#\s*(\d+)", re.IGNORECASE)
    max_round = 0
    for row in rows or []:
        if not row or not row.get("round_label"):
            continue
        m = pattern.search(str(row["round_label"]))
        if m:
            max_round = max(max_round, int(m.group(1)))
    return max_round + 1


def round_label(base_text: str, number: int) -> str:
    return f"{base_text} #{number}"


def build_history_rows(pairs: Sequence[Pair], label: str, on_date: date) -> List[Dict[str, Any]]:
    """One new history row per pair of this round."""
    day = format_date_iso(on_date)
    return [
        {"user_a": a, "user_b": b, "date": day, "round_label": label}
        for a, b in pairs
    ]
