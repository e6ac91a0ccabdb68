"""Shared date utilities: month names and ISO date parsing."""
from __future__ import annotations

import datetime as _dt
import re
from typing import Optional

__all__ = [
    "MONTH_MAP",
    "ISO_DATE_RE",
    "parse_iso_date",
    "is_valid_iso_date",
    "to_iso_str",
]

# Month name to number mapping (1-12)
MONTH_MAP = {m.lower(): i for i, m in enumerate(
    ["January", "February", "March", "April", "May", "June",
     "July", "August", "September", "October", "November", "December"],
    start=1,
)}
MONTH_MAP.update({k[:3]: v for k, v in list(MONTH_MAP.items())})

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(text: str) -> Optional[_dt.date]:
    """Parse ``YYYY-MM-DD`` into a date; None for bad shape or impossible dates."""
    s = (text or "").strip()
    if not ISO_DATE_RE.match(s):
        return None
    try:
        return _dt.date.fromisoformat(s)
    except ValueError:
        return None


def is_valid_iso_date(text: str) -> bool:
    return parse_iso_date(text) is not None


def to_iso_str(value: _dt.date) -> str:
    """Format a date (or datetime) as ``YYYY-MM-DD``."""
    if isinstance(value, _dt.datetime):
        value = value.date()
    return value.isoformat()
