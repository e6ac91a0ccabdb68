"""Slug and date-prefix helpers."""
from __future__ import annotations

import datetime as _dt
import re
from typing import Optional

from core.text_utils import slugify

from .storage import MAX_SLUG_LENGTH

DATE_PREFIX_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")
DATE_PREFIX_STRIP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}-?")


def generate_slug(title: str) -> str:
    """Slug for a title, capped to the directory-name limit without a trailing hyphen."""
    return slugify(title)[:MAX_SLUG_LENGTH].rstrip("-")


def generate_date_prefix(date: Optional[_dt.date] = None) -> str:
    return (date or _dt.date.today()).strftime("%Y-%m-%d")


def extract_date_from_filename(filename: str) -> Optional[str]:
    m = DATE_PREFIX_RE.match(filename)
    return m.group(1) if m else None


def strip_date_prefix(name: str) -> str:
    return DATE_PREFIX_STRIP_RE.sub("", name, count=1)
