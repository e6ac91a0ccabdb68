"""Shared text processing utilities."""
from __future__ import annotations

import re
import unicodedata

__all__ = [
    "normalize_unicode",
    "slugify",
    "truncate",
]


def normalize_unicode(text: str) -> str:
    """Normalize unicode characters for consistent text processing.

    - Converts non-breaking hyphen, en-dash, em-dash to regular hyphen
    - Converts non-breaking space to regular space
    """
    if not text:
        return ""
    t = text.replace('\u2011', '-')  # non-breaking hyphen
    t = t.replace('\u2013', '-')     # en dash
    t = t.replace('\u2014', '-')     # em dash
    t = t.replace('\u00A0', ' ')     # non-breaking space
    return t


def slugify(text: str) -> str:
    """Lower-case ASCII slug: accents folded, other symbols dropped, words hyphen-joined.

    Examples:
        'Café Redesign 2.0' -> 'cafe-redesign-20'
        '  Hello___World  ' -> 'hello-world'
        '레디스 캐시' -> ''
    """
    t = unicodedata.normalize("NFKD", normalize_unicode(text or ""))
    t = t.encode("ascii", "ignore").decode("ascii").lower()
    t = re.sub(r"[_\s-]+", "-", t)
    t = re.sub(r"[^a-z0-9-]", "", t)
    t = re.sub(r"-{2,}", "-", t)
    return t.strip("-")


def truncate(text: str, limit: int) -> str:
    """Return at most ``limit`` characters of ``text``."""
    return text if len(text) <= limit else text[:limit]
