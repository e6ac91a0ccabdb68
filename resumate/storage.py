"""Filesystem primitives and experience directory-name grammar.

Nothing here knows about drafts or migrations; callers pass paths.
"""
from __future__ import annotations

import datetime as _dt
import hashlib
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from core.date_utils import parse_iso_date

PathLike = Union[str, Path]

DIR_NAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})-([a-z0-9-]+)$")
MAX_SLUG_LENGTH = 50
MAX_DIR_NAME_LENGTH = 100
RESERVED_NAMES = frozenset(
    ["con", "prn", "aux", "nul"]
    + [f"com{i}" for i in range(1, 10)]
    + [f"lpt{i}" for i in range(1, 10)]
)


@dataclass(frozen=True)
class DirName:
    date: _dt.date
    slug: str

    @property
    def name(self) -> str:
        return f"{self.date.isoformat()}-{self.slug}"


def validate_slug(slug: str) -> Optional[str]:
    """Return an error message for an unusable slug, or None."""
    if not slug:
        return "slug must not be empty"
    if len(slug) > MAX_SLUG_LENGTH:
        return f"slug must be at most {MAX_SLUG_LENGTH} characters"
    if not re.fullmatch(r"[a-z0-9-]+", slug):
        return "slug may only contain lowercase letters, digits and hyphens"
    if slug.startswith("-") or slug.endswith("-"):
        return "slug must not start or end with a hyphen"
    if slug in RESERVED_NAMES:
        return f"'{slug}' is a reserved device name"
    return None


def validate_experience_dir_name(name: str) -> Tuple[bool, Optional[str]]:
    """Check ``YYYY-MM-DD-<slug>``; returns ``(valid, error_message)``."""
    if len(name) > MAX_DIR_NAME_LENGTH:
        return False, f"name must be at most {MAX_DIR_NAME_LENGTH} characters"
    m = DIR_NAME_RE.match(name)
    if not m:
        return False, "name must match YYYY-MM-DD-slug (lowercase letters, digits, hyphens)"
    if parse_iso_date(m.group(1)) is None:
        return False, f"'{m.group(1)}' is not a valid calendar date"
    err = validate_slug(m.group(2))
    if err:
        return False, err
    return True, None


def parse_experience_dir_name(name: str) -> Optional[DirName]:
    valid, _ = validate_experience_dir_name(name)
    if not valid:
        return None
    m = DIR_NAME_RE.match(name)
    return DirName(date=_dt.date.fromisoformat(m.group(1)), slug=m.group(2))


# -- file primitives ---------------------------------------------------------


def read_text(path: PathLike) -> str:
    return Path(path).read_text(encoding="utf-8")


def write_text(path: PathLike, content: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")


def read_bytes(path: PathLike) -> bytes:
    return Path(path).read_bytes()


def write_bytes(path: PathLike, content: bytes) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(content)


def file_exists(path: PathLike) -> bool:
    return Path(path).is_file()


def dir_exists(path: PathLike) -> bool:
    return Path(path).is_dir()


def ensure_dir(path: PathLike) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def list_dirs(path: PathLike) -> List[str]:
    """Names of immediate subdirectories, sorted; [] if ``path`` is missing."""
    p = Path(path)
    if not p.is_dir():
        return []
    return sorted(child.name for child in p.iterdir() if child.is_dir())


def list_files(path: PathLike, extension: Optional[str] = None) -> List[str]:
    """Names of regular files, sorted; [] if ``path`` is missing."""
    p = Path(path)
    if not p.is_dir():
        return []
    names = [child.name for child in p.iterdir() if child.is_file()]
    if extension:
        names = [n for n in names if n.endswith(extension)]
    return sorted(names)


def modified_at(path: PathLike) -> _dt.datetime:
    return _dt.datetime.fromtimestamp(Path(path).stat().st_mtime)


def copy_tree(src: PathLike, dest: PathLike) -> None:
    """Copy a directory tree, merging into ``dest`` if it exists."""
    shutil.copytree(src, dest, dirs_exist_ok=True)


def remove_tree(path: PathLike) -> None:
    p = Path(path)
    if p.is_dir():
        shutil.rmtree(p)


def md5_hex(content: bytes) -> str:
    """Integrity digest for migrated files (not a security primitive)."""
    return hashlib.md5(content).hexdigest()  # noqa: S324 - integrity only
