"""CLI output formatting utilities.

Commands print human text by default; payloads handed to an external
agent go out as JSON so they can be consumed verbatim.
"""
from __future__ import annotations

import datetime as _dt
import json
import sys
from dataclasses import dataclass, fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

import yaml


class OutputFormat(str, Enum):
    """Output format options."""
    TEXT = "text"
    JSON = "json"
    YAML = "yaml"
    TABLE = "table"


@dataclass
class OutputConfig:
    """Configuration for output formatting."""
    format: OutputFormat = OutputFormat.TEXT
    verbose: bool = False
    quiet: bool = False
    file: Optional[TextIO] = None

    @property
    def stream(self) -> TextIO:
        """Get the output stream (resolved lazily so redirected stdout is honored)."""
        return self.file or sys.stdout


def to_jsonable(data: Any) -> Any:
    """Convert dataclasses, enums, paths and dates into JSON-ready values.

    Dataclass fields may declare ``metadata={"json": "camelName"}`` to be
    emitted under a different key.
    """
    if is_dataclass(data) and not isinstance(data, type):
        out: Dict[str, Any] = {}
        for f in fields(data):
            key = f.metadata.get("json", f.name)
            out[key] = to_jsonable(getattr(data, f.name))
        return out
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {str(k): to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(v) for v in data]
    if isinstance(data, Path):
        return str(data)
    if isinstance(data, (_dt.datetime, _dt.date)):
        return data.isoformat()
    return data


class OutputWriter:
    """Handles formatted output for CLI commands."""

    def __init__(self, config: Optional[OutputConfig] = None):
        self.config = config or OutputConfig()

    def print(self, *args, **kwargs) -> None:
        """Print to the configured output stream."""
        if self.config.quiet:
            return
        kwargs.setdefault("file", self.config.stream)
        print(*args, **kwargs)

    def print_warning(self, message: str) -> None:
        print(f"Warning: {message}", file=sys.stderr)

    def print_verbose(self, message: str) -> None:
        if self.config.verbose:
            self.print(message)

    def print_data(self, data: Any, headers: Optional[List[str]] = None) -> None:
        """Print data in the configured format."""
        fmt = self.config.format
        if fmt == OutputFormat.JSON:
            self.print_json(data)
        elif fmt == OutputFormat.YAML:
            self.print_yaml(data)
        elif fmt == OutputFormat.TABLE:
            self.print_table(data, headers)
        else:
            self._print_text(data)

    def print_json(self, data: Any) -> None:
        # JSON always goes out, even when quiet: it is the machine contract.
        print(json.dumps(to_jsonable(data), indent=2, ensure_ascii=False), file=self.config.stream)

    def print_yaml(self, data: Any) -> None:
        self.print(
            yaml.safe_dump(to_jsonable(data), default_flow_style=False, sort_keys=False, allow_unicode=True),
            end="",
        )

    def print_list(self, items: Sequence[Any], *, bullet: str = "-", indent: int = 0) -> None:
        prefix = " " * indent
        for item in items:
            self.print(f"{prefix}{bullet} {item}")

    def print_table(self, rows: Sequence[Any], headers: Optional[List[str]] = None) -> None:
        """Print rows (dicts or sequences) as a pipe-separated table."""
        rows = list(rows)
        if not rows:
            return
        if headers is None and isinstance(rows[0], dict):
            headers = list(rows[0].keys())
        str_rows = [self._row_to_strings(row, headers) for row in rows]
        if not headers:
            for str_row in str_rows:
                self.print(" | ".join(str_row))
            return

        widths = [len(h) for h in headers]
        for str_row in str_rows:
            for i, val in enumerate(str_row[: len(widths)]):
                widths[i] = max(widths[i], len(val))

        header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
        self.print(header_line)
        self.print("-" * len(header_line))
        for str_row in str_rows:
            self.print(" | ".join(val.ljust(widths[i]) for i, val in enumerate(str_row)).rstrip())

    @staticmethod
    def _row_to_strings(row: Any, headers: Optional[List[str]]) -> List[str]:
        if isinstance(row, dict):
            keys = headers or list(row.keys())
            return [str(row.get(h, "")) for h in keys]
        if isinstance(row, (list, tuple)):
            return [str(v) for v in row]
        return [str(row)]

    def _print_text(self, data: Any) -> None:
        if isinstance(data, str):
            self.print(data)
        elif isinstance(data, dict):
            for key, value in data.items():
                self.print(f"{key}: {value}")
        elif isinstance(data, (list, tuple)):
            for item in data:
                self.print(item)
        elif is_dataclass(data):
            self._print_text(to_jsonable(data))
        else:
            self.print(str(data))
