"""Shared YAML read/write helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

__all__ = ["load_config", "dump_config", "load_yaml_text", "dump_yaml_text", "YAMLError"]

YAMLError = yaml.YAMLError


def load_yaml_text(text: str) -> Any:
    """Parse a YAML document; raises ``YAMLError`` on malformed input."""
    if not text.strip():
        return None
    return yaml.safe_load(text)


def dump_yaml_text(data: Any) -> str:
    """Serialize to YAML with stable ordering for humans."""
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def load_config(path: Optional[Union[str, Path]]) -> Dict[str, Any]:
    """Load a YAML file into a dict; returns {} if missing/empty."""
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    data = load_yaml_text(p.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return data
    return {}


def dump_config(path: Union[str, Path], data: Dict[str, Any]) -> None:
    """Write a dict to YAML, creating parent directories as needed."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(dump_yaml_text(data), encoding="utf-8")
