"""Project layout and settings.

A resumate project is any directory holding a ``.resumate/`` folder.
Optional settings live in ``.resumate/config.yaml``::

    projectname: my-career
    backup_dir: .backup        # relative to the project root
    log_commands: true         # JSON-lines journal in .resumate/logs/
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from core.yamlio import dump_config, load_config

RESUMATE_DIR_NAME = ".resumate"
EXPERIENCES_DIR_NAME = "experiences"
CONFIG_FILENAME = "config.yaml"
ROOT_ENV = "RESUMATE_ROOT"

# Legacy bucket name -> version file it becomes.
LEGACY_BUCKETS = (
    ("drafts", "draft"),
    ("in-progress", "refined"),
    ("archive", "archived"),
)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "backup_dir": ".backup",
    "log_commands": True,
}


@dataclass
class ResumateConfig:
    root_dir: Path
    settings: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SETTINGS))

    @property
    def resumate_dir(self) -> Path:
        return self.root_dir / RESUMATE_DIR_NAME

    @property
    def experiences_dir(self) -> Path:
        return self.root_dir / EXPERIENCES_DIR_NAME

    @property
    def claude_commands_dir(self) -> Path:
        return self.root_dir / ".claude" / "commands"

    @property
    def migrations_dir(self) -> Path:
        return self.resumate_dir / "migrations"

    @property
    def logs_dir(self) -> Path:
        return self.resumate_dir / "logs"

    @property
    def settings_path(self) -> Path:
        return self.resumate_dir / CONFIG_FILENAME

    @property
    def backup_root(self) -> Path:
        return self.root_dir / str(self.settings.get("backup_dir") or DEFAULT_SETTINGS["backup_dir"])

    @property
    def log_commands(self) -> bool:
        return bool(self.settings.get("log_commands", True))

    def legacy_dirs(self) -> Dict[str, Path]:
        return {bucket: self.root_dir / bucket for bucket, _ in LEGACY_BUCKETS}

    def is_initialized(self) -> bool:
        return self.resumate_dir.is_dir()


def resolve_root(root: Optional[Union[str, Path]] = None) -> Path:
    """Explicit root, else ``$RESUMATE_ROOT``, else the current directory."""
    chosen = root or os.environ.get(ROOT_ENV) or os.getcwd()
    return Path(chosen).expanduser().resolve()


def create_config(root: Optional[Union[str, Path]] = None) -> ResumateConfig:
    """Build the config for ``root``, merging ``.resumate/config.yaml`` over defaults."""
    cfg = ResumateConfig(root_dir=resolve_root(root))
    settings = dict(DEFAULT_SETTINGS)
    settings.update(load_config(cfg.settings_path))
    cfg.settings = settings
    return cfg


def save_settings(cfg: ResumateConfig) -> None:
    dump_config(cfg.settings_path, cfg.settings)
