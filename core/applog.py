"""Minimal structured command journal.

Writes JSON lines to a file, creating parent directories as needed.
A journal write failure is reported through ``logging`` and never
aborts the command being journaled.
"""

from __future__ import annotations

import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

LOG = logging.getLogger(__name__)


class AppLogger:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._started: Dict[str, float] = {}

    def _write(self, record: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            LOG.warning("command journal unavailable (%s): %s", self.path, exc)

    def start(self, cmd: str, argv: Optional[List[str]] = None) -> str:
        sid = str(uuid.uuid4())
        self._started[sid] = time.monotonic()
        self._write({
            "ts": time.time(),
            "event": "start",
            "cmd": cmd,
            "argv": argv,
            "pid": os.getpid(),
            "session_id": sid,
        })
        return sid

    def end(self, session_id: str, status: str = "ok", error: Optional[str] = None) -> None:
        rec: Dict[str, Any] = {
            "ts": time.time(),
            "event": "end",
            "session_id": session_id,
            "status": status,
        }
        started = self._started.pop(session_id, None)
        if started is not None:
            rec["duration_ms"] = int((time.monotonic() - started) * 1000)
        if error:
            rec["error"] = error
        self._write(rec)

    def info(self, session_id: str, data: Dict[str, Any]) -> None:
        self._write({"ts": time.time(), "event": "info", "session_id": session_id, "data": data})
