"""Structured operation history for a configuration store."""

from __future__ import annotations

import json
import logging
import pathlib
import time
from typing import Any

logger = logging.getLogger(__name__)


class HistoryLog:
    """Append-only JSON-lines log of store mutations."""

    def __init__(self, path: str | pathlib.Path):
        self.path = pathlib.Path(path)

    def record(
        self,
        action: str,
        args: dict[str, Any],
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> dict[str, Any]:
        entry = {
            "timestamp": time.time(),
            "action": action,
            "args": args,
            "result": result,
            "error": error,
        }
        line = json.dumps(entry, ensure_ascii=False, default=str)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        return entry

    def read_last_n(self, n: int = 20) -> list[dict[str, Any]]:
        if n <= 0 or not self.path.exists():
            return []
        lines = self.path.read_text(encoding="utf-8").strip().splitlines()
        entries = []
        for line in lines[-n:]:
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable history line in %s", self.path)
        return entries
