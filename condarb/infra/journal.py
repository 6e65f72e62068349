"""Append-only JSONL journal of leg events for reconciling partial runs."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


class LegJournal:
    """Write one JSON line per leg event. ``path=None`` keeps events in memory only."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else None
        self.events: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def record(self, run_id: str, event: str, **fields: Any) -> Dict[str, Any]:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "run_id": run_id,
            "event": event,
            **fields,
        }
        with self._lock:
            self.events.append(entry)
            if self.path is not None:
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(json.dumps(entry, default=str) + "\n")
        return entry

    def read(self, run_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Entries from disk (or memory), optionally filtered to one run."""

        if self.path is not None and self.path.exists():
            with self.path.open(encoding="utf-8") as handle:
                entries = [json.loads(line) for line in handle if line.strip()]
        else:
            entries = list(self.events)
        if run_id is None:
            return entries
        return [entry for entry in entries if entry.get("run_id") == run_id]


__all__ = ["LegJournal"]
