"""Per-process counters and gauges for arbitrage runs."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


@dataclass
class RunMetrics:
    """Counts run outcomes and leg results; optionally mirrors them to a Prometheus textfile."""

    counters: Dict[str, int] = field(default_factory=dict)
    gauges: Dict[str, float] = field(default_factory=dict)
    textfile: Optional[Path] = None
    prefix: str = "condarb"
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("condarb.metrics"))
    _lock: threading.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def incr(self, name: str, value: int = 1) -> None:
        with self._lock:
            key = self._key(name)
            self.counters[key] = self.counters.get(key, 0) + value
            self._write_unlocked()

    def set_gauge(self, name: str, value: float) -> None:
        with self._lock:
            self.gauges[self._key(name)] = float(value)
            self._write_unlocked()

    def observe(self, event: str, values: Mapping[str, Any]) -> None:
        """Count ``event`` and record its numeric fields as gauges."""

        with self._lock:
            counter = self._key(f"{event}_total")
            self.counters[counter] = self.counters.get(counter, 0) + 1
            for key, value in values.items():
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    self.gauges[self._key(f"{event}_{key}")] = float(value)
            self._write_unlocked()
        self.logger.debug(event, extra={"event": f"metric_{event}", **dict(values)})

    def record_opportunity(self, direction: str, estimated_profit_bps: int) -> None:
        self.observe("opportunity", {"estimated_profit_bps": estimated_profit_bps})
        self.incr(f"opportunity_{direction}")

    def record_sizing(self, optimal_amount: int, expected_profit: int, failed_candidates: int) -> None:
        self.observe(
            "sizing",
            {
                "optimal_amount": optimal_amount,
                "expected_profit": expected_profit,
                "failed_candidates": failed_candidates,
            },
        )

    def record_leg(self, kind: str, ok: bool) -> None:
        self.incr(f"leg_{kind}_{'ok' if ok else 'failed'}")

    def record_run(self, outcome: str) -> None:
        self.incr(f"run_{outcome}")

    def export(self) -> Dict[str, float]:
        with self._lock:
            return {**self.counters, **self.gauges}

    def _key(self, name: str) -> str:
        return f"{self.prefix}_{name}" if self.prefix else name

    def _write_unlocked(self) -> None:
        if self.textfile is None:
            return
        lines = [f"{name} {value}" for name, value in sorted(self.counters.items())]
        lines += [f"{name} {value}" for name, value in sorted(self.gauges.items())]
        try:
            self.textfile.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.textfile.with_suffix(".tmp")
            temp_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
            os.replace(temp_path, self.textfile)
        except OSError as exc:
            self.logger.warning(
                "Metrics textfile write failed", extra={"event": "metrics_write_failed", "error": str(exc)}
            )


__all__ = ["RunMetrics"]
