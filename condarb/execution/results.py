"""Run states and per-leg records produced by execution."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RunState(str, Enum):
    IDLE = "idle"
    BUYING_SPOT = "buying_spot"
    SPLITTING = "splitting"
    SWAPPING_LEGS = "swapping_legs"
    MERGING = "merging"
    SELLING_SPOT = "selling_spot"
    DONE = "done"
    PARTIAL = "partial"
    FAILED = "failed"


class LegKind(str, Enum):
    SPOT_SWAP = "spot_swap"
    SPLIT = "split"
    CONDITIONAL_SWAP = "conditional_swap"
    MERGE = "merge"


@dataclass
class LegResult:
    """One submitted leg: its signature and amounts, or the error that stopped it."""

    step: int
    kind: LegKind
    amount_in: int
    leg_index: Optional[int] = None
    signature: Optional[str] = None
    amount_out: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.signature is not None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["kind"] = self.kind.value
        return payload


@dataclass
class ExecutionResult:
    """Outcome of one execution run.

    ``legs`` holds only the legs that completed; the leg that failed is
    described by ``failed_leg`` and ``error``.
    """

    success: bool
    state: RunState
    legs: List[LegResult] = field(default_factory=list)
    error: Optional[str] = None
    failed_leg: Optional[LegResult] = None
    spent_amount: int = 0
    final_amount: int = 0

    @property
    def realized_profit(self) -> Optional[int]:
        if not self.success:
            return None
        return self.final_amount - self.spent_amount


__all__ = ["RunState", "LegKind", "LegResult", "ExecutionResult"]
