"""TWAP projections shown alongside a run. Display only."""

from __future__ import annotations

from typing import Optional


def time_elapsed_fraction(created_at_ms: int, finalized_at_ms: int, now_ms: int) -> float:
    """Fraction of the voting period already elapsed, clamped to [0, 1]."""

    total = finalized_at_ms - created_at_ms
    if total <= 0:
        return 1.0
    return max(0.0, min(1.0, (now_ms - created_at_ms) / total))


def expected_final_twap(current_twap: Optional[float], current_price: float, elapsed: float) -> float:
    """Final TWAP if the price holds at ``current_price`` for the rest of the period."""

    if current_twap is None:
        return current_price
    return current_twap * elapsed + current_price * (1 - elapsed)


__all__ = ["time_elapsed_fraction", "expected_final_twap"]
