"""Spot-vs-conditional mispricing detection.

When every included conditional price sits strictly above spot, buying on spot,
splitting, and selling every leg captures the smallest premium (``ABOVE``).
When every price sits strictly below spot, the reverse loop applies
(``BELOW``). Any mixed-sign configuration is ``NONE``.

The basis-point estimate here is a screening heuristic that ignores slippage;
sizing performs the real per-candidate simulation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, Optional, Sequence


class ArbitrageDirection(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    NONE = "none"


@dataclass
class ArbitrageOpportunity:
    """Classification of one price snapshot."""

    direction: ArbitrageDirection
    spot_price: Decimal
    conditional_prices: List[Optional[Decimal]]
    premiums: List[Optional[Decimal]]
    min_premium: Optional[Decimal] = None
    max_premium: Optional[Decimal] = None
    estimated_profit_bps: int = 0
    total_fee_bps: int = 0

    @property
    def included_legs(self) -> int:
        return sum(1 for premium in self.premiums if premium is not None)


def format_premium(premium: Optional[Decimal]) -> str:
    """Render a premium as a signed percentage, e.g. ``+5.25%``."""

    if premium is None:
        return "n/a"
    quantized = premium.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "+" if quantized > 0 else ""
    return f"{sign}{quantized}%"


class OpportunityDetector:
    """Classify a spot price against per-leg conditional prices.

    ``conditional_prices`` is aligned with the market's legs; ``None`` marks a
    leg that is not trading and is excluded from every aggregate.
    """

    def __init__(self, per_swap_fee_bps: int = 50) -> None:
        self.per_swap_fee_bps = per_swap_fee_bps

    def premium(self, leg_price: Decimal, spot_price: Decimal) -> Decimal:
        return (leg_price - spot_price) / spot_price * 100

    def detect(self, spot_price: Decimal, conditional_prices: Sequence[Optional[Decimal]]) -> ArbitrageOpportunity:
        if spot_price <= 0:
            raise ValueError(f"Spot price must be positive, got {spot_price}")

        premiums: List[Optional[Decimal]] = [
            None if price is None else self.premium(price, spot_price) for price in conditional_prices
        ]
        included = [premium for premium in premiums if premium is not None]
        opportunity = ArbitrageOpportunity(
            direction=ArbitrageDirection.NONE,
            spot_price=spot_price,
            conditional_prices=list(conditional_prices),
            premiums=premiums,
        )
        if not included:
            return opportunity

        opportunity.min_premium = min(included)
        opportunity.max_premium = max(included)
        opportunity.total_fee_bps = self.per_swap_fee_bps * (len(included) + 1)

        if all(premium > 0 for premium in included):
            opportunity.direction = ArbitrageDirection.ABOVE
            edge_bps = self._to_bps(opportunity.min_premium)
        elif all(premium < 0 for premium in included):
            opportunity.direction = ArbitrageDirection.BELOW
            edge_bps = self._to_bps(abs(opportunity.max_premium))
        else:
            return opportunity

        opportunity.estimated_profit_bps = edge_bps - opportunity.total_fee_bps
        return opportunity

    def _to_bps(self, premium_percent: Decimal) -> int:
        return int((premium_percent * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


__all__ = ["ArbitrageDirection", "ArbitrageOpportunity", "OpportunityDetector", "format_premium"]
