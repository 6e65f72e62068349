"""Normalized market configuration shared by the pricing and execution layers.

The market API returns loosely typed proposal payloads. They are resolved once
into the frozen records below so downstream code never re-validates field
presence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence


class LegState(str, Enum):
    """Trading state of a conditional pool."""

    UNINITIALIZED = "Uninitialized"
    TRADING = "Trading"
    PAUSED = "Paused"
    FINALIZED = "Finalized"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LegState":
        for state in cls:
            if value and state.value.lower() == str(value).lower():
                return state
        return cls.UNINITIALIZED


class AssetClass(str, Enum):
    """Which side of the pair a vault operation moves."""

    BASE = "base"
    QUOTE = "quote"


@dataclass(frozen=True)
class ConditionalMarketLeg:
    """One outcome's conditional pool and its assets."""

    index: int
    label: str
    pool: Optional[str]
    base_mint: str
    quote_mint: str
    base_decimals: int
    quote_decimals: int
    state: LegState = LegState.UNINITIALIZED

    @property
    def is_tradeable(self) -> bool:
        return self.pool is not None and self.state is LegState.TRADING


@dataclass(frozen=True)
class MarketConfiguration:
    """Immutable description of a spot pool, its vault, and its conditional legs."""

    market_id: int
    moderator_id: int
    title: str
    status: str
    spot_pool: Optional[str]
    base_mint: str
    quote_mint: str
    base_decimals: int
    quote_decimals: int
    vault: str
    legs: Sequence[ConditionalMarketLeg]
    created_at_ms: int = 0
    finalized_at_ms: int = 0

    def tradeable_legs(self) -> List[ConditionalMarketLeg]:
        return [leg for leg in self.legs if leg.is_tradeable]


@dataclass(frozen=True)
class ClockContext:
    """Chain slot and block time captured for quoting."""

    slot: int
    block_time: int


@dataclass
class PriceSnapshot:
    """Spot price plus one entry per leg (``None`` where the leg was skipped)."""

    spot_price: Decimal
    conditional_prices: List[Optional[Decimal]] = field(default_factory=list)


@dataclass
class TwapSnapshot:
    """Latest TWAP oracle values, used for display only."""

    twaps: List[float]
    timestamp: str


__all__ = [
    "LegState",
    "AssetClass",
    "ConditionalMarketLeg",
    "MarketConfiguration",
    "ClockContext",
    "PriceSnapshot",
    "TwapSnapshot",
]
