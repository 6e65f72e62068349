"""Pool quoting, mispricing detection and trade sizing."""

from .amm import AMMAdapter, FeeSchedule, PoolState, Quote, UnsignedSwap
from .opportunity import ArbitrageDirection, ArbitrageOpportunity, OpportunityDetector, format_premium
from .sizing import CandidateOutcome, SizingResult, TradeSizer

__all__ = [
    "AMMAdapter",
    "FeeSchedule",
    "PoolState",
    "Quote",
    "UnsignedSwap",
    "ArbitrageDirection",
    "ArbitrageOpportunity",
    "OpportunityDetector",
    "format_premium",
    "CandidateOutcome",
    "SizingResult",
    "TradeSizer",
]
