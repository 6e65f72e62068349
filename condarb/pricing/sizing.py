"""Trade sizing by exhaustive sampling.

Profit is not monotonic in trade size: small trades have the best return on
capital but little absolute profit, and large trades lose to curve slippage.
The sizer therefore simulates every candidate size on a fixed grid and keeps the
one with the largest absolute profit.

Every quote in a pass uses the same :class:`ClockContext` so that time-based
fee adjustments cannot bias the comparison between candidates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, List, Optional

from condarb.data.models import AssetClass, ClockContext, ConditionalMarketLeg, MarketConfiguration
from condarb.errors import ArbitrageError, SimulationError
from condarb.pricing.amm import AMMAdapter, PoolState
from condarb.pricing.opportunity import ArbitrageDirection


@dataclass(frozen=True)
class CandidateOutcome:
    """Simulated result for one input size: either an output/profit or an error."""

    amount_in: int
    amount_out: Optional[int] = None
    profit: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.profit is not None


@dataclass
class SizingResult:
    direction: ArbitrageDirection
    optimal_amount: int = 0
    expected_profit: int = 0
    expected_output: int = 0
    candidates: List[CandidateOutcome] = field(default_factory=list)
    clock: Optional[ClockContext] = None

    @property
    def profitable(self) -> bool:
        return self.optimal_amount > 0 and self.expected_profit > 0

    @property
    def failed_candidates(self) -> int:
        return sum(1 for candidate in self.candidates if not candidate.ok)


def candidate_sizes(increment: int, max_capital: int) -> List[int]:
    """``increment, 2 * increment, ...`` up to and including ``max_capital``."""

    if increment <= 0:
        raise ValueError(f"Sizing increment must be positive, got {increment}")
    if max_capital < increment:
        return []
    return list(range(increment, max_capital + 1, increment))


class _PoolCache:
    """Pool states read once per sizing pass. Failed reads are not cached."""

    def __init__(self) -> None:
        self._states: Dict[Hashable, PoolState] = {}

    def get(self, key: Hashable, loader: Callable[[], PoolState]) -> PoolState:
        state = self._states.get(key)
        if state is None:
            state = loader()
            self._states[key] = state
        return state


class TradeSizer:
    """Select the input size with maximum absolute simulated profit."""

    def __init__(
        self,
        amm: AMMAdapter,
        clock_source: Callable[[], ClockContext],
        slippage_bps: int = 500,
        increment: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.amm = amm
        self.clock_source = clock_source
        self.slippage_bps = slippage_bps
        self.increment = increment
        self.logger = logger or logging.getLogger(__name__)

    def size(
        self,
        market: MarketConfiguration,
        direction: ArbitrageDirection,
        max_capital: int,
        clock: Optional[ClockContext] = None,
        increment: Optional[int] = None,
    ) -> SizingResult:
        if direction is ArbitrageDirection.NONE:
            raise ValueError("Cannot size a trade without a direction")

        clock = clock or self.clock_source()
        increment = increment or self.increment or max(1, 10**market.quote_decimals // 2)
        sizes = candidate_sizes(increment, max_capital)
        result = SizingResult(direction=direction, clock=clock)
        self.logger.info(
            "Sizing %s trade over %d candidates",
            direction.value,
            len(sizes),
            extra={
                "event": "sizing_start",
                "market_id": market.market_id,
                "direction": direction.value,
                "increment": increment,
                "max_capital": max_capital,
                "slot": clock.slot,
            },
        )

        cache = _PoolCache()
        best: Optional[CandidateOutcome] = None
        for amount in sizes:
            outcome = self.simulate(market, direction, amount, clock, cache)
            result.candidates.append(outcome)
            if not outcome.ok:
                self.logger.debug(
                    "Candidate %d failed: %s",
                    amount,
                    outcome.error,
                    extra={"event": "candidate_failed", "amount_in": amount, "error": outcome.error},
                )
                continue
            if best is None or outcome.profit > best.profit:
                best = outcome

        if best is not None:
            result.optimal_amount = best.amount_in
            result.expected_profit = best.profit
            result.expected_output = best.amount_out
        self.logger.info(
            "Sizing complete",
            extra={
                "event": "sizing_complete",
                "market_id": market.market_id,
                "direction": direction.value,
                "optimal_amount": result.optimal_amount,
                "expected_profit": result.expected_profit,
                "failed_candidates": result.failed_candidates,
                "profitable": result.profitable,
            },
        )
        return result

    def simulate(
        self,
        market: MarketConfiguration,
        direction: ArbitrageDirection,
        amount: int,
        clock: ClockContext,
        cache: Optional[_PoolCache] = None,
    ) -> CandidateOutcome:
        """Quote the full leg sequence for ``amount`` without submitting anything."""

        cache = cache or _PoolCache()
        try:
            if direction is ArbitrageDirection.ABOVE:
                output = self._simulate_above(market, amount, clock, cache)
            elif direction is ArbitrageDirection.BELOW:
                output = self._simulate_below(market, amount, clock, cache)
            else:
                raise SimulationError(f"Unsupported direction {direction}")
        except ArbitrageError as exc:
            return CandidateOutcome(amount_in=amount, error=str(exc))
        return CandidateOutcome(amount_in=amount, amount_out=output, profit=output - amount)

    def _simulate_above(self, market: MarketConfiguration, amount: int, clock: ClockContext, cache: _PoolCache) -> int:
        spot = cache.get("spot", lambda: self.amm.fetch_spot_state(market))
        base_received = self.amm.quote(spot, amount, AssetClass.QUOTE, self.slippage_bps, clock).output_amount

        leg_outputs = []
        for leg in market.tradeable_legs():
            state = self._leg_state(leg, cache)
            leg_outputs.append(self.amm.quote(state, base_received, AssetClass.BASE, self.slippage_bps, clock).output_amount)
        return merge_bottleneck(leg_outputs)

    def _simulate_below(self, market: MarketConfiguration, amount: int, clock: ClockContext, cache: _PoolCache) -> int:
        leg_outputs = []
        for leg in market.tradeable_legs():
            state = self._leg_state(leg, cache)
            leg_outputs.append(self.amm.quote(state, amount, AssetClass.QUOTE, self.slippage_bps, clock).output_amount)
        merged = merge_bottleneck(leg_outputs)

        spot = cache.get("spot", lambda: self.amm.fetch_spot_state(market))
        return self.amm.quote(spot, merged, AssetClass.BASE, self.slippage_bps, clock).output_amount

    def _leg_state(self, leg: ConditionalMarketLeg, cache: _PoolCache) -> PoolState:
        return cache.get(("leg", leg.index), lambda: self.amm.fetch_leg_state(leg))


def merge_bottleneck(amounts: List[int]) -> int:
    """Smallest non-zero leg amount; the most every leg can contribute to a merge."""

    nonzero = [amount for amount in amounts if amount > 0]
    if not nonzero:
        raise SimulationError("No leg produced an amount to merge")
    return min(nonzero)


__all__ = ["CandidateOutcome", "SizingResult", "TradeSizer", "candidate_sizes", "merge_bottleneck"]
