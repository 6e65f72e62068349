"""Constant-product pool reads and quoting.

``AMMAdapter`` turns a raw pool payload into an oriented :class:`PoolState`
(base/quote reserves regardless of which mint sits in token slot A), reports
quote-per-base prices, and quotes hypothetical swaps without touching chain
state. Quotes apply the pool's base fee, which may decay with time, so every
quote takes the :class:`ClockContext` captured by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

from condarb.data.models import AssetClass, ClockContext, ConditionalMarketLeg, MarketConfiguration
from condarb.errors import PoolUnavailable, SimulationError

BPS_DENOMINATOR = 10_000


class PoolReader(Protocol):
    """Source of raw pool payloads (the market API in production)."""

    def fetch_pool(self, pool: str) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class FeeSchedule:
    """Base fee, optionally decaying per period after activation.

    ``mode`` is ``"linear"`` (subtract ``reduction_factor_bps`` per period) or
    ``"exponential"`` (multiply by ``1 - reduction_factor_bps / 10_000`` per
    period). With ``number_of_periods == 0`` the cliff fee always applies.
    """

    cliff_fee_bps: int
    mode: str = "linear"
    reduction_factor_bps: int = 0
    period_seconds: int = 0
    number_of_periods: int = 0
    activation_time: int = 0

    def fee_bps_at(self, clock: ClockContext) -> int:
        if self.number_of_periods <= 0 or self.period_seconds <= 0:
            return self.cliff_fee_bps
        if clock.block_time <= self.activation_time:
            return self.cliff_fee_bps

        periods = min(self.number_of_periods, (clock.block_time - self.activation_time) // self.period_seconds)
        if self.mode == "exponential":
            factor = Decimal(BPS_DENOMINATOR - self.reduction_factor_bps) / BPS_DENOMINATOR
            return int(Decimal(self.cliff_fee_bps) * factor**periods)
        return max(0, self.cliff_fee_bps - periods * self.reduction_factor_bps)


@dataclass(frozen=True)
class PoolState:
    """Reserves of a pool, oriented as base/quote for the caller's pair."""

    pool: str
    base_mint: str
    quote_mint: str
    base_reserve: int
    quote_reserve: int
    base_decimals: int
    quote_decimals: int
    fee: FeeSchedule


@dataclass(frozen=True)
class Quote:
    """Result of a hypothetical swap."""

    input_amount: int
    output_amount: int
    min_output_amount: int
    fee_amount: int
    fee_bps: int


@dataclass(frozen=True)
class UnsignedSwap:
    """Swap instruction ready to be built, signed and submitted.

    ``leg_index`` is None for the spot pool.
    """

    pool: str
    leg_index: Optional[int]
    payer: str
    input_mint: str
    output_mint: str
    is_base_to_quote: bool
    amount_in: int
    minimum_amount_out: int
    expected_amount_out: int
    slippage_bps: int


class AMMAdapter:
    """Read, price and quote constant-product pools."""

    def __init__(self, reader: PoolReader, default_fee_bps: int = 50, logger: Optional[logging.Logger] = None) -> None:
        self.reader = reader
        self.default_fee_bps = default_fee_bps
        self.logger = logger or logging.getLogger(__name__)

    def fetch_state(
        self, pool: str, base_mint: str, quote_mint: str, base_decimals: int, quote_decimals: int
    ) -> PoolState:
        """Read ``pool`` and orient its reserves to ``base_mint``/``quote_mint``."""

        payload = self.reader.fetch_pool(pool)
        try:
            reserves = payload["reserves"]
            mints = payload["tokenMints"]
            reserve_a, reserve_b = int(reserves["base"]), int(reserves["quote"])
            mint_a, mint_b = str(mints["base"]), str(mints["quote"])
        except (KeyError, TypeError, ValueError) as exc:
            raise PoolUnavailable(f"Pool {pool} payload is malformed: {exc}") from exc

        if (mint_a, mint_b) == (base_mint, quote_mint):
            base_reserve, quote_reserve = reserve_a, reserve_b
        elif (mint_a, mint_b) == (quote_mint, base_mint):
            base_reserve, quote_reserve = reserve_b, reserve_a
        else:
            raise PoolUnavailable(f"Pool {pool} does not trade {base_mint}/{quote_mint}")

        return PoolState(
            pool=pool,
            base_mint=base_mint,
            quote_mint=quote_mint,
            base_reserve=base_reserve,
            quote_reserve=quote_reserve,
            base_decimals=base_decimals,
            quote_decimals=quote_decimals,
            fee=self._fee_schedule(payload),
        )

    def fetch_spot_state(self, market: MarketConfiguration) -> PoolState:
        if not market.spot_pool:
            raise PoolUnavailable("Market has no spot pool")
        return self.fetch_state(
            market.spot_pool, market.base_mint, market.quote_mint, market.base_decimals, market.quote_decimals
        )

    def fetch_leg_state(self, leg: ConditionalMarketLeg) -> PoolState:
        if not leg.pool:
            raise PoolUnavailable(f"{leg.label} has no pool (AMM not initialized)")
        return self.fetch_state(leg.pool, leg.base_mint, leg.quote_mint, leg.base_decimals, leg.quote_decimals)

    def price(self, state: PoolState) -> Decimal:
        """Quote-per-base price in human units."""

        if state.base_reserve <= 0:
            raise PoolUnavailable(f"Pool {state.pool} has no base liquidity")
        base = Decimal(state.base_reserve).scaleb(-state.base_decimals)
        quote = Decimal(state.quote_reserve).scaleb(-state.quote_decimals)
        return quote / base

    def quote(
        self, state: PoolState, amount_in: int, input_side: AssetClass, slippage_bps: int, clock: ClockContext
    ) -> Quote:
        """Quote swapping ``amount_in`` of ``input_side`` for the other asset."""

        if amount_in <= 0:
            raise SimulationError(f"Non-positive input amount {amount_in}")
        if input_side is AssetClass.BASE:
            reserve_in, reserve_out = state.base_reserve, state.quote_reserve
        else:
            reserve_in, reserve_out = state.quote_reserve, state.base_reserve
        if reserve_in <= 0 or reserve_out <= 0:
            raise SimulationError(f"Pool {state.pool} has empty reserves")

        fee_bps = state.fee.fee_bps_at(clock)
        fee_amount = -(-amount_in * fee_bps // BPS_DENOMINATOR)
        net_in = amount_in - fee_amount
        output = reserve_out * net_in // (reserve_in + net_in)
        if output <= 0:
            raise SimulationError(f"Swap of {amount_in} on {state.pool} yields nothing")

        min_output = output * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR
        return Quote(
            input_amount=amount_in,
            output_amount=output,
            min_output_amount=min_output,
            fee_amount=fee_amount,
            fee_bps=fee_bps,
        )

    def build_swap(
        self,
        state: PoolState,
        quote: Quote,
        input_side: AssetClass,
        payer: str,
        slippage_bps: int,
        leg_index: Optional[int] = None,
    ) -> UnsignedSwap:
        """Describe the swap for ``quote``; submission is the caller's step."""

        is_base_to_quote = input_side is AssetClass.BASE
        return UnsignedSwap(
            pool=state.pool,
            leg_index=leg_index,
            payer=payer,
            input_mint=state.base_mint if is_base_to_quote else state.quote_mint,
            output_mint=state.quote_mint if is_base_to_quote else state.base_mint,
            is_base_to_quote=is_base_to_quote,
            amount_in=quote.input_amount,
            minimum_amount_out=quote.min_output_amount,
            expected_amount_out=quote.output_amount,
            slippage_bps=slippage_bps,
        )

    def _fee_schedule(self, payload: Dict[str, Any]) -> FeeSchedule:
        schedule = payload.get("feeSchedule")
        if isinstance(schedule, dict):
            try:
                return FeeSchedule(
                    cliff_fee_bps=int(schedule.get("cliffFeeBps", self.default_fee_bps)),
                    mode=str(schedule.get("mode", "linear")),
                    reduction_factor_bps=int(schedule.get("reductionFactorBps", 0)),
                    period_seconds=int(schedule.get("periodSeconds", 0)),
                    number_of_periods=int(schedule.get("numberOfPeriods", 0)),
                    activation_time=int(schedule.get("activationTime", 0)),
                )
            except (TypeError, ValueError) as exc:
                raise PoolUnavailable(f"Pool fee schedule is malformed: {exc}") from exc

        fee_bps = payload.get("feeBps")
        if fee_bps is None:
            return FeeSchedule(cliff_fee_bps=self.default_fee_bps)
        try:
            return FeeSchedule(cliff_fee_bps=int(fee_bps))
        except (TypeError, ValueError) as exc:
            raise PoolUnavailable(f"Pool fee is malformed: {exc}") from exc


__all__ = ["AMMAdapter", "FeeSchedule", "PoolReader", "PoolState", "Quote", "UnsignedSwap", "BPS_DENOMINATOR"]
