"""One arbitrage run: configuration, prices, detection, sizing, execution.

Every guard that ends a run early produces a :class:`RunReport` with a no-op
outcome. Setup failures raise :class:`FatalSetupError` before anything is
submitted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from condarb.data.market_client import ApiError, MarketApiClient
from condarb.data.models import ConditionalMarketLeg, MarketConfiguration, PriceSnapshot
from condarb.data.rpc_client import RpcError
from condarb.errors import (
    ArbitrageError,
    FatalSetupError,
    InsufficientPriceCoverage,
    MarketConfigUnavailable,
    MissingSpotPool,
)
from condarb.execution.orchestrator import ExecutionOrchestrator
from condarb.execution.results import ExecutionResult
from condarb.infra.aio import call_blocking
from condarb.infra.config import RunParameters, to_raw_units
from condarb.infra.locks import SignerLockRegistry, signer_locks
from condarb.infra.metrics import RunMetrics
from condarb.pricing.amm import AMMAdapter
from condarb.pricing.opportunity import ArbitrageDirection, ArbitrageOpportunity, OpportunityDetector, format_premium
from condarb.pricing.projection import expected_final_twap, time_elapsed_fraction
from condarb.pricing.sizing import SizingResult, TradeSizer
from condarb.risk.limits import CapitalLimits

ACTIVE_STATUS = "Pending"


class RunOutcome(str, Enum):
    EXECUTED = "executed"
    EXECUTION_FAILED = "execution_failed"
    NO_OPPORTUNITY = "no_opportunity"
    BELOW_THRESHOLD = "below_threshold"
    UNPROFITABLE = "unprofitable"
    DRY_RUN = "dry_run"
    MARKET_INACTIVE = "market_inactive"


@dataclass
class RunReport:
    outcome: RunOutcome
    market_id: int
    prices: Optional[PriceSnapshot] = None
    opportunity: Optional[ArbitrageOpportunity] = None
    sizing: Optional[SizingResult] = None
    execution: Optional[ExecutionResult] = None

    @property
    def exit_code(self) -> int:
        return 2 if self.outcome is RunOutcome.EXECUTION_FAILED else 0


class ArbitrageEngine:
    """Drive a single run against one market."""

    def __init__(
        self,
        params: RunParameters,
        api: MarketApiClient,
        amm: AMMAdapter,
        detector: OpportunityDetector,
        sizer: TradeSizer,
        orchestrator: ExecutionOrchestrator,
        balance_source: Callable[[], int],
        owner: str,
        timeout_seconds: float = 30.0,
        locks: Optional[SignerLockRegistry] = None,
        metrics: Optional[RunMetrics] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.params = params
        self.api = api
        self.amm = amm
        self.detector = detector
        self.sizer = sizer
        self.orchestrator = orchestrator
        self.balance_source = balance_source
        self.owner = owner
        self.timeout_seconds = timeout_seconds
        self.locks = locks or signer_locks
        self.metrics = metrics or RunMetrics()
        self.logger = logger or logging.getLogger(__name__)

    async def run(self) -> RunReport:
        try:
            market = await call_blocking(
                self.api.fetch_market_configuration, self.params.market_id, timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise MarketConfigUnavailable(f"Timed out fetching market {self.params.market_id}") from exc
        self.logger.info(
            "Loaded market %s: %s",
            market.market_id,
            market.title,
            extra={
                "event": "market_loaded",
                "market_id": market.market_id,
                "status": market.status,
                "legs": len(market.legs),
                "tradeable_legs": len(market.tradeable_legs()),
            },
        )
        if market.status != ACTIVE_STATUS:
            self.logger.info(
                "Market is not active (status=%s)",
                market.status,
                extra={"event": "market_inactive", "market_id": market.market_id, "status": market.status},
            )
            return self._finish(RunReport(RunOutcome.MARKET_INACTIVE, market.market_id))
        if not market.spot_pool:
            raise MissingSpotPool(f"Market {market.market_id} has no spot pool")

        prices = await self._read_prices(market)
        await self._log_projections(market, prices)

        opportunity = self.detector.detect(prices.spot_price, prices.conditional_prices)
        self._log_opportunity(market, opportunity)
        report = RunReport(RunOutcome.NO_OPPORTUNITY, market.market_id, prices=prices, opportunity=opportunity)
        if opportunity.direction is ArbitrageDirection.NONE:
            return self._finish(report)
        self.metrics.record_opportunity(opportunity.direction.value, opportunity.estimated_profit_bps)
        if opportunity.estimated_profit_bps < self.params.min_profit_bps:
            report.outcome = RunOutcome.BELOW_THRESHOLD
            return self._finish(report)

        try:
            balance = await call_blocking(self.balance_source, timeout=self.timeout_seconds)
        except (RpcError, asyncio.TimeoutError) as exc:
            raise FatalSetupError(f"Could not read wallet balance: {exc}") from exc
        limits = CapitalLimits(
            hard_cap=to_raw_units(self.params.max_trade, market.quote_decimals),
            safety_fraction=self.params.capital_safety_fraction,
        )
        max_capital = limits.max_usable_capital(balance)
        self.logger.info(
            "Usable capital %d of balance %d",
            max_capital,
            balance,
            extra={"event": "capital_bound", "balance": balance, "max_capital": max_capital, "hard_cap": limits.hard_cap},
        )

        increment = to_raw_units(self.params.sizing_increment, market.quote_decimals)
        try:
            clock = await call_blocking(self.sizer.clock_source, timeout=self.timeout_seconds)
        except (RpcError, asyncio.TimeoutError) as exc:
            raise FatalSetupError(f"Could not read chain clock: {exc}") from exc
        sizing = await asyncio.to_thread(
            self.sizer.size, market, opportunity.direction, max_capital, clock, increment or None
        )
        report.sizing = sizing
        self.metrics.record_sizing(sizing.optimal_amount, sizing.expected_profit, sizing.failed_candidates)
        if not sizing.profitable:
            report.outcome = RunOutcome.UNPROFITABLE
            return self._finish(report)

        if self.params.dry_run:
            self.logger.info(
                "Dry run: would trade %d for %d (expected profit %d)",
                sizing.optimal_amount,
                sizing.expected_output,
                sizing.expected_profit,
                extra={
                    "event": "dry_run",
                    "market_id": market.market_id,
                    "direction": opportunity.direction.value,
                    "optimal_amount": sizing.optimal_amount,
                    "expected_output": sizing.expected_output,
                    "expected_profit": sizing.expected_profit,
                },
            )
            report.outcome = RunOutcome.DRY_RUN
            return self._finish(report)

        async with self.locks.hold(self.owner):
            execution = await self.orchestrator.execute(market, opportunity.direction, sizing.optimal_amount)
        report.execution = execution
        report.outcome = RunOutcome.EXECUTED if execution.success else RunOutcome.EXECUTION_FAILED
        return self._finish(report)

    async def _read_prices(self, market: MarketConfiguration) -> PriceSnapshot:
        try:
            spot_state = await call_blocking(self.amm.fetch_spot_state, market, timeout=self.timeout_seconds)
            spot_price = self.amm.price(spot_state)
        except (ArbitrageError, ApiError, asyncio.TimeoutError) as exc:
            raise FatalSetupError(f"Could not read spot price: {exc}") from exc

        conditional: List[Any] = []
        expected = 0
        for leg in market.legs:
            if not leg.is_tradeable:
                self.logger.info(
                    "Skipping %s (state=%s)",
                    leg.label,
                    leg.state.value,
                    extra={"event": "leg_skipped", "market_id": market.market_id, "leg_index": leg.index},
                )
                conditional.append(None)
                continue
            expected += 1
            conditional.append(await self._read_leg_price(leg))

        received = sum(1 for price in conditional if price is not None)
        if received < expected:
            raise InsufficientPriceCoverage(expected, received)
        return PriceSnapshot(spot_price=spot_price, conditional_prices=conditional)

    async def _read_leg_price(self, leg: ConditionalMarketLeg) -> Any:
        try:
            state = await call_blocking(self.amm.fetch_leg_state, leg, timeout=self.timeout_seconds)
            return self.amm.price(state)
        except (ArbitrageError, ApiError, asyncio.TimeoutError) as exc:
            self.logger.error(
                "Failed to read %s price",
                leg.label,
                extra={"event": "leg_price_failed", "leg_index": leg.index, "error": str(exc)},
            )
            return None

    async def _log_projections(self, market: MarketConfiguration, prices: PriceSnapshot) -> None:
        if not market.created_at_ms or not market.finalized_at_ms:
            return
        now_ms = int(time.time() * 1000)
        elapsed = time_elapsed_fraction(market.created_at_ms, market.finalized_at_ms, now_ms)
        remaining_minutes = max(0, market.finalized_at_ms - now_ms) / 60_000
        self.logger.info(
            "Voting period %.1f%% elapsed, %.1f minutes remaining",
            elapsed * 100,
            remaining_minutes,
            extra={"event": "voting_progress", "elapsed": elapsed, "remaining_minutes": remaining_minutes},
        )

        try:
            twap = await call_blocking(self.api.fetch_twap, market.market_id, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            twap = None
        if twap is None:
            return
        for leg, price in zip(market.legs, prices.conditional_prices):
            if price is None or leg.index >= len(twap.twaps):
                continue
            current = twap.twaps[leg.index]
            self.logger.info(
                "%s TWAP %.6f, expected final %.6f",
                leg.label,
                current,
                expected_final_twap(current, float(price), elapsed),
                extra={"event": "twap_projection", "leg_index": leg.index, "twap": current, "price": float(price)},
            )

    def _log_opportunity(self, market: MarketConfiguration, opportunity: ArbitrageOpportunity) -> None:
        for leg, premium in zip(market.legs, opportunity.premiums):
            if premium is None:
                continue
            self.logger.info(
                "%s premium %s",
                leg.label,
                format_premium(premium),
                extra={"event": "leg_premium", "leg_index": leg.index, "premium": premium},
            )
        self.logger.info(
            "Direction %s, estimated profit %d bps after %d bps fees",
            opportunity.direction.value,
            opportunity.estimated_profit_bps,
            opportunity.total_fee_bps,
            extra={
                "event": "opportunity",
                "market_id": market.market_id,
                "direction": opportunity.direction.value,
                "spot_price": opportunity.spot_price,
                "min_premium": opportunity.min_premium,
                "max_premium": opportunity.max_premium,
                "estimated_profit_bps": opportunity.estimated_profit_bps,
            },
        )

    def _finish(self, report: RunReport) -> RunReport:
        self.metrics.record_run(report.outcome.value)
        self.logger.info(
            "Run finished: %s",
            report.outcome.value,
            extra={"event": "run_finished", "market_id": report.market_id, "outcome": report.outcome.value},
        )
        return report


__all__ = ["ArbitrageEngine", "RunOutcome", "RunReport", "ACTIVE_STATUS"]
