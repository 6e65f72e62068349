"""Sequential execution of an arbitrage loop.

Legs commit independently: there is no cross-leg atomicity, so a failure after
leg ``k`` leaves legs ``1..k`` on chain. The orchestrator stops at the first
failure, returns the completed legs, and journals every leg event so the
position can be reconciled by hand. It never compensates and never retries.

Pool and clock reads are bounded by ``timeout_seconds``. Submissions are awaited
until the client returns; their only bound is the HTTP client timeout.

Above (conditional prices over spot)::

    buy base on spot -> split base -> sell base on every trading leg -> merge quote

Below (conditional prices under spot)::

    split quote -> buy base on every trading leg -> merge base -> sell base on spot
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, List, Optional

from condarb.data.models import AssetClass, ClockContext, ConditionalMarketLeg, MarketConfiguration
from condarb.errors import SimulationError
from condarb.execution.results import ExecutionResult, LegKind, LegResult, RunState
from condarb.execution.submitter import TransactionSubmitter
from condarb.execution.vault import VaultAdapter
from condarb.infra.aio import call_blocking
from condarb.infra.journal import LegJournal
from condarb.infra.metrics import RunMetrics
from condarb.pricing.amm import AMMAdapter, PoolState
from condarb.pricing.opportunity import ArbitrageDirection
from condarb.pricing.sizing import merge_bottleneck


class _LegFailed(Exception):
    def __init__(self, leg: LegResult) -> None:
        super().__init__(leg.error)
        self.leg = leg


class ExecutionOrchestrator:
    """Run the leg sequence for one direction and size, one leg at a time."""

    def __init__(
        self,
        amm: AMMAdapter,
        vault: VaultAdapter,
        submitter: TransactionSubmitter,
        clock_source: Callable[[], ClockContext],
        slippage_bps: int = 500,
        timeout_seconds: float = 60.0,
        journal: Optional[LegJournal] = None,
        metrics: Optional[RunMetrics] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.amm = amm
        self.vault = vault
        self.submitter = submitter
        self.clock_source = clock_source
        self.slippage_bps = slippage_bps
        self.timeout_seconds = timeout_seconds
        self.journal = journal or LegJournal()
        self.metrics = metrics
        self.logger = logger or logging.getLogger(__name__)
        self.state = RunState.IDLE
        self._run_id = ""
        self._legs: List[LegResult] = []

    async def execute(
        self, market: MarketConfiguration, direction: ArbitrageDirection, amount: int
    ) -> ExecutionResult:
        if direction is ArbitrageDirection.NONE:
            raise ValueError("Cannot execute without a direction")
        if amount <= 0:
            raise ValueError(f"Execution amount must be positive, got {amount}")

        self.state = RunState.IDLE
        self._run_id = uuid.uuid4().hex
        self._legs = []
        self.journal.record(
            self._run_id, "run_started", market_id=market.market_id, direction=direction.value, amount=amount
        )
        self.logger.info(
            "Executing %s arbitrage with %d",
            direction.value,
            amount,
            extra={"event": "execution_start", "run_id": self._run_id, "market_id": market.market_id, "amount": amount},
        )

        try:
            if direction is ArbitrageDirection.ABOVE:
                final_amount = await self._execute_above(market, amount)
            else:
                final_amount = await self._execute_below(market, amount)
        except _LegFailed as failure:
            return self._finish_failed(market, amount, failure.leg)

        self.state = RunState.DONE
        result = ExecutionResult(
            success=True,
            state=self.state,
            legs=list(self._legs),
            spent_amount=amount,
            final_amount=final_amount,
        )
        self.journal.record(
            self._run_id,
            "run_finished",
            state=self.state.value,
            spent_amount=amount,
            final_amount=final_amount,
            realized_profit=result.realized_profit,
        )
        self.logger.info(
            "Arbitrage complete",
            extra={
                "event": "execution_complete",
                "run_id": self._run_id,
                "market_id": market.market_id,
                "spent_amount": amount,
                "final_amount": final_amount,
                "realized_profit": result.realized_profit,
            },
        )
        return result

    async def _execute_above(self, market: MarketConfiguration, amount: int) -> int:
        self.state = RunState.BUYING_SPOT
        bought = await self._swap(
            market, LegKind.SPOT_SWAP, None, lambda: self.amm.fetch_spot_state(market), AssetClass.QUOTE, amount
        )

        self.state = RunState.SPLITTING
        split = await self._vault_leg(market, "split", AssetClass.BASE, bought.amount_out)

        self.state = RunState.SWAPPING_LEGS
        received = await self._swap_legs(market, AssetClass.BASE, split.amount_out)

        self.state = RunState.MERGING
        merged = await self._vault_leg(market, "merge", AssetClass.QUOTE, self._merge_amount(received))
        return merged.amount_out

    async def _execute_below(self, market: MarketConfiguration, amount: int) -> int:
        self.state = RunState.SPLITTING
        split = await self._vault_leg(market, "split", AssetClass.QUOTE, amount)

        self.state = RunState.SWAPPING_LEGS
        received = await self._swap_legs(market, AssetClass.QUOTE, split.amount_out)

        self.state = RunState.MERGING
        merged = await self._vault_leg(market, "merge", AssetClass.BASE, self._merge_amount(received))

        self.state = RunState.SELLING_SPOT
        sold = await self._swap(
            market,
            LegKind.SPOT_SWAP,
            None,
            lambda: self.amm.fetch_spot_state(market),
            AssetClass.BASE,
            merged.amount_out,
        )
        return sold.amount_out

    async def _swap_legs(self, market: MarketConfiguration, input_side: AssetClass, amount: int) -> List[int]:
        received = []
        for leg in market.legs:
            if not leg.is_tradeable:
                self.logger.info(
                    "Skipping %s (state=%s)",
                    leg.label,
                    leg.state.value,
                    extra={"event": "leg_skipped", "run_id": self._run_id, "leg_index": leg.index},
                )
                continue
            result = await self._swap(
                market, LegKind.CONDITIONAL_SWAP, leg.index, self._leg_loader(leg), input_side, amount
            )
            received.append(result.amount_out)
        return received

    def _merge_amount(self, received: List[int]) -> int:
        try:
            return merge_bottleneck(received)
        except SimulationError as exc:
            failed = LegResult(step=len(self._legs) + 1, kind=LegKind.MERGE, amount_in=0, error=str(exc))
            raise _LegFailed(failed) from exc

    def _leg_loader(self, leg: ConditionalMarketLeg) -> Callable[[], PoolState]:
        return lambda: self.amm.fetch_leg_state(leg)

    async def _swap(
        self,
        market: MarketConfiguration,
        kind: LegKind,
        leg_index: Optional[int],
        load_state: Callable[[], PoolState],
        input_side: AssetClass,
        amount: int,
    ) -> LegResult:
        leg = LegResult(step=len(self._legs) + 1, kind=kind, leg_index=leg_index, amount_in=amount)
        try:
            clock = await call_blocking(self.clock_source, timeout=self.timeout_seconds)
            state = await call_blocking(load_state, timeout=self.timeout_seconds)
            quote = self.amm.quote(state, amount, input_side, self.slippage_bps, clock)
            swap = self.amm.build_swap(state, quote, input_side, self.submitter.owner, self.slippage_bps, leg_index)
            receipt = await call_blocking(self.submitter.submit_swap, market.market_id, swap)
            signature = receipt.signature
            amount_out = int(receipt.received_amount if receipt.received_amount is not None else quote.output_amount)
        except Exception as exc:
            leg.error = str(exc) or type(exc).__name__
            raise _LegFailed(leg) from exc

        leg.signature = signature
        leg.amount_out = amount_out
        self._complete(leg)
        return leg

    async def _vault_leg(self, market: MarketConfiguration, operation: str, asset_class: AssetClass, amount: int) -> LegResult:
        func = self.vault.split if operation == "split" else self.vault.merge
        step = len(self._legs) + 1
        try:
            leg = await call_blocking(func, self.submitter.owner, market.vault, asset_class, amount, step)
        except Exception as exc:
            kind = LegKind.SPLIT if operation == "split" else LegKind.MERGE
            failed = LegResult(step=step, kind=kind, amount_in=amount, error=str(exc) or type(exc).__name__)
            raise _LegFailed(failed) from exc
        self._complete(leg)
        return leg

    def _complete(self, leg: LegResult) -> None:
        self._legs.append(leg)
        self.journal.record(self._run_id, "leg_completed", state=self.state.value, **leg.to_dict())
        if self.metrics:
            self.metrics.record_leg(leg.kind.value, ok=True)
        self.logger.info(
            "Leg %d (%s) confirmed: %s",
            leg.step,
            leg.kind.value,
            leg.signature,
            extra={"event": "leg_completed", "run_id": self._run_id, **leg.to_dict()},
        )

    def _finish_failed(self, market: MarketConfiguration, amount: int, failed: LegResult) -> ExecutionResult:
        failed_state = self.state
        self.state = RunState.PARTIAL if self._legs else RunState.FAILED
        self.journal.record(self._run_id, "leg_failed", state=failed_state.value, **failed.to_dict())
        self.journal.record(
            self._run_id, "run_finished", state=self.state.value, spent_amount=amount, completed_legs=len(self._legs)
        )
        if self.metrics:
            self.metrics.record_leg(failed.kind.value, ok=False)
        self.logger.error(
            "Leg %d (%s) failed during %s; %d legs already committed",
            failed.step,
            failed.kind.value,
            failed_state.value,
            len(self._legs),
            extra={
                "event": "execution_failed",
                "run_id": self._run_id,
                "market_id": market.market_id,
                "state": self.state.value,
                "error": failed.error,
                "completed_legs": [leg.to_dict() for leg in self._legs],
            },
        )
        return ExecutionResult(
            success=False,
            state=self.state,
            legs=list(self._legs),
            error=failed.error,
            failed_leg=failed,
            spent_amount=amount,
        )
    @property
    def run_id(self) -> str:
        return self._run_id


__all__ = ["ExecutionOrchestrator", "ExecutionResult", "LegKind", "LegResult", "RunState"]
