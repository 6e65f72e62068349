"""Command-line entry point: wire clients from config and run the engine once."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from condarb.data.market_client import MarketApiClient
from condarb.data.rpc_client import SolanaRpcClient
from condarb.engine import ArbitrageEngine, RunReport
from condarb.errors import FatalSetupError
from condarb.execution.orchestrator import ExecutionOrchestrator
from condarb.execution.signing import load_signer
from condarb.execution.submitter import ApiTransactionSubmitter
from condarb.execution.vault import VaultAdapter
from condarb.infra.config import AppConfig, load_config
from condarb.infra.journal import LegJournal
from condarb.infra.logging import configure_logging
from condarb.infra.metrics import RunMetrics
from condarb.pricing.amm import AMMAdapter
from condarb.pricing.opportunity import OpportunityDetector
from condarb.pricing.sizing import TradeSizer


def build_engine(cfg: AppConfig) -> ArbitrageEngine:
    signer = load_signer(cfg.wallet.keypair_path)
    owner = str(signer.pubkey())

    api = MarketApiClient(
        base_url=cfg.api.base_url, moderator_id=cfg.api.moderator_id, timeout_seconds=cfg.api.timeout_seconds
    )
    rpc = SolanaRpcClient(rpc_url=cfg.rpc.url, commitment=cfg.rpc.commitment, timeout_seconds=cfg.rpc.timeout_seconds)
    amm = AMMAdapter(api, default_fee_bps=cfg.run.per_swap_fee_bps)
    submitter = ApiTransactionSubmitter(api, signer, rpc=rpc)
    metrics = RunMetrics(textfile=Path(cfg.persistence.metrics_textfile) if cfg.persistence.metrics_textfile else None)

    orchestrator = ExecutionOrchestrator(
        amm=amm,
        vault=VaultAdapter(submitter, cfg.run.market_id),
        submitter=submitter,
        clock_source=rpc.get_clock,
        slippage_bps=cfg.run.max_slippage_bps,
        timeout_seconds=cfg.run.execution_timeout_seconds,
        journal=LegJournal(Path(cfg.persistence.journal_path)),
        metrics=metrics,
    )
    return ArbitrageEngine(
        params=cfg.run,
        api=api,
        amm=amm,
        detector=OpportunityDetector(per_swap_fee_bps=cfg.run.per_swap_fee_bps),
        sizer=TradeSizer(amm, clock_source=rpc.get_clock, slippage_bps=cfg.run.max_slippage_bps),
        orchestrator=orchestrator,
        balance_source=lambda: rpc.get_balance(owner),
        owner=owner,
        timeout_seconds=max(cfg.api.timeout_seconds, cfg.rpc.timeout_seconds) * 2,
        metrics=metrics,
    )


async def run_once(cfg: AppConfig) -> RunReport:
    engine = build_engine(cfg)
    return await engine.run()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Conditional vs spot AMM arbitrage")
    parser.add_argument("--config", default=None, help="Settings file (defaults to CONFIG_PATH or the example)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--live", action="store_true", help="Override config dry_run flag to run live")
    mode.add_argument("--dry-run", action="store_true", help="Force dry-run regardless of config")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging()
    logger = logging.getLogger("condarb")

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Could not load config: %s", exc, extra={"event": "config_error"})
        return 1
    if args.live:
        cfg.run.dry_run = False
    elif args.dry_run:
        cfg.run.dry_run = True

    try:
        report = asyncio.run(run_once(cfg))
    except FatalSetupError as exc:
        logger.error("Fatal: %s", exc, extra={"event": "fatal_error", "error_type": type(exc).__name__})
        return 1
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
