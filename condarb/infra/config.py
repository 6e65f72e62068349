"""Config loading for the arbitrage engine.

Settings come from a YAML file with environment overrides for endpoints, the
wallet path and the dry-run flag. Amounts in the file are human units of the
quote asset (``max_trade: 10`` means ten whole units); they are converted to
raw smallest units once the market's decimals are known.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

DEFAULT_CONFIG_PATH = "config/settings.example.yaml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class ApiConfig:
    base_url: str = "http://localhost:3000"
    moderator_id: int = 0
    timeout_seconds: float = 10.0


@dataclass
class RpcConfig:
    url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    timeout_seconds: float = 10.0


@dataclass
class WalletConfig:
    keypair_path: str = "wallet.json"


@dataclass
class RunParameters:
    market_id: int
    min_profit_bps: int = 0
    max_slippage_bps: int = 500
    max_trade: Decimal = Decimal("10")
    per_swap_fee_bps: int = 50
    capital_safety_fraction: float = 0.95
    sizing_increment: Decimal = Decimal("0.5")
    execution_timeout_seconds: float = 60.0
    dry_run: bool = True


@dataclass
class PersistenceConfig:
    journal_path: str = "var/legs.jsonl"
    metrics_textfile: Optional[str] = None


@dataclass
class AppConfig:
    run: RunParameters
    api: ApiConfig = field(default_factory=ApiConfig)
    rpc: RpcConfig = field(default_factory=RpcConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)


def to_raw_units(amount: Decimal, decimals: int) -> int:
    """Convert a human amount to smallest units, truncating sub-unit dust."""

    return int((Decimal(amount) * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def load_config(path: str | Path | None = None, env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load ``path`` (or ``CONFIG_PATH``, or the example settings) and apply env overrides."""

    env = os.environ if env is None else env
    resolved = Path(path or env.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH).expanduser().resolve()
    with resolved.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return apply_env_overrides(parse_config(raw), env)


def parse_config(raw: Mapping[str, Any]) -> AppConfig:
    run = raw.get("run", {})
    api = raw.get("api", {})
    rpc = raw.get("rpc", {})
    wallet = raw.get("wallet", {})
    persistence = raw.get("persistence", {})

    if "market_id" not in run:
        raise ValueError("run.market_id is required")

    return AppConfig(
        run=RunParameters(
            market_id=int(run["market_id"]),
            min_profit_bps=int(run.get("min_profit_bps", 0)),
            max_slippage_bps=int(run.get("max_slippage_bps", 500)),
            max_trade=Decimal(str(run.get("max_trade", "10"))),
            per_swap_fee_bps=int(run.get("per_swap_fee_bps", 50)),
            capital_safety_fraction=float(run.get("capital_safety_fraction", 0.95)),
            sizing_increment=Decimal(str(run.get("sizing_increment", "0.5"))),
            execution_timeout_seconds=float(run.get("execution_timeout_seconds", 60.0)),
            dry_run=parse_bool(run.get("dry_run", True)),
        ),
        api=ApiConfig(
            base_url=api.get("base_url", "http://localhost:3000"),
            moderator_id=int(api.get("moderator_id", 0)),
            timeout_seconds=float(api.get("timeout_seconds", 10.0)),
        ),
        rpc=RpcConfig(
            url=rpc.get("url", "https://api.mainnet-beta.solana.com"),
            commitment=rpc.get("commitment", "confirmed"),
            timeout_seconds=float(rpc.get("timeout_seconds", 10.0)),
        ),
        wallet=WalletConfig(keypair_path=wallet.get("keypair_path", "wallet.json")),
        persistence=PersistenceConfig(
            journal_path=persistence.get("journal_path", "var/legs.jsonl"),
            metrics_textfile=persistence.get("metrics_textfile"),
        ),
    )


def apply_env_overrides(cfg: AppConfig, env: Mapping[str, str]) -> AppConfig:
    if env.get("PERCENT_API_URL"):
        cfg.api.base_url = env["PERCENT_API_URL"]
    if env.get("SOLANA_RPC_URL"):
        cfg.rpc.url = env["SOLANA_RPC_URL"]
    keypair = env.get("ARB_WALLET_KEY") or env.get("SOLANA_KEYPAIR_PATH")
    if keypair:
        cfg.wallet.keypair_path = keypair
    if env.get("ARB_DRY_RUN"):
        cfg.run.dry_run = parse_bool(env["ARB_DRY_RUN"])
    return cfg


__all__ = [
    "load_config",
    "parse_config",
    "apply_env_overrides",
    "to_raw_units",
    "parse_bool",
    "AppConfig",
    "ApiConfig",
    "RpcConfig",
    "WalletConfig",
    "RunParameters",
    "PersistenceConfig",
]
