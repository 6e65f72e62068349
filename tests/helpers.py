"""Shared market fixtures and stub collaborators for the test suite."""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from condarb.data.models import ClockContext, ConditionalMarketLeg, LegState, MarketConfiguration
from condarb.errors import PoolUnavailable

BASE_MINT = "BaseMint1111111111111111111111111111111111"
QUOTE_MINT = "So11111111111111111111111111111111111111112"
CLOCK = ClockContext(slot=250_000_000, block_time=1_700_000_000)
UNIT = 10**9


def make_leg(
    index: int, state: LegState = LegState.TRADING, pool: Optional[str] = "default", label: Optional[str] = None
) -> ConditionalMarketLeg:
    return ConditionalMarketLeg(
        index=index,
        label=label or f"Market {index}",
        pool=f"leg-pool-{index}" if pool == "default" else pool,
        base_mint=f"cBase{index}",
        quote_mint=f"cQuote{index}",
        base_decimals=9,
        quote_decimals=9,
        state=state,
    )


def make_market(
    legs: List[ConditionalMarketLeg], spot_pool: Optional[str] = "spot-pool", status: str = "Pending"
) -> MarketConfiguration:
    return MarketConfiguration(
        market_id=7,
        moderator_id=0,
        title="Test proposal",
        status=status,
        spot_pool=spot_pool,
        base_mint=BASE_MINT,
        quote_mint=QUOTE_MINT,
        base_decimals=9,
        quote_decimals=9,
        vault="vault-pda",
        legs=tuple(legs),
    )


def pool_payload(
    base_mint: str,
    quote_mint: str,
    base_reserve: int,
    quote_reserve: int,
    fee_bps: int = 0,
    flipped: bool = False,
) -> Dict[str, Any]:
    if flipped:
        return {
            "reserves": {"base": str(quote_reserve), "quote": str(base_reserve)},
            "tokenMints": {"base": quote_mint, "quote": base_mint},
            "feeBps": fee_bps,
        }
    return {
        "reserves": {"base": str(base_reserve), "quote": str(quote_reserve)},
        "tokenMints": {"base": base_mint, "quote": quote_mint},
        "feeBps": fee_bps,
    }


class StubPoolReader:
    """Serve pool payloads from memory; ``failures[pool]`` reads fail before succeeding."""

    def __init__(self, pools: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.pools: Dict[str, Dict[str, Any]] = dict(pools or {})
        self.failures: Dict[str, int] = {}
        self.calls: List[str] = []

    def fetch_pool(self, pool: str) -> Dict[str, Any]:
        self.calls.append(pool)
        remaining = self.failures.get(pool, 0)
        if remaining:
            self.failures[pool] = remaining - 1
            raise PoolUnavailable(f"Pool {pool} unavailable")
        if pool not in self.pools:
            raise PoolUnavailable(f"Pool {pool} not found")
        return self.pools[pool]


def priced_pools(
    market: MarketConfiguration,
    spot_price: float,
    leg_prices: List[float],
    depth: int = 1_000 * UNIT,
    fee_bps: int = 0,
) -> Dict[str, Dict[str, Any]]:
    """Pools of ``depth`` base reserves quoted at the given prices (equal decimals)."""

    pools = {
        market.spot_pool: pool_payload(
            market.base_mint, market.quote_mint, depth, int(depth * spot_price), fee_bps=fee_bps
        )
    }
    for leg, price in zip(market.legs, leg_prices):
        if leg.pool is None:
            continue
        pools[leg.pool] = pool_payload(leg.base_mint, leg.quote_mint, depth, int(depth * price), fee_bps=fee_bps)
    return pools


def unsigned_transfer(payer: Keypair) -> str:
    """Base64 unsigned transaction paid by ``payer``, shaped like an API build response."""

    instruction = transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1_000))
    message = Message.new_with_blockhash([instruction], payer.pubkey(), Hash.default())
    return base64.b64encode(bytes(Transaction.new_unsigned(message))).decode("ascii")
