"""Market data access: API client, RPC reads, and normalized records."""

from .market_client import ApiError, MarketApiClient
from .models import (
    AssetClass,
    ClockContext,
    ConditionalMarketLeg,
    LegState,
    MarketConfiguration,
    PriceSnapshot,
    TwapSnapshot,
)
from .rpc_client import RpcError, SolanaRpcClient

__all__ = [
    "ApiError",
    "MarketApiClient",
    "RpcError",
    "SolanaRpcClient",
    "AssetClass",
    "ClockContext",
    "ConditionalMarketLeg",
    "LegState",
    "MarketConfiguration",
    "PriceSnapshot",
    "TwapSnapshot",
]
