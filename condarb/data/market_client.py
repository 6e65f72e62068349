"""HTTP client for the market API.

The API owns proposal metadata, TWAP history, pool reads, and the
build/execute transaction endpoints used for swaps and vault operations. This
module normalizes its payloads into :mod:`condarb.data.models` records and turns
transport failures into typed errors at the boundary.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from condarb.data.models import (
    AssetClass,
    ConditionalMarketLeg,
    LegState,
    MarketConfiguration,
    TwapSnapshot,
)
from condarb.errors import MarketConfigUnavailable, PoolUnavailable

# Swap endpoints address conditional pools by name, in the proposal's AMM order.
LEG_MARKETS = ("pass", "fail")


class ApiError(Exception):
    """Non-success response (or no response) from the market API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def leg_market(leg_index: int) -> str:
    """Name the swap endpoints use for the conditional pool at ``leg_index``."""

    if not 0 <= leg_index < len(LEG_MARKETS):
        raise ApiError(f"No swap market for leg {leg_index}; the API trades {', '.join(LEG_MARKETS)}")
    return LEG_MARKETS[leg_index]


class MarketApiClient:
    """Blocking client for the market API; callers run it off the event loop."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        moderator_id: int = 0,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.moderator_id = moderator_id
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    # --- Market metadata -------------------------------------------------
    def fetch_market_configuration(self, market_id: int) -> MarketConfiguration:
        """Fetch and normalize a proposal's market configuration."""

        path = f"/api/proposals/{market_id}"
        self.logger.info(
            "Fetching market configuration", extra={"event": "market_fetch", "market_id": market_id}
        )
        try:
            payload = self._get(path, params={"moderatorId": self.moderator_id})
        except ApiError as exc:
            raise MarketConfigUnavailable(f"Failed to fetch proposal {market_id}: {exc}") from exc
        try:
            return self._normalize_market(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise MarketConfigUnavailable(f"Malformed proposal payload for {market_id}: {exc}") from exc

    def fetch_twap(self, market_id: int) -> Optional[TwapSnapshot]:
        """Return the most recent TWAP aggregate, or None when unavailable."""

        try:
            payload = self._get(f"/api/history/{market_id}/twap", params={"moderatorId": self.moderator_id})
        except ApiError as exc:
            self.logger.info(
                "No TWAP data available", extra={"event": "twap_unavailable", "market_id": market_id, "error": str(exc)}
            )
            return None

        rows = payload.get("data") if isinstance(payload, dict) else None
        if not rows:
            return None
        latest = rows[0]
        return TwapSnapshot(
            twaps=[value for value in (self._safe_float(t) for t in latest.get("twaps") or []) if value is not None],
            timestamp=str(latest.get("timestamp", "")),
        )

    # --- Pools -----------------------------------------------------------
    def fetch_pool(self, pool: str) -> Dict[str, Any]:
        """Return the raw pool payload (reserves and token mints)."""

        try:
            payload = self._get(f"/api/pools/{pool}/price")
        except ApiError as exc:
            raise PoolUnavailable(f"Pool {pool} unavailable: {exc}") from exc
        if not isinstance(payload, dict):
            raise PoolUnavailable(f"Pool {pool} returned a malformed payload")
        return payload

    # --- Transactions ----------------------------------------------------
    def build_conditional_swap(
        self, market_id: int, leg_index: int, user: str, is_base_to_quote: bool, amount_in: int, slippage_bps: int
    ) -> str:
        payload = {
            "user": user,
            "market": leg_market(leg_index),
            "isBaseToQuote": is_base_to_quote,
            "amountIn": str(amount_in),
            "slippageBps": slippage_bps,
        }
        return self._transaction_field(self._post(f"/api/swap/{market_id}/buildSwapTx", payload))

    def execute_conditional_swap(
        self,
        market_id: int,
        leg_index: int,
        user: str,
        is_base_to_quote: bool,
        amount_in: int,
        transaction: str,
        amount_out: Optional[int] = None,
    ) -> str:
        payload: Dict[str, Any] = {
            "transaction": transaction,
            "market": leg_market(leg_index),
            "user": user,
            "isBaseToQuote": is_base_to_quote,
            "amountIn": str(amount_in),
        }
        if amount_out is not None:
            payload["amountOut"] = str(amount_out)
        return self._signature_field(self._post(f"/api/swap/{market_id}/executeSwapTx", payload))

    def fetch_spot_route_minimum(
        self, market_id: int, input_mint: str, output_mint: str, amount_in: int, slippage_bps: int
    ) -> int:
        """Minimum output the spot route would accept for this swap (``otherAmountThreshold``)."""

        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount_in),
            "slippageBps": slippage_bps,
        }
        payload = self._get(f"/api/swap/{market_id}/jupiter/quote", params=params)
        threshold = self._safe_int(payload.get("otherAmountThreshold")) if isinstance(payload, dict) else None
        if threshold is None:
            raise ApiError(f"Spot quote for market {market_id} has no minimum output")
        return threshold

    def build_spot_swap(
        self, market_id: int, user: str, input_mint: str, output_mint: str, amount_in: int, slippage_bps: int
    ) -> str:
        payload = {
            "user": user,
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount_in),
            "slippageBps": slippage_bps,
        }
        return self._transaction_field(self._post(f"/api/swap/{market_id}/jupiter/buildSwapTx", payload))

    def execute_spot_swap(self, market_id: int, transaction: str) -> str:
        response = self._post(f"/api/swap/{market_id}/jupiter/executeSwapTx", {"transaction": transaction})
        return self._signature_field(response)

    def build_vault_tx(self, market_id: int, asset_class: AssetClass, operation: str, user: str, amount: int) -> str:
        """Build a split or merge transaction (``operation`` is ``Split`` or ``Merge``)."""

        path = f"/api/vaults/{market_id}/{asset_class.value}/build{operation}Tx"
        return self._transaction_field(self._post(path, {"user": user, "amount": str(amount)}))

    def execute_vault_tx(self, market_id: int, asset_class: AssetClass, operation: str, transaction: str) -> str:
        path = f"/api/vaults/{market_id}/{asset_class.value}/execute{operation}Tx"
        return self._signature_field(self._post(path, {"transaction": transaction}))

    # --- Normalization ---------------------------------------------------
    def _normalize_market(self, payload: Dict[str, Any]) -> MarketConfiguration:
        labels: List[str] = list(payload.get("marketLabels") or [])
        legs = []
        for index, amm in enumerate(payload.get("ammData") or []):
            legs.append(
                ConditionalMarketLeg(
                    index=index,
                    label=labels[index] if index < len(labels) else f"Market {index}",
                    pool=amm.get("pool") or None,
                    base_mint=str(amm["baseMint"]),
                    quote_mint=str(amm["quoteMint"]),
                    base_decimals=int(amm["baseDecimals"]),
                    quote_decimals=int(amm["quoteDecimals"]),
                    state=LegState.parse(amm.get("state")),
                )
            )

        return MarketConfiguration(
            market_id=int(payload["id"]),
            moderator_id=int(payload.get("moderatorId", self.moderator_id)),
            title=str(payload.get("title", "")),
            status=str(payload.get("status", "")),
            spot_pool=payload.get("spotPoolAddress") or None,
            base_mint=str(payload["baseMint"]),
            quote_mint=str(payload["quoteMint"]),
            base_decimals=int(payload["baseDecimals"]),
            quote_decimals=int(payload["quoteDecimals"]),
            vault=str(payload.get("vaultPDA", "")),
            legs=tuple(legs),
            created_at_ms=self._safe_int(payload.get("createdAt")) or 0,
            finalized_at_ms=self._safe_int(payload.get("finalizedAt")) or 0,
        )

    def _transaction_field(self, response: Dict[str, Any]) -> str:
        transaction = response.get("transaction")
        if not transaction:
            raise ApiError("Build response is missing a transaction")
        return str(transaction)

    def _signature_field(self, response: Dict[str, Any]) -> str:
        if str(response.get("status", "success")).lower() == "failed":
            raise ApiError(str(response.get("message") or "Execution failed"))
        signature = response.get("signature")
        if not signature:
            raise ApiError("Execute response is missing a signature")
        return str(signature)

    # --- Transport -------------------------------------------------------
    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request("POST", path, params={"moderatorId": self.moderator_id}, json=body)
        if not isinstance(response, dict):
            raise ApiError(f"Unexpected response for {path}")
        return response

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout_seconds, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise ApiError(self._error_message(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{method} {url} returned invalid JSON") from exc

    def _error_message(self, response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}: {response.text[:200]}"
        if isinstance(body, dict):
            return str(body.get("error") or body.get("message") or body)
        return str(body)

    def _safe_float(self, value: Any) -> Optional[float]:
        try:
            if value is None:
                return None
            return float(value)
        except (TypeError, ValueError):
            return None

    def _safe_int(self, value: Any) -> Optional[int]:
        try:
            if value is None:
                return None
            return int(value)
        except (TypeError, ValueError):
            return None


__all__ = ["MarketApiClient", "ApiError"]
