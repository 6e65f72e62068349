"""Minimal Solana JSON-RPC reads used by the engine.

Only read methods are needed here: the clock for quoting, the wallet balance
for capital limits, and confirmed transaction balances for recording the amount
a leg actually received.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from condarb.data.models import ClockContext


class RpcError(Exception):
    """JSON-RPC transport or protocol failure."""


class SolanaRpcClient:
    """Blocking JSON-RPC client over ``requests``."""

    def __init__(
        self,
        rpc_url: str = "https://api.mainnet-beta.solana.com",
        commitment: str = "confirmed",
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)
        self._request_id = 0

    def get_clock(self) -> ClockContext:
        """Return the current slot and its block time."""

        slot = int(self._call("getSlot", [{"commitment": self.commitment}]))
        block_time = self._call("getBlockTime", [slot])
        if block_time is None:
            raise RpcError("Failed to get block time")
        return ClockContext(slot=slot, block_time=int(block_time))

    def get_balance(self, owner: str) -> int:
        """Native balance of ``owner`` in lamports."""

        result = self._call("getBalance", [owner, {"commitment": self.commitment}])
        if isinstance(result, dict):
            result = result.get("value")
        if result is None:
            raise RpcError(f"Unexpected getBalance response for {owner}")
        return int(result)

    def get_token_delta(self, signature: str, owner: str, mint: str) -> Optional[int]:
        """Net change of ``owner``'s ``mint`` balance in a confirmed transaction.

        Returns None when the transaction or the balance entries are not
        available; callers fall back to the quoted amount.
        """

        result = self._call(
            "getTransaction",
            [signature, {"encoding": "jsonParsed", "commitment": self.commitment, "maxSupportedTransactionVersion": 0}],
        )
        if not isinstance(result, dict):
            return None
        meta = result.get("meta") or {}
        pre = self._token_amount(meta.get("preTokenBalances") or [], owner, mint)
        post = self._token_amount(meta.get("postTokenBalances") or [], owner, mint)
        if post is None:
            return None
        return post - (pre or 0)

    def _token_amount(self, balances: List[Dict[str, Any]], owner: str, mint: str) -> Optional[int]:
        total: Optional[int] = None
        for entry in balances:
            if entry.get("owner") != owner or entry.get("mint") != mint:
                continue
            amount = (entry.get("uiTokenAmount") or {}).get("amount")
            if amount is None:
                continue
            total = (total or 0) + int(amount)
        return total

    def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params or []}
        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout_seconds)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise RpcError(f"RPC call failed: method={method}: {exc}") from exc

        if not isinstance(body, dict):
            raise RpcError(f"Invalid RPC response for {method}: {body}")
        if body.get("error"):
            raise RpcError(f"RPC error for {method}: {body['error']}")
        return body.get("result")


__all__ = ["SolanaRpcClient", "RpcError"]
