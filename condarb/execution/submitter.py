"""Build, sign and execute transactions through the market API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from solders.keypair import Keypair

from condarb.data.market_client import ApiError, MarketApiClient
from condarb.data.models import AssetClass
from condarb.data.rpc_client import RpcError, SolanaRpcClient
from condarb.errors import SubmissionError
from condarb.execution.signing import sign_transaction
from condarb.pricing.amm import UnsignedSwap


@dataclass(frozen=True)
class SubmissionReceipt:
    """Confirmed submission. ``received_amount`` is None when it could not be read back."""

    signature: str
    received_amount: Optional[int] = None


class TransactionSubmitter(Protocol):
    """Submission surface used by the orchestrator and the vault adapter."""

    @property
    def owner(self) -> str:
        ...

    def submit_swap(self, market_id: int, swap: UnsignedSwap) -> SubmissionReceipt:
        ...

    def submit_vault(self, market_id: int, asset_class: AssetClass, operation: str, amount: int) -> SubmissionReceipt:
        ...


class ApiTransactionSubmitter:
    """Submit through the API's build/execute endpoints, signing locally in between."""

    def __init__(
        self,
        api: MarketApiClient,
        signer: Keypair,
        rpc: Optional[SolanaRpcClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.api = api
        self.signer = signer
        self.rpc = rpc
        self.logger = logger or logging.getLogger(__name__)

    @property
    def owner(self) -> str:
        return str(self.signer.pubkey())

    def submit_swap(self, market_id: int, swap: UnsignedSwap) -> SubmissionReceipt:
        try:
            if swap.leg_index is None:
                route_minimum = self.api.fetch_spot_route_minimum(
                    market_id, swap.input_mint, swap.output_mint, swap.amount_in, swap.slippage_bps
                )
                if route_minimum < swap.minimum_amount_out:
                    raise SubmissionError(
                        f"Spot route minimum {route_minimum} is below the pool quote minimum {swap.minimum_amount_out}"
                    )
                built = self.api.build_spot_swap(
                    market_id, self.owner, swap.input_mint, swap.output_mint, swap.amount_in, swap.slippage_bps
                )
                signature = self.api.execute_spot_swap(market_id, sign_transaction(built, self.signer))
            else:
                built = self.api.build_conditional_swap(
                    market_id, swap.leg_index, self.owner, swap.is_base_to_quote, swap.amount_in, swap.slippage_bps
                )
                signature = self.api.execute_conditional_swap(
                    market_id,
                    swap.leg_index,
                    self.owner,
                    swap.is_base_to_quote,
                    swap.amount_in,
                    sign_transaction(built, self.signer),
                    amount_out=swap.expected_amount_out,
                )
        except ApiError as exc:
            raise SubmissionError(f"Swap on {swap.pool} failed: {exc}") from exc

        return SubmissionReceipt(signature=signature, received_amount=self._received(signature, swap.output_mint))

    def submit_vault(self, market_id: int, asset_class: AssetClass, operation: str, amount: int) -> SubmissionReceipt:
        try:
            built = self.api.build_vault_tx(market_id, asset_class, operation, self.owner, amount)
            signature = self.api.execute_vault_tx(market_id, asset_class, operation, sign_transaction(built, self.signer))
        except ApiError as exc:
            raise SubmissionError(f"{operation} of {amount} {asset_class.value} failed: {exc}") from exc
        return SubmissionReceipt(signature=signature, received_amount=amount)

    def _received(self, signature: str, mint: str) -> Optional[int]:
        if self.rpc is None:
            return None
        try:
            delta = self.rpc.get_token_delta(signature, self.owner, mint)
        except RpcError as exc:
            self.logger.warning(
                "Could not read received amount for %s",
                signature,
                extra={"event": "receipt_unavailable", "signature": signature, "error": str(exc)},
            )
            return None
        if delta is None or delta <= 0:
            return None
        return delta


__all__ = ["ApiTransactionSubmitter", "SubmissionReceipt", "TransactionSubmitter"]
