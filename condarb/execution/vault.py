"""Split and merge through the conditional vault.

Both operations are 1:1 per leg with no fee. The adapter does not compute the
merge bottleneck; callers pass the amount every leg can cover.
"""

from __future__ import annotations

import logging
from typing import Optional

from condarb.data.models import AssetClass
from condarb.errors import InsufficientBalance, SubmissionError, VaultUnavailable
from condarb.execution.results import LegKind, LegResult
from condarb.execution.submitter import TransactionSubmitter


class VaultAdapter:
    def __init__(self, submitter: TransactionSubmitter, market_id: int, logger: Optional[logging.Logger] = None) -> None:
        self.submitter = submitter
        self.market_id = market_id
        self.logger = logger or logging.getLogger(__name__)

    def split(self, owner: str, vault_ref: str, asset_class: AssetClass, amount: int, step: int = 0) -> LegResult:
        """Deposit ``amount`` of the real asset for ``amount`` in every leg."""

        return self._operate("Split", LegKind.SPLIT, owner, vault_ref, asset_class, amount, step)

    def merge(self, owner: str, vault_ref: str, asset_class: AssetClass, amount: int, step: int = 0) -> LegResult:
        """Burn ``amount`` from every leg for ``amount`` of the real asset."""

        return self._operate("Merge", LegKind.MERGE, owner, vault_ref, asset_class, amount, step)

    def _operate(
        self,
        operation: str,
        kind: LegKind,
        owner: str,
        vault_ref: str,
        asset_class: AssetClass,
        amount: int,
        step: int,
    ) -> LegResult:
        if amount <= 0:
            raise InsufficientBalance(f"{operation} amount must be positive, got {amount}")
        if owner != self.submitter.owner:
            raise VaultUnavailable(f"{operation} owner {owner} does not match the signer {self.submitter.owner}")

        self.logger.info(
            "%s %d %s via vault %s",
            operation,
            amount,
            asset_class.value,
            vault_ref,
            extra={
                "event": f"vault_{operation.lower()}",
                "market_id": self.market_id,
                "vault": vault_ref,
                "asset_class": asset_class.value,
                "amount": amount,
            },
        )
        try:
            receipt = self.submitter.submit_vault(self.market_id, asset_class, operation, amount)
        except SubmissionError as exc:
            if "insufficient" in str(exc).lower():
                raise InsufficientBalance(str(exc)) from exc
            raise VaultUnavailable(str(exc)) from exc

        return LegResult(
            step=step,
            kind=kind,
            amount_in=amount,
            signature=receipt.signature,
            amount_out=receipt.received_amount if receipt.received_amount is not None else amount,
        )


__all__ = ["VaultAdapter"]
