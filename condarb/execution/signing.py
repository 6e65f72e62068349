"""Wallet key loading and local transaction signing."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Union

from solders.keypair import Keypair
from solders.transaction import Transaction

from condarb.errors import SignerUnavailable, SubmissionError


def load_signer(path: Union[str, Path]) -> Keypair:
    """Load a keypair from a JSON byte-array key file."""

    key_path = Path(path).expanduser()
    if not key_path.is_file():
        raise SignerUnavailable(f"Wallet not found at {key_path}")
    try:
        secret = json.loads(key_path.read_text())
        if not isinstance(secret, list):
            raise ValueError("key file must hold a JSON integer array")
        return Keypair.from_bytes(bytes(secret))
    except (OSError, ValueError, TypeError) as exc:
        raise SignerUnavailable(f"Could not load wallet from {key_path}: {exc}") from exc


def sign_transaction(encoded: str, signer: Keypair) -> str:
    """Add ``signer``'s signature to a base64 transaction built by the API."""

    try:
        transaction = Transaction.from_bytes(base64.b64decode(encoded))
        transaction.partial_sign([signer], transaction.message.recent_blockhash)
    except Exception as exc:
        raise SubmissionError(f"Could not sign transaction: {exc}") from exc
    return base64.b64encode(bytes(transaction)).decode("ascii")


__all__ = ["load_signer", "sign_transaction"]
