"""Execution layer: signing, submission, vault operations and leg sequencing."""

from .orchestrator import ExecutionOrchestrator
from .results import ExecutionResult, LegKind, LegResult, RunState
from .submitter import ApiTransactionSubmitter, SubmissionReceipt, TransactionSubmitter
from .vault import VaultAdapter

__all__ = [
    "ExecutionOrchestrator",
    "ExecutionResult",
    "LegKind",
    "LegResult",
    "RunState",
    "ApiTransactionSubmitter",
    "SubmissionReceipt",
    "TransactionSubmitter",
    "VaultAdapter",
]
