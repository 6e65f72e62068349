"""Exception types raised across the arbitrage engine.

Fatal setup errors abort a run before any state-changing action. The remaining
types are raised by adapters and caught by the sizer (skip the candidate) or the
orchestrator (abort remaining legs).
"""

from __future__ import annotations


class ArbitrageError(Exception):
    """Base class for engine errors."""


class FatalSetupError(ArbitrageError):
    """A precondition failed before any leg was submitted."""


class SignerUnavailable(FatalSetupError):
    """The wallet key file is missing or unreadable."""


class MarketConfigUnavailable(FatalSetupError):
    """Market configuration could not be retrieved."""


class MissingSpotPool(FatalSetupError):
    """The market has no spot pool to trade against."""


class InsufficientPriceCoverage(FatalSetupError):
    """Fewer leg prices were read than tradeable legs configured."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"Could not fetch prices for all {expected} markets. Got {received}.")
        self.expected = expected
        self.received = received


class PoolUnavailable(ArbitrageError):
    """A pool account could not be read or was malformed."""


class VaultUnavailable(ArbitrageError):
    """The vault rejected or could not process a split/merge."""


class InsufficientBalance(ArbitrageError):
    """The owner lacks the funds required for an operation."""


class SimulationError(ArbitrageError):
    """A quote could not be produced for a hypothetical swap."""


class SubmissionError(ArbitrageError):
    """A built transaction could not be signed, sent or confirmed."""


__all__ = [
    "ArbitrageError",
    "FatalSetupError",
    "SignerUnavailable",
    "MarketConfigUnavailable",
    "MissingSpotPool",
    "InsufficientPriceCoverage",
    "PoolUnavailable",
    "VaultUnavailable",
    "InsufficientBalance",
    "SimulationError",
    "SubmissionError",
]
