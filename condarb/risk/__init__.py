"""Risk controls for arbitrage runs."""

from .limits import CapitalLimits

__all__ = [
    "CapitalLimits",
]
