"""Conditional-vs-spot AMM arbitrage engine."""

__version__ = "0.1.0"
