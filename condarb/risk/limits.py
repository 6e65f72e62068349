"""Capital limits for a single arbitrage run."""

from dataclasses import dataclass


@dataclass
class CapitalLimits:
    """Bounds the capital a run may commit, in raw quote units."""

    hard_cap: int
    safety_fraction: float = 0.95

    def max_usable_capital(self, available_balance: int) -> int:
        """``min(safety_fraction * balance, hard_cap)``, never negative."""

        if available_balance <= 0:
            return 0
        return max(0, min(int(available_balance * self.safety_fraction), self.hard_cap))
