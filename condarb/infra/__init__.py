"""Infrastructure utilities: config, logging, metrics, journal, locks and blocking calls."""

from .aio import call_blocking
from .config import AppConfig, load_config
from .journal import LegJournal
from .locks import SignerLockRegistry, signer_locks
from .logging import configure_logging
from .metrics import RunMetrics

__all__ = [
    "call_blocking",
    "AppConfig",
    "load_config",
    "LegJournal",
    "SignerLockRegistry",
    "signer_locks",
    "configure_logging",
    "RunMetrics",
]
