"""Per-signer run locks.

Only one run may submit against a wallet at a time. The registry serializes runs
inside one process; separate processes sharing a wallet are not coordinated.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterator, Dict


class SignerLockRegistry:
    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, signer: str) -> asyncio.Lock:
        lock = self._locks.get(signer)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[signer] = lock
        return lock

    def is_locked(self, signer: str) -> bool:
        lock = self._locks.get(signer)
        return lock is not None and lock.locked()

    @contextlib.asynccontextmanager
    async def hold(self, signer: str) -> AsyncIterator[None]:
        async with self.lock_for(signer):
            yield


signer_locks = SignerLockRegistry()

__all__ = ["SignerLockRegistry", "signer_locks"]
