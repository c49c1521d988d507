"""Sync outbox: per-mutation sync state for optimistic edits.

Edits that update local state before persisting (renames, content edits,
reorders) go through the outbox. Each mutation key tracks the latest
attempt as pending, synced or failed, and failed mutations can be replayed.
A newer mutation for the same key supersedes an older in-flight one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from synthesis.core.logging import get_logger

logger = get_logger(__name__)


class SyncState(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


@dataclass
class Mutation:
    key: str
    apply: Callable[[], Awaitable[None]]
    description: str = ""
    state: SyncState = SyncState.PENDING
    error: str | None = None
    attempts: int = 0


class SyncOutbox:
    def __init__(self):
        self._mutations: dict[str, Mutation] = {}

    async def submit(
        self,
        key: str,
        apply: Callable[[], Awaitable[None]],
        description: str = "",
    ) -> bool:
        """
        Record and run a mutation.

        Args:
            key: Identity of the field being synced, e.g. ``project:<id>:name``
            apply: Coroutine factory performing the store write
            description: Human-readable label for logs

        Returns:
            True if the write landed
        """
        mutation = Mutation(key=key, apply=apply, description=description or key)
        self._mutations[key] = mutation
        return await self._run(mutation)

    async def _run(self, mutation: Mutation) -> bool:
        mutation.state = SyncState.PENDING
        mutation.attempts += 1
        try:
            await mutation.apply()
        except Exception as e:
            if self._mutations.get(mutation.key) is mutation:
                mutation.state = SyncState.FAILED
                mutation.error = str(e)
            logger.error(f"Sync failed for {mutation.description}: {e}")
            return False

        if self._mutations.get(mutation.key) is mutation:
            mutation.state = SyncState.SYNCED
            mutation.error = None
        return True

    def state(self, key: str) -> SyncState | None:
        mutation = self._mutations.get(key)
        return mutation.state if mutation else None

    def failed(self) -> list[Mutation]:
        return [m for m in self._mutations.values() if m.state == SyncState.FAILED]

    def summary(self) -> dict[str, int]:
        counts = {state.value: 0 for state in SyncState}
        for mutation in self._mutations.values():
            counts[mutation.state.value] += 1
        return counts

    async def retry_failed(self) -> int:
        """Replay failed mutations; returns how many are now synced."""
        synced = 0
        for mutation in self.failed():
            if await self._run(mutation):
                synced += 1
        return synced
