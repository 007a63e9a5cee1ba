import asyncio
import logging
from typing import Optional

from .adapter import adapt_election
from .errors import AdapterFailure
from .schemas import Election

logger = logging.getLogger(__name__)


class Registry:
    """The newest-first election snapshot plus the caller's selection."""

    def __init__(self):
        self.elections: tuple[Election, ...] = ()
        self.selected_id: Optional[int] = None

    def get(self, election_id: int) -> Optional[Election]:
        return next((e for e in self.elections if e.id == election_id), None)

    @property
    def selected(self) -> Optional[Election]:
        if self.selected_id is None:
            return None
        return self.get(self.selected_id)

    def select(self, election_id: Optional[int]) -> Optional[Election]:
        self.selected_id = election_id
        return self.selected

    def replace(self, elections: tuple[Election, ...]) -> None:
        """Swap in a new snapshot, keeping the selection by id."""
        self.elections = elections
        if self.selected_id is None and elections:
            self.selected_id = elections[0].id


class RegistrySynchronizer:
    def __init__(self, gateway, registry: Registry):
        self.gateway = gateway
        self.registry = registry

    async def _adapt(self, election_id: int) -> Optional[Election]:
        try:
            return await adapt_election(self.gateway, election_id)
        except AdapterFailure as exc:
            logger.warning(f"skipping {exc}")
            return None

    async def refresh(self) -> tuple[Election, ...]:
        """Rebuild the registry from the chain.

        A ConnectionFailure anywhere abandons the pass and leaves the
        previous snapshot in place, and the reads still outstanding are
        cancelled and collected before it propagates.
        """
        count = await self.gateway.elections_count()
        tasks = [asyncio.ensure_future(self._adapt(i)) for i in range(1, count + 1)]
        try:
            adapted = await asyncio.gather(*tasks)
        finally:
            pending = [t for t in tasks if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        elections = tuple(e for e in reversed(adapted) if e is not None)
        skipped = count - len(elections)
        if skipped:
            logger.warning(f"{skipped} of {count} elections could not be adapted")
        self.registry.replace(elections)
        logger.info(f"registry refreshed: {len(elections)} elections")
        return elections
