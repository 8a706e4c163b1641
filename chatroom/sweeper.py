import asyncio
import logging
from typing import List, Optional

from .clock import Clock
from .errors import BackingStoreError
from .models import Participant, status_message
from .registry import ParticipantRegistry
from .store import MessageStore

logger = logging.getLogger(__name__)

DEPARTURE_TEXT = "sai da sala..."


class LivenessSweeper:
    """Periodically evicts idle participants and records their departure."""

    def __init__(
        self,
        registry: ParticipantRegistry,
        store: MessageStore,
        clock: Clock,
        interval: float = 15.0,
        timeout: float = 10.0,
    ):
        self.registry = registry
        self.store = store
        self.clock = clock
        self.interval = interval
        self.timeout = timeout
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> List[Participant]:
        evicted = await self.registry.evict_expired(self.clock.now(), self.timeout)
        for participant in evicted:
            logger.info("participant %r evicted after %ss idle", participant.name, self.timeout)
            try:
                await self.store.append(status_message(participant.name, DEPARTURE_TEXT))
            except BackingStoreError:
                logger.exception("could not record departure of %r", participant.name)
        return evicted

    async def _loop(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except BackingStoreError:
                # next period retries the whole sweep
                logger.exception("eviction sweep failed")

    def start(self):
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
