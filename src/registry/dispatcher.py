"""
Background delivery of issued tokens to the registry.

The issuance flow publishes a TokenIssued event and returns immediately;
a single worker task drains the queue and calls the registry client.
"""

import asyncio

from interfaces.core import RegistryClient, TokenIssued
from utils.logger import get_logger

logger = get_logger(__name__)


class RegistryDispatcher:
    """Queues TokenIssued events for the registry worker."""

    def __init__(self, registry: RegistryClient, max_pending: int = 100):
        """
        Args:
            registry: Client performing the proposal workflow
            max_pending: Queue capacity; events beyond it are dropped
        """
        self.registry = registry
        self._queue: asyncio.Queue[TokenIssued] = asyncio.Queue(maxsize=max_pending)
        self._worker_task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the worker task."""
        if self._worker_task is None:
            self._worker_task = asyncio.create_task(self._run())
            logger.info("Registry dispatcher started")

    async def stop(self) -> None:
        """Stop the worker task. Pending events are discarded."""
        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            self._worker_task = None
        if not self._queue.empty():
            logger.warning(f"Discarding {self._queue.qsize()} pending registry submissions")

    async def drain(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    def publish(self, event: TokenIssued) -> bool:
        """Queue an event without waiting.

        Returns:
            Whether the event was queued
        """
        if not self.registry.enabled:
            logger.warning(
                f"Registry credential not configured, skipping submission for {event.record.mint}"
            )
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.error(f"Registry queue full, dropping submission for {event.record.mint}")
            return False
        return True

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                handle = await self.registry.propose_addition(event.record)
                if handle:
                    logger.info(f"Registry pull request for {event.record.mint}: {handle.url}")
            except Exception as e:
                logger.exception(f"Registry submission for {event.record.mint} crashed: {e!s}")
            finally:
                self._queue.task_done()
