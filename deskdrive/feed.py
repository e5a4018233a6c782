"""
Height feedback.

Two strategies feed the motion controller: polling reads the height
characteristic on every sample, streaming keeps a shared value current from
height notifications and samples that value instead.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from deskdrive.config import FEEDBACK_NOTIFY, DeskConfig
from deskdrive.errors import DeskError, SubscriptionFailedError, TransportError
from deskdrive.link import Link
from deskdrive.protocol import decode_height
from deskdrive.registry import CharacteristicRegistry

logger = logging.getLogger(__name__)

Sampler = Callable[[], Awaitable[float]]

_END_OF_STREAM = None


class SharedHeightState:
    """Latest known height, written by the notification monitor and read by the controller."""

    def __init__(self, height: float):
        self._lock = asyncio.Lock()
        self._height = height
        self.updates = 0
        self.updated_at = time.monotonic()

    async def set(self, height: float) -> None:
        async with self._lock:
            self._height = height
            self.updates += 1
            self.updated_at = time.monotonic()

    async def get(self) -> float:
        async with self._lock:
            return self._height


class PollingHeightFeed:
    """Reads the height characteristic on demand."""

    def __init__(self, link: Link, registry: CharacteristicRegistry):
        self.link = link
        self.registry = registry

    async def read_height(self) -> float:
        """Read the current desk height in meters."""
        data = await self.link.read(self.registry.height)
        try:
            return decode_height(data, self.registry.profile.min_height)
        except ValueError as e:
            raise TransportError(f"Unreadable height sample: {e}") from e

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Sampler]:
        yield self.read_height


class StreamingHeightFeed(PollingHeightFeed):
    """Keeps a ``SharedHeightState`` current from height notifications."""

    def __init__(self, link: Link, registry: CharacteristicRegistry, max_notifications: int = 10000):
        super().__init__(link, registry)
        self.max_notifications = max_notifications
        self._queue: asyncio.Queue | None = None

    async def start_monitor(self, state: SharedHeightState) -> asyncio.Task:
        """
        Subscribe to height notifications and update ``state`` in the background.

        Returns:
            The monitor task; pass it to ``stop_monitor`` when done

        Raises:
            SubscriptionFailedError: If the desk refused the subscription
        """
        if self._queue is not None:
            raise RuntimeError("height monitor already running")

        queue: asyncio.Queue = asyncio.Queue()
        try:
            await self.link.subscribe(self.registry.height, queue.put_nowait)
        except DeskError as e:
            raise SubscriptionFailedError(f"Cannot subscribe to desk position: {e}") from e

        self._queue = queue
        return asyncio.create_task(self._monitor(queue, state), name="desk-height-monitor")

    async def _monitor(self, queue: asyncio.Queue, state: SharedHeightState) -> None:
        consumed = 0
        min_height = self.registry.profile.min_height
        while consumed < self.max_notifications:
            data = await queue.get()
            if data is _END_OF_STREAM:
                break
            consumed += 1
            try:
                height = decode_height(data, min_height)
            except ValueError as e:
                logger.warning("Skipping malformed height notification: %s", e)
                continue
            await state.set(height)
        else:
            logger.warning("Height monitor reached its cap of %d notifications", self.max_notifications)
        logger.debug("Height monitor finished after %d notifications", consumed)

    async def stop_monitor(self, task: asyncio.Task) -> None:
        """Unsubscribe, end the stream and wait for the monitor to finish."""
        try:
            await self.link.unsubscribe(self.registry.height)
        except DeskError as e:
            logger.warning("Could not unsubscribe from height notifications: %s", e)
        finally:
            if self._queue is not None:
                self._queue.put_nowait(_END_OF_STREAM)
                self._queue = None
            await task

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Sampler]:
        state = SharedHeightState(await self.read_height())
        task = await self.start_monitor(state)
        try:
            yield state.get
        finally:
            await self.stop_monitor(task)


def make_feed(link: Link, registry: CharacteristicRegistry, config: DeskConfig) -> PollingHeightFeed:
    """Pick the feedback strategy the config asks for."""
    if config.feedback == FEEDBACK_NOTIFY:
        return StreamingHeightFeed(link, registry, config.max_notifications)
    return PollingHeightFeed(link, registry)
