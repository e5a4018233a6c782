"""
High-level desk session: connect, query and move.
"""

import asyncio
import logging

from deskdrive.commands import CommandChannel
from deskdrive.config import DeskConfig
from deskdrive.errors import DeskNotConnectedError
from deskdrive.feed import PollingHeightFeed, make_feed
from deskdrive.link import Link
from deskdrive.locator import DeviceLocator
from deskdrive.motion import MotionController
from deskdrive.protocol import Direction
from deskdrive.registry import CharacteristicRegistry

logger = logging.getLogger(__name__)


class Desk:
    """Controller for IKEA Idåsen / Linak standing desk."""

    def __init__(self, config: DeskConfig):
        self.config = config
        self.link: Link | None = None
        self.feed: PollingHeightFeed | None = None
        self.commands: CommandChannel | None = None
        self.motion: MotionController | None = None

    async def __aenter__(self) -> "Desk":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self.link is not None and self.link.is_connected

    async def connect(self) -> None:
        """
        Find and connect to the desk, then resolve its characteristics.

        Raises:
            DeviceNotFoundError: If the desk cannot be found
            ConnectionExhaustedError: If connection fails after retries
            CharacteristicMissingError: If the device is not a compatible desk
        """
        link = await DeviceLocator(self.config).locate_and_connect(connect=True)
        try:
            self.attach(link)
            await self.commands.wake()
        except BaseException:
            await link.disconnect()
            self.link = None
            raise

    def attach(self, link: Link) -> None:
        """Build the control stack over an already connected link."""
        registry = CharacteristicRegistry.resolve(link, self.config.profile)
        self.link = link
        self.feed = make_feed(link, registry, self.config)
        self.commands = CommandChannel(link, registry)
        self.motion = MotionController(self.feed, self.commands, self.config)

    async def disconnect(self) -> None:
        if self.link is not None:
            await self.link.disconnect()
        self.link = self.feed = self.commands = self.motion = None

    def _require_connected(self) -> None:
        if not self.is_connected:
            raise DeskNotConnectedError("Desk is not connected")

    async def get_height(self) -> float:
        """Get current desk height in meters."""
        self._require_connected()
        return await self.feed.read_height()

    async def move_direction(self, direction: Direction) -> None:
        self._require_connected()
        await self.commands.move_direction(direction)

    async def stop(self) -> None:
        """Emergency stop desk movement."""
        self._require_connected()
        await self.commands.stop()
        logger.info("Stopped")

    async def move_to_target(self, target: float, cancel: asyncio.Event | None = None) -> float:
        self._require_connected()
        return await self.motion.move_to_target(target, cancel)

    async def sit(self) -> float:
        return await self.move_to_target(self.config.sit_height)

    async def stand(self) -> float:
        return await self.move_to_target(self.config.stand_height)

    async def toggle(self) -> float:
        """Go to the sitting height when standing, otherwise to the standing height."""
        current = await self.get_height()
        logger.debug("Starting desk position %.4fm", current)
        if current > self.config.toggle_threshold:
            return await self.sit()
        return await self.stand()

    def describe(self) -> str:
        self._require_connected()
        return self.link.describe()
