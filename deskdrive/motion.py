"""
Closed-loop positioning.

The desk has no force sensor we can read, so height feedback is both the
arrival test and the obstacle test: when the desk's own anti-collision
feature kicks in it reverses, and that reversal shows up in the samples.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from deskdrive.commands import CommandChannel
from deskdrive.config import DeskConfig
from deskdrive.errors import (
    DeskError,
    MoveCancelledError,
    SafetyAbortError,
    SeekTimeoutError,
    TargetTooHighError,
    TargetTooLowError,
    TransportError,
)
from deskdrive.feed import PollingHeightFeed, Sampler
from deskdrive.protocol import Direction

logger = logging.getLogger(__name__)


class MotionController:
    """Moves the desk to a target height using height feedback."""

    def __init__(
        self,
        feed: PollingHeightFeed,
        commands: CommandChannel,
        config: DeskConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.feed = feed
        self.commands = commands
        self.config = config
        self._clock = clock
        self._sleep = sleep

    def validate_target(self, target: float) -> None:
        profile = self.config.profile
        if target > profile.max_height:
            raise TargetTooHighError(target, profile.max_height)
        if target < profile.min_height:
            raise TargetTooLowError(target, profile.min_height)

    async def move_to_target(self, target: float, cancel: asyncio.Event | None = None) -> float:
        """
        Move the desk to ``target`` meters and stop it there.

        Args:
            target: Target height in meters
            cancel: Optional event; setting it stops the desk and aborts the move

        Returns:
            The height sampled on arrival

        Raises:
            TargetTooHighError / TargetTooLowError: Before any command is sent
            SafetyAbortError: If the desk reversed on its own (obstacle)
            SeekTimeoutError: If the target was not reached in time
            MoveCancelledError: If ``cancel`` was set
            TransportError: If communication failed mid-move
        """
        self.validate_target(target)

        async with self.feed.session() as sample:
            try:
                return await self._seek(target, sample, cancel)
            except asyncio.CancelledError:
                logger.warning("Move interrupted, stopping desk")
                await asyncio.shield(self._stop_after_failure())
                raise
            except TransportError:
                await self._stop_after_failure()
                raise

    async def _stop_after_failure(self) -> None:
        try:
            await self.commands.stop()
        except DeskError as e:
            logger.error("Could not stop desk: %s", e)

    async def _seek(self, target: float, sample: Sampler, cancel: asyncio.Event | None) -> float:
        cfg = self.config

        previous_height = await sample()
        previous_time = self._clock()
        deadline = previous_time + cfg.seek_timeout if cfg.seek_timeout is not None else None
        will_move_up = target > previous_height
        stopped_last_cycle = False

        logger.info("%.3fm -> %.3fm (%s)", previous_height, target, "up" if will_move_up else "down")

        while True:
            if cancel is not None and cancel.is_set():
                await self.commands.stop()
                raise MoveCancelledError(previous_height)

            height = await sample()
            now = self._clock()
            difference = target - height
            distance = abs(difference)

            elapsed_ms = (now - previous_time) * 1000
            speed = abs(height - previous_height) / elapsed_ms * 100 if elapsed_ms > 0 else 0.0

            logger.debug(
                "target=%.4f height=%.4f difference=%.4f speed=%.4f", target, height, difference, speed
            )

            # Small moves the wrong way happen while correcting near the target
            reversed_direction = height < previous_height if will_move_up else height > previous_height
            if reversed_direction and distance > cfg.correction_threshold:
                await self.commands.stop()
                logger.warning("Stopped moving because desk safety feature kicked in at %.4fm", height)
                raise SafetyAbortError(height, target)

            if distance <= cfg.arrival_tolerance:
                await self.commands.stop()
                logger.info("Reached target %.3fm, actual %.4fm", target, height)
                return height

            if deadline is not None and now > deadline:
                await self.commands.stop()
                raise SeekTimeoutError(height, target, cfg.seek_timeout)

            # Stop early to coast into the target; move again next cycle if still short
            if distance < max(speed / 2, cfg.correction_threshold) and not stopped_last_cycle:
                await self.commands.stop()
                stopped_last_cycle = True
            else:
                await self.commands.move_direction(Direction.UP if difference > 0 else Direction.DOWN)
                stopped_last_cycle = False

            previous_height = height
            previous_time = now
            await self._sleep(cfg.poll_interval)
