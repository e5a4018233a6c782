"""
Low-level motor commands.

A move opcode makes the desk travel for about one second unless a stop
arrives first, so callers keep re-sending it while they want motion.
"""

import asyncio
import logging

from deskdrive.errors import TransportError
from deskdrive.link import Link
from deskdrive.protocol import Direction
from deskdrive.registry import CharacteristicRegistry

logger = logging.getLogger(__name__)


class CommandChannel:
    """Writes move, stop and wakeup opcodes to the desk."""

    def __init__(self, link: Link, registry: CharacteristicRegistry):
        self.link = link
        self.registry = registry
        self.profile = registry.profile

    async def move_direction(self, direction: Direction) -> None:
        """Start (or keep) moving in ``direction``; write without response."""
        await self.link.write(self.registry.command, direction.opcode(self.profile))

    async def stop(self) -> None:
        """
        Stop desk movement.

        Writes the stop opcode and a reference-input reset together, since some
        BlueZ setups only honor the stop when both arrive. Both writes are always
        attempted; a failure of either is raised after both finish.

        Raises:
            TransportError: If either write failed
        """
        results = await asyncio.gather(
            self.link.write(self.registry.command, self.profile.cmd_stop),
            self.link.write(self.registry.reference_input, self.profile.cmd_reference_reset),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors:
            # cancellation is not a delivery failure
            if not isinstance(error, Exception):
                raise error
        if errors:
            logger.warning("Stop only partially delivered: %s", "; ".join(str(e) for e in errors))
            first = errors[0]
            if isinstance(first, TransportError):
                raise first
            raise TransportError(f"Failed to stop desk: {first}") from first
        logger.debug("Stop sent")

    async def wake(self) -> None:
        """Wake the desk controller so it accepts commands after idling."""
        await self.link.write(self.registry.command, self.profile.cmd_wakeup)
