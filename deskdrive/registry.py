"""
Resolve the desk's characteristics once per connection.
"""

import logging
from typing import Any

from deskdrive.errors import CharacteristicMissingError
from deskdrive.link import Link
from deskdrive.protocol import LINAK_DESK, DeskProfile

logger = logging.getLogger(__name__)


class CharacteristicRegistry:
    """Maps each required characteristic UUID to the handle discovered on the peripheral."""

    def __init__(self, handles: dict[str, Any], profile: DeskProfile = LINAK_DESK):
        missing = [uuid for uuid in profile.required_uuids if uuid.lower() not in handles]
        if missing:
            raise CharacteristicMissingError(missing)
        self._handles = handles
        self.profile = profile

    @classmethod
    def resolve(cls, link: Link, profile: DeskProfile = LINAK_DESK) -> "CharacteristicRegistry":
        """
        Build the registry from the characteristics the link discovered.

        Raises:
            CharacteristicMissingError: If the peripheral is not a compatible desk
        """
        wanted = {uuid.lower() for uuid in profile.required_uuids}
        handles = {}
        for uuid, handle in link.characteristics():
            uuid = str(uuid).lower()
            if uuid in wanted and uuid not in handles:
                handles[uuid] = handle
        registry = cls(handles, profile)
        logger.debug("Resolved characteristics: %s", ", ".join(sorted(handles)))
        return registry

    def get(self, uuid: str) -> Any:
        return self._handles[uuid.lower()]

    @property
    def height(self) -> Any:
        return self.get(self.profile.height_uuid)

    @property
    def command(self) -> Any:
        return self.get(self.profile.command_uuid)

    @property
    def reference_input(self) -> Any:
        return self.get(self.profile.reference_input_uuid)
