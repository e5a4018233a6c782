"""
Narrow capability interface over a BLE peripheral.

The core only ever reads, writes and subscribes through a ``Link``. The
characteristic objects it hands out are opaque handles.
"""

import asyncio
import logging
import warnings
from collections.abc import Callable, Iterable
from contextlib import suppress
from typing import Any, Protocol

from bleak import BleakClient
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from deskdrive.errors import DeskNotConnectedError, TransportError

# Suppress bleak's internal asyncio warnings (race condition in CoreBluetooth backend)
warnings.filterwarnings("ignore", message=".*invalid state.*")
logging.getLogger("bleak").setLevel(logging.ERROR)

logger = logging.getLogger(__name__)

NotifyCallback = Callable[[bytes], None]


class Link(Protocol):
    """What the desk core needs from a connected peripheral."""

    @property
    def is_connected(self) -> bool: ...

    def characteristics(self) -> Iterable[tuple[str, Any]]: ...

    async def read(self, char: Any) -> bytes: ...

    async def write(self, char: Any, data: bytes, response: bool = False) -> None: ...

    async def subscribe(self, char: Any, callback: NotifyCallback) -> None: ...

    async def unsubscribe(self, char: Any) -> None: ...

    async def disconnect(self) -> None: ...

    def describe(self) -> str: ...


class BleakLink:
    """``Link`` implementation over a bleak client."""

    def __init__(self, device: BLEDevice, client: BleakClient | None = None):
        self.device = device
        self.client = client
        self._disconnecting = False

    @property
    def name(self) -> str:
        return self.device.name or "(unknown)"

    @property
    def is_connected(self) -> bool:
        return self.client is not None and self.client.is_connected

    def on_disconnect(self, client: BleakClient):
        """Handle unexpected disconnection."""
        if not self._disconnecting:
            logger.warning("Disconnected unexpectedly from %s", self.device.address)

    def _require_client(self) -> BleakClient:
        if not self.is_connected:
            raise DeskNotConnectedError(f"Not connected to {self.device.address}")
        return self.client

    def characteristics(self) -> list[tuple[str, Any]]:
        client = self._require_client()
        return [(char.uuid, char) for char in client.services.characteristics.values()]

    async def read(self, char: Any) -> bytes:
        client = self._require_client()
        try:
            return bytes(await client.read_gatt_char(char))
        except (BleakError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to read {_uuid(char)}: {e}") from e

    async def write(self, char: Any, data: bytes, response: bool = False) -> None:
        client = self._require_client()
        try:
            await client.write_gatt_char(char, data, response=response)
        except (BleakError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to write {_uuid(char)}: {e}") from e

    async def subscribe(self, char: Any, callback: NotifyCallback) -> None:
        client = self._require_client()

        def handler(sender, data: bytearray):
            callback(bytes(data))

        try:
            await client.start_notify(char, handler)
        except (BleakError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to subscribe to {_uuid(char)}: {e}") from e

    async def unsubscribe(self, char: Any) -> None:
        if not self.is_connected:
            return
        try:
            await self.client.stop_notify(char)
        except (BleakError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to unsubscribe from {_uuid(char)}: {e}") from e

    async def disconnect(self) -> None:
        """Disconnect from the desk gracefully."""
        self._disconnecting = True
        if self.client:
            with suppress(BleakError, asyncio.TimeoutError):
                await self.client.disconnect()
            logger.info("Disconnected from %s", self.device.address)

    def describe(self) -> str:
        lines = [f"id: {self.device.address}", f"name: {self.name}", "", "characteristics:"]
        if not self.is_connected:
            lines.append("  (not connected)")
            return "\n".join(lines)
        for char in self.client.services.characteristics.values():
            lines.append(f"  uuid: {char.uuid}")
            lines.append(f"  service uuid: {char.service_uuid}")
            lines.append(f"  properties: {', '.join(char.properties)}")
            lines.append("")
        return "\n".join(lines)


def _uuid(char: Any) -> str:
    return getattr(char, "uuid", str(char))
