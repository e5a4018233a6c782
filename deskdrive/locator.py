"""
Find the desk on the air and open a connection to it.
"""

import asyncio
import logging
from contextlib import suppress

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from deskdrive.config import DeskConfig
from deskdrive.errors import (
    AdapterUnavailableError,
    ConnectionExhaustedError,
    DeviceNotFoundError,
)
from deskdrive.link import BleakLink
from deskdrive.protocol import DeviceAddress

logger = logging.getLogger(__name__)


class DeviceLocator:
    """Scans for one desk by hardware address and connects to it with bounded retries."""

    def __init__(self, config: DeskConfig, sleep=asyncio.sleep):
        self.config = config
        self._sleep = sleep

    def _backend_kwargs(self) -> dict:
        # Only BlueZ understands adapter selection; elsewhere bleak uses the default one
        return {"adapter": self.config.adapter} if self.config.adapter else {}

    async def scan(self) -> BLEDevice:
        """
        Scan without a filter for the settle window and pick out the desk.

        Raises:
            AdapterUnavailableError: If scanning cannot start (no usable adapter)
            DeviceNotFoundError: If the desk did not advertise during the window
        """
        target = self.config.address
        logger.info("Searching for %s (%.1fs)...", target, self.config.scan_settle)

        try:
            scanner = BleakScanner(**self._backend_kwargs())
            await scanner.start()
        except (BleakError, OSError) as e:
            raise AdapterUnavailableError(f"No usable Bluetooth adapter: {e}") from e

        try:
            await self._sleep(self.config.scan_settle)
        finally:
            try:
                await scanner.stop()
            except BleakError as e:
                logger.debug("Stopping scan failed: %s", e)

        for device in scanner.discovered_devices:
            if _address_of(device) == target:
                logger.info("Found: %s (%s)", device.name, device.address)
                return device

        raise DeviceNotFoundError(f"Desk {target} not found. Is it powered on?")

    async def locate_and_connect(self, connect: bool = True) -> BleakLink:
        """
        Locate the desk and, unless ``connect`` is False, connect to it.

        Returns:
            A link over the desk; unconnected when ``connect`` is False

        Raises:
            AdapterUnavailableError: If no adapter is available
            DeviceNotFoundError: If the desk cannot be found
            ConnectionExhaustedError: If every connection attempt failed
        """
        device = await self.scan()
        link = BleakLink(device)
        if not connect:
            return link

        retries = self.config.retry_count
        last_error: Exception | None = None
        for attempt in range(1, retries + 1):
            logger.info("Connecting%s...", f" (attempt {attempt})" if attempt > 1 else "")
            client = BleakClient(
                device,
                disconnected_callback=link.on_disconnect,
                timeout=self.config.connect_timeout,
                **self._backend_kwargs(),
            )
            try:
                await client.connect()
                # bleak resolves the GATT table inside connect(); touching it
                # confirms discovery finished before the link is handed out
                if not client.services.characteristics:
                    raise BleakError("service discovery returned no characteristics")
            except (BleakError, asyncio.TimeoutError, OSError) as e:
                last_error = e
                logger.warning("Connection attempt %d/%d failed: %s", attempt, retries, e)
                # connect() may have succeeded before discovery came back empty
                with suppress(BleakError, asyncio.TimeoutError):
                    await client.disconnect()
                is_last_attempt = attempt == retries
                if not is_last_attempt:
                    await self._sleep(self.config.retry_backoff)
                continue

            link.client = client
            logger.info("Connected to %s", link.name)
            return link

        raise ConnectionExhaustedError(
            retries, f"Could not connect to {self.config.address} after {retries} attempts: {last_error}"
        ) from last_error


def _address_of(device: BLEDevice) -> DeviceAddress | None:
    # CoreBluetooth reports UUIDs instead of hardware addresses; those never match
    try:
        return DeviceAddress.parse(device.address)
    except ValueError:
        return None
