"""
BLE Device Scanner

Lists nearby Bluetooth Low Energy devices so the desk's address can be found.
"""

from dataclasses import dataclass

from bleak import BleakScanner

from deskdrive.protocol import UUID_ADV_SERVICE


@dataclass
class ScannedDevice:
    """Information about a discovered BLE device."""

    name: str | None
    address: str
    rssi: int
    service_uuids: list[str] | None = None

    @property
    def is_desk(self) -> bool:
        """Check if this device appears to be a Linak desk."""
        if self.service_uuids and any(uuid.lower() == UUID_ADV_SERVICE for uuid in self.service_uuids):
            return True
        return bool(self.name and "desk" in self.name.lower())


async def scan_devices(
    timeout: float = 10.0,
    filter_desks: bool = False,
    adapter: str | None = None,
) -> list[ScannedDevice]:
    """
    Scan for BLE devices.

    Args:
        timeout: Scan duration in seconds
        filter_desks: If True, only return devices that appear to be desks
        adapter: Bluetooth adapter to scan on (BlueZ only), None for the default

    Returns:
        List of discovered devices, sorted by signal strength (strongest first)
    """
    kwargs = {"adapter": adapter} if adapter else {}
    discovered = await BleakScanner.discover(timeout=timeout, return_adv=True, **kwargs)

    devices = []
    for address, (device, adv_data) in discovered.items():
        scanned = ScannedDevice(
            name=device.name,
            address=address,
            rssi=adv_data.rssi,
            service_uuids=adv_data.service_uuids or None,
        )
        if filter_desks and not scanned.is_desk:
            continue
        devices.append(scanned)

    devices.sort(key=lambda d: d.rssi, reverse=True)
    return devices


def print_devices(devices: list[ScannedDevice]) -> None:
    """Print a formatted table of discovered devices."""
    if not devices:
        print("No devices found.")
        return

    print(f"\n{'Name':<25} | {'Address':<17} | {'RSSI':>8} | Notes")
    print("-" * 70)

    for device in devices:
        name = device.name or "(unknown)"
        if len(name) > 24:
            name = name[:21] + "..."
        notes = "DESK" if device.is_desk else ""
        print(f"{name:<25} | {device.address:<17} | {device.rssi:>5} dBm | {notes}")
