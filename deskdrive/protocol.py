"""
Linak desk BLE protocol: characteristic UUIDs, command opcodes and the height codec.

Protocol reverse-engineered from:
- https://github.com/anson-vandoren/linak-desk-spec
- https://github.com/j5lien/esphome-idasen-desk-controller
"""

import enum
import re
import struct
from dataclasses import dataclass

# === LINAK BLE UUIDS ===
UUID_HEIGHT = "99fa0021-338a-1024-8a49-009c0215f78a"
UUID_COMMAND = "99fa0002-338a-1024-8a49-009c0215f78a"
UUID_REFERENCE_INPUT = "99fa0031-338a-1024-8a49-009c0215f78a"

# Advertised by the desk; lets a scan tell desks apart from other peripherals
UUID_ADV_SERVICE = "99fa0001-338a-1024-8a49-009c0215f78a"

# === COMMANDS ===
CMD_UP = bytes([0x47, 0x00])
CMD_DOWN = bytes([0x46, 0x00])
CMD_STOP = bytes([0xFF, 0x00])
CMD_WAKEUP = bytes([0xFE, 0x00])
CMD_REFERENCE_RESET = bytes([0x01, 0x80])

# === CONSTANTS ===
MIN_HEIGHT = 0.62
MAX_HEIGHT = 1.27
RAW_UNITS_PER_METER = 10000.0


@dataclass(frozen=True)
class DeskProfile:
    """Fixed protocol parameters for one desk model."""

    height_uuid: str = UUID_HEIGHT
    command_uuid: str = UUID_COMMAND
    reference_input_uuid: str = UUID_REFERENCE_INPUT
    advertised_service_uuid: str = UUID_ADV_SERVICE
    min_height: float = MIN_HEIGHT
    max_height: float = MAX_HEIGHT
    cmd_up: bytes = CMD_UP
    cmd_down: bytes = CMD_DOWN
    cmd_stop: bytes = CMD_STOP
    cmd_wakeup: bytes = CMD_WAKEUP
    cmd_reference_reset: bytes = CMD_REFERENCE_RESET

    @property
    def required_uuids(self) -> tuple[str, str, str]:
        return (self.height_uuid, self.command_uuid, self.reference_input_uuid)

    def contains(self, height: float) -> bool:
        return self.min_height <= height <= self.max_height


LINAK_DESK = DeskProfile()


class Direction(enum.Enum):
    """Direction of travel."""

    UP = "up"
    DOWN = "down"

    def opcode(self, profile: DeskProfile = LINAK_DESK) -> bytes:
        return profile.cmd_up if self is Direction.UP else profile.cmd_down


def decode_height(data: bytes, min_height: float = MIN_HEIGHT) -> float:
    """
    Convert a raw height sample into meters.

    The first two bytes are an unsigned little-endian offset above the desk's
    lowest position in tenths of a millimeter. Trailing bytes are ignored.

    Raises:
        ValueError: If fewer than two bytes were supplied
    """
    if len(data) < 2:
        raise ValueError(f"height payload too short: {bytes(data).hex()}")
    raw = struct.unpack("<H", bytes(data[0:2]))[0]
    return raw / RAW_UNITS_PER_METER + min_height


def decode_height_and_speed(data: bytes, min_height: float = MIN_HEIGHT) -> tuple[float, int]:
    """Parse a height notification. Returns (height_m, raw_speed)."""
    height = decode_height(data, min_height)
    speed = struct.unpack("<h", bytes(data[2:4]))[0] if len(data) >= 4 else 0
    return height, speed


def encode_height(height: float, min_height: float = MIN_HEIGHT) -> bytes:
    """Inverse of ``decode_height``, rounded to the nearest raw unit."""
    raw = round((height - min_height) * RAW_UNITS_PER_METER)
    raw = max(0, min(0xFFFF, raw))
    return struct.pack("<H", raw)


_ADDRESS_RE = re.compile(r"^[0-9A-Fa-f]{2}([:-][0-9A-Fa-f]{2}){5}$")


@dataclass(frozen=True)
class DeviceAddress:
    """A 6-byte Bluetooth hardware address."""

    octets: bytes

    def __post_init__(self):
        if len(self.octets) != 6:
            raise ValueError(f"device address must be 6 bytes, got {len(self.octets)}")

    @classmethod
    def parse(cls, text: str) -> "DeviceAddress":
        """Parse ``C2:6D:5B:C4:17:12`` (``-`` separators also accepted)."""
        text = text.strip()
        if not _ADDRESS_RE.match(text):
            raise ValueError(f"not a Bluetooth address: {text!r}")
        return cls(bytes(int(part, 16) for part in re.split("[:-]", text)))

    def __str__(self) -> str:
        return ":".join(f"{b:02X}" for b in self.octets)
