"""
deskdrive - closed-loop height control for Bluetooth standing desks.

This package drives IKEA Idåsen / Linak desks to a requested height over BLE,
using height feedback to stop on target and to detect the desk backing off
an obstacle.
"""

from deskdrive.commands import CommandChannel
from deskdrive.config import DeskConfig
from deskdrive.desk import Desk
from deskdrive.errors import (
    AdapterUnavailableError,
    CharacteristicMissingError,
    ConnectionExhaustedError,
    DeskError,
    DeskNotConnectedError,
    DeviceNotFoundError,
    MoveCancelledError,
    SafetyAbortError,
    SeekTimeoutError,
    SubscriptionFailedError,
    TargetOutOfRangeError,
    TargetTooHighError,
    TargetTooLowError,
    TransportError,
)
from deskdrive.feed import PollingHeightFeed, SharedHeightState, StreamingHeightFeed
from deskdrive.locator import DeviceLocator
from deskdrive.motion import MotionController
from deskdrive.protocol import (
    LINAK_DESK,
    MAX_HEIGHT,
    MIN_HEIGHT,
    DeskProfile,
    DeviceAddress,
    Direction,
    decode_height,
    encode_height,
)
from deskdrive.registry import CharacteristicRegistry

__version__ = "0.2.0"

__all__ = [
    # Session
    "Desk",
    "DeskConfig",
    # Components
    "DeviceLocator",
    "CharacteristicRegistry",
    "PollingHeightFeed",
    "StreamingHeightFeed",
    "SharedHeightState",
    "CommandChannel",
    "MotionController",
    # Protocol
    "DeskProfile",
    "DeviceAddress",
    "Direction",
    "LINAK_DESK",
    "MIN_HEIGHT",
    "MAX_HEIGHT",
    "decode_height",
    "encode_height",
    # Errors
    "DeskError",
    "TargetOutOfRangeError",
    "TargetTooHighError",
    "TargetTooLowError",
    "SafetyAbortError",
    "DeviceNotFoundError",
    "AdapterUnavailableError",
    "ConnectionExhaustedError",
    "CharacteristicMissingError",
    "SubscriptionFailedError",
    "TransportError",
    "SeekTimeoutError",
    "MoveCancelledError",
    "DeskNotConnectedError",
]
