"""
Exception hierarchy for desk control.

Every error the library raises derives from ``DeskError`` so callers can
catch the whole family, while ``SafetyAbortError`` stays distinguishable
from transport and hardware failures.
"""


class DeskError(Exception):
    """Base exception for desk controller errors."""

    pass


class TargetOutOfRangeError(DeskError, ValueError):
    """Raised when a requested height lies outside the desk's travel range."""

    def __init__(self, target: float, limit: float, message: str):
        super().__init__(message)
        self.target = target
        self.limit = limit


class TargetTooHighError(TargetOutOfRangeError):
    """Raised when the target height is above the desk maximum."""

    def __init__(self, target: float, limit: float):
        super().__init__(target, limit, f"target height {target:.3f}m too high (max {limit:.3f}m)")


class TargetTooLowError(TargetOutOfRangeError):
    """Raised when the target height is below the desk minimum."""

    def __init__(self, target: float, limit: float):
        super().__init__(target, limit, f"target height {target:.3f}m too low (min {limit:.3f}m)")


class SafetyAbortError(DeskError):
    """
    Raised when the desk reversed on its own while seeking.

    The desk firmware backs off when it presses against an obstacle. The desk
    is stopped and intact; the caller may retry once the obstacle is cleared.
    """

    def __init__(self, height: float, target: float):
        super().__init__(f"desk move safety kicked in at {height:.4f}m (target {target:.3f}m)")
        self.height = height
        self.target = target


class DeviceNotFoundError(DeskError):
    """Raised when the desk cannot be found via BLE scan."""

    pass


class AdapterUnavailableError(DeskError):
    """Raised when no usable Bluetooth adapter exists on this host."""

    pass


class ConnectionExhaustedError(DeskError):
    """Raised when every connection attempt to the desk failed."""

    def __init__(self, attempts: int, message: str):
        super().__init__(message)
        self.attempts = attempts


class CharacteristicMissingError(DeskError):
    """Raised when the peripheral lacks a characteristic the desk protocol needs."""

    def __init__(self, missing: list[str]):
        super().__init__(f"peripheral is missing required characteristics: {', '.join(missing)}")
        self.missing = missing


class SubscriptionFailedError(DeskError):
    """Raised when height notifications cannot be subscribed to."""

    pass


class TransportError(DeskError):
    """Raised when BLE communication fails during operation."""

    pass


class DeskNotConnectedError(TransportError):
    """Raised when an operation needs a connected desk but there is none, or the link dropped."""

    pass


class SeekTimeoutError(DeskError):
    """Raised when the desk did not reach its target within the seek timeout."""

    def __init__(self, height: float, target: float, timeout: float):
        super().__init__(
            f"desk did not reach {target:.3f}m within {timeout:.1f}s (stopped at {height:.4f}m)"
        )
        self.height = height
        self.target = target
        self.timeout = timeout


class MoveCancelledError(DeskError):
    """Raised when a move was cancelled by the caller; the desk has been stopped."""

    def __init__(self, height: float):
        super().__init__(f"move cancelled at {height:.4f}m")
        self.height = height
