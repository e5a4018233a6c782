"""
Runtime configuration for a desk session.

Values come from the caller or from ``DESK_*`` environment variables, with a
``.env`` file in the working directory loaded first.
"""

import os
from dataclasses import dataclass, field

from dotenv import find_dotenv, load_dotenv

from deskdrive.protocol import LINAK_DESK, DeskProfile, DeviceAddress

FEEDBACK_POLL = "poll"
FEEDBACK_NOTIFY = "notify"


@dataclass
class DeskConfig:
    """Connection, control-loop and preset settings for one desk."""

    address: DeviceAddress
    adapter: str | None = None
    profile: DeskProfile = field(default_factory=lambda: LINAK_DESK)

    # Discovery and connection
    scan_settle: float = 3.0
    retry_count: int = 3
    retry_backoff: float = 0.05
    connect_timeout: float = 10.0

    # Control loop
    feedback: str = FEEDBACK_POLL
    arrival_tolerance: float = 0.003
    correction_threshold: float = 0.010
    poll_interval: float = 0.05
    seek_timeout: float | None = 60.0
    max_notifications: int = 10000

    # Presets
    sit_height: float = 0.74
    stand_height: float = 1.12
    toggle_threshold: float = 1.0

    def __post_init__(self):
        if self.feedback not in (FEEDBACK_POLL, FEEDBACK_NOTIFY):
            raise ValueError(
                f"feedback must be '{FEEDBACK_POLL}' or '{FEEDBACK_NOTIFY}', got {self.feedback!r}"
            )
        if self.retry_count < 1:
            raise ValueError(f"retry_count must be at least 1, got {self.retry_count}")
        if self.correction_threshold <= 0:
            raise ValueError("correction_threshold must be positive")

    @classmethod
    def from_env(cls, **overrides) -> "DeskConfig":
        """
        Build a config from the environment.

        Args:
            **overrides: Explicit values that win over the environment

        Raises:
            ValueError: If DESK_ADDRESS is missing or a variable is malformed
        """
        load_dotenv(find_dotenv(usecwd=True))

        values: dict = {}
        address = overrides.pop("address", None) or os.getenv("DESK_ADDRESS")
        if not address:
            raise ValueError("DESK_ADDRESS is not set. Add it to your environment or .env file.")
        if not isinstance(address, DeviceAddress):
            address = _parse("DESK_ADDRESS", address, DeviceAddress.parse)
        values["address"] = address

        if adapter := os.getenv("DESK_ADAPTER"):
            values["adapter"] = adapter
        if feedback := os.getenv("DESK_FEEDBACK"):
            values["feedback"] = feedback.lower()
        if retries := os.getenv("DESK_RETRY_COUNT"):
            values["retry_count"] = _parse("DESK_RETRY_COUNT", retries, int)
        if timeout := os.getenv("DESK_SEEK_TIMEOUT"):
            if timeout.lower() == "none":
                values["seek_timeout"] = None
            else:
                values["seek_timeout"] = _parse("DESK_SEEK_TIMEOUT", timeout, float)
        if sit := os.getenv("DESK_SIT_HEIGHT"):
            values["sit_height"] = _parse("DESK_SIT_HEIGHT", sit, float)
        if stand := os.getenv("DESK_STAND_HEIGHT"):
            values["stand_height"] = _parse("DESK_STAND_HEIGHT", stand, float)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _parse(name: str, value: str, convert):
    try:
        return convert(value)
    except ValueError as e:
        raise ValueError(f"Invalid {name}={value!r}: {e}") from e
