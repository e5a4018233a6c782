"""Shared fixtures: an in-memory desk standing in for the BLE peripheral."""

import asyncio
import itertools
import struct
from types import SimpleNamespace

import pytest

from deskdrive.config import DeskConfig
from deskdrive.errors import TransportError
from deskdrive.protocol import (
    CMD_DOWN,
    CMD_STOP,
    CMD_UP,
    MIN_HEIGHT,
    UUID_COMMAND,
    UUID_HEIGHT,
    UUID_REFERENCE_INPUT,
    DeviceAddress,
)

DESK_ADDRESS = "C2:6D:5B:C4:17:12"


class FakeCharacteristic:
    def __init__(self, uuid: str):
        self.uuid = uuid

    def __repr__(self):
        return f"FakeCharacteristic({self.uuid})"


class FakeDeskLink:
    """
    Simulated desk.

    While a move opcode is active the desk travels ``step`` meters per height
    read (``advance_on="read"``) or per move write (``advance_on="write"``,
    reported through notifications).
    """

    def __init__(self, height=1.0, step=0.004, uuids=None, advance_on="read"):
        self.raw = round((height - MIN_HEIGHT) * 10000)
        self.step_raw = round(step * 10000)
        self.advance_on = advance_on
        self.moving = 0
        self.connected = True
        uuids = uuids or (UUID_HEIGHT, UUID_COMMAND, UUID_REFERENCE_INPUT)
        self.chars = {u: FakeCharacteristic(u) for u in uuids}
        self.writes: list[tuple[str, bytes]] = []
        self.reads = 0
        self.subscribers = {}
        self.unsubscribed = 0
        self.fail_writes_to: set[str] = set()
        self.fail_subscribe = False
        self.fail_read_at: int | None = None

    @property
    def is_connected(self):
        return self.connected

    @property
    def height(self):
        return self.raw / 10000 + MIN_HEIGHT

    @property
    def commands(self):
        return [data for uuid, data in self.writes if uuid == UUID_COMMAND]

    def characteristics(self):
        return list(self.chars.items())

    def _advance(self):
        self.raw = max(0, self.raw + self.moving * self.step_raw)

    def payload(self):
        return struct.pack("<Hh", self.raw, self.moving * 100)

    async def read(self, char):
        self.reads += 1
        if self.fail_read_at is not None and self.reads >= self.fail_read_at:
            raise TransportError("read failed")
        if self.advance_on == "read":
            self._advance()
        return self.payload()[:2]

    async def write(self, char, data, response=False):
        self.writes.append((char.uuid, bytes(data)))
        if char.uuid in self.fail_writes_to:
            raise TransportError(f"write to {char.uuid} failed")
        if char.uuid != UUID_COMMAND:
            return
        if data == CMD_UP:
            self.moving = 1
        elif data == CMD_DOWN:
            self.moving = -1
        elif data == CMD_STOP:
            self.moving = 0
        if self.advance_on == "write" and self.moving:
            self._advance()
            self.notify(self.payload())

    async def subscribe(self, char, callback):
        if self.fail_subscribe:
            raise TransportError("subscribe failed")
        self.subscribers[char.uuid] = callback

    async def unsubscribe(self, char):
        self.unsubscribed += 1
        self.subscribers.pop(char.uuid, None)

    def notify(self, data: bytes):
        for callback in list(self.subscribers.values()):
            callback(data)

    async def disconnect(self):
        self.connected = False

    def describe(self):
        return "id: fake\nname: Desk 1234"


class ScriptedDeskLink(FakeDeskLink):
    """Desk whose height reads follow a fixed script (last value repeats)."""

    def __init__(self, heights, **kwargs):
        super().__init__(height=heights[0], **kwargs)
        self.script = list(heights)

    async def read(self, char):
        self.reads += 1
        if self.fail_read_at is not None and self.reads >= self.fail_read_at:
            raise TransportError("read failed")
        index = min(self.reads - 1, len(self.script) - 1)
        self.raw = round((self.script[index] - MIN_HEIGHT) * 10000)
        return struct.pack("<H", self.raw)


def fake_clock(step=0.1):
    """Monotonic clock advancing ``step`` seconds per call."""
    counter = itertools.count()
    return lambda: next(counter) * step


async def no_sleep(_seconds):
    await asyncio.sleep(0)


@pytest.fixture
def config():
    return DeskConfig(
        address=DeviceAddress.parse(DESK_ADDRESS),
        scan_settle=0,
        retry_backoff=0,
        poll_interval=0,
    )


@pytest.fixture
def desk_link():
    return FakeDeskLink(height=1.12)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Environment without DESK_* variables or a stray .env file."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "DESK_ADDRESS",
        "DESK_ADAPTER",
        "DESK_FEEDBACK",
        "DESK_RETRY_COUNT",
        "DESK_SEEK_TIMEOUT",
        "DESK_SIT_HEIGHT",
        "DESK_STAND_HEIGHT",
    ):
        # setenv first so teardown also removes values a .env file loads
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


def ble_device(address, name="Desk 1234"):
    return SimpleNamespace(address=address, name=name)
