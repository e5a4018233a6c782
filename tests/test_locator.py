"""Tests for desk discovery and connection retries with bleak replaced by fakes."""

from types import SimpleNamespace

import pytest
from bleak.exc import BleakError
from conftest import DESK_ADDRESS, ble_device

from deskdrive import locator as locator_module
from deskdrive.errors import AdapterUnavailableError, ConnectionExhaustedError, DeviceNotFoundError
from deskdrive.locator import DeviceLocator
from deskdrive.protocol import UUID_COMMAND, UUID_HEIGHT, UUID_REFERENCE_INPUT


def install_fake_bleak(monkeypatch, devices, failures=0, adapter_missing=False, empty_services=False):
    """Replace BleakScanner/BleakClient in the locator; returns the shared call record."""
    record = SimpleNamespace(scanner_kwargs=None, scans_stopped=0, clients=[], attempts=0)

    class FakeScanner:
        def __init__(self, **kwargs):
            record.scanner_kwargs = kwargs

        async def start(self):
            if adapter_missing:
                raise BleakError("No Bluetooth adapters found.")

        async def stop(self):
            record.scans_stopped += 1

        @property
        def discovered_devices(self):
            return devices

    class FakeClient:
        def __init__(self, device, disconnected_callback=None, timeout=10.0, **kwargs):
            self.device = device
            self.kwargs = kwargs
            self.connected = False
            uuids = () if empty_services else (UUID_HEIGHT, UUID_COMMAND, UUID_REFERENCE_INPUT)
            self.services = SimpleNamespace(
                characteristics={
                    i: SimpleNamespace(uuid=uuid, service_uuid="svc", properties=["read"])
                    for i, uuid in enumerate(uuids)
                }
            )
            record.clients.append(self)

        @property
        def is_connected(self):
            return self.connected

        async def connect(self):
            record.attempts += 1
            if record.attempts <= failures:
                raise BleakError(f"attempt {record.attempts} failed")
            self.connected = True

        async def disconnect(self):
            self.connected = False

    monkeypatch.setattr(locator_module, "BleakScanner", FakeScanner)
    monkeypatch.setattr(locator_module, "BleakClient", FakeClient)
    return record


async def test_connects_to_desk_matched_by_address(monkeypatch, config):
    devices = [ble_device("AA:BB:CC:DD:EE:FF", "Headphones"), ble_device(DESK_ADDRESS.lower())]
    record = install_fake_bleak(monkeypatch, devices)

    link = await DeviceLocator(config).locate_and_connect()

    assert link.is_connected
    assert link.device is devices[1]
    assert record.attempts == 1
    assert record.scans_stopped == 1
    assert {uuid for uuid, _ in link.characteristics()} == {UUID_HEIGHT, UUID_COMMAND, UUID_REFERENCE_INPUT}


async def test_ignores_devices_without_hardware_address(monkeypatch, config):
    install_fake_bleak(monkeypatch, [ble_device("6E400001-B5A3-F393-E0A9-E50E24DCCA9E", "Desk 1234")])
    with pytest.raises(DeviceNotFoundError):
        await DeviceLocator(config).locate_and_connect()


async def test_missing_desk_is_not_retried(monkeypatch, config):
    record = install_fake_bleak(monkeypatch, [])
    with pytest.raises(DeviceNotFoundError):
        await DeviceLocator(config).locate_and_connect()
    assert record.attempts == 0


async def test_no_adapter_is_fatal(monkeypatch, config):
    install_fake_bleak(monkeypatch, [], adapter_missing=True)
    with pytest.raises(AdapterUnavailableError):
        await DeviceLocator(config).locate_and_connect()


async def test_locate_without_connecting(monkeypatch, config):
    record = install_fake_bleak(monkeypatch, [ble_device(DESK_ADDRESS)])

    link = await DeviceLocator(config).locate_and_connect(connect=False)

    assert not link.is_connected
    assert record.attempts == 0
    assert "C2:6D:5B:C4:17:12" in link.describe()


async def test_retries_until_connected(monkeypatch, config):
    record = install_fake_bleak(monkeypatch, [ble_device(DESK_ADDRESS)], failures=2)

    link = await DeviceLocator(config).locate_and_connect()

    assert link.is_connected
    assert record.attempts == 3
    assert link.client is record.clients[-1]


async def test_last_failed_attempt_surfaces_connection_exhausted(monkeypatch, config):
    record = install_fake_bleak(monkeypatch, [ble_device(DESK_ADDRESS)], failures=3)

    with pytest.raises(ConnectionExhaustedError) as excinfo:
        await DeviceLocator(config).locate_and_connect()

    assert record.attempts == config.retry_count == 3
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.__cause__, BleakError)


async def test_adapter_selection_is_passed_to_bleak(monkeypatch, config):
    config.adapter = "hci1"
    record = install_fake_bleak(monkeypatch, [ble_device(DESK_ADDRESS)])

    await DeviceLocator(config).locate_and_connect()

    assert record.scanner_kwargs == {"adapter": "hci1"}
    assert record.clients[0].kwargs == {"adapter": "hci1"}


async def test_connected_client_with_empty_gatt_table_is_closed_before_retrying(monkeypatch, config):
    record = install_fake_bleak(monkeypatch, [ble_device(DESK_ADDRESS)], empty_services=True)

    with pytest.raises(ConnectionExhaustedError) as excinfo:
        await DeviceLocator(config).locate_and_connect()

    assert len(record.clients) == 3
    assert not any(client.connected for client in record.clients)
    assert "no characteristics" in str(excinfo.value)


async def test_backoff_sleeps_only_between_attempts(monkeypatch, config):
    config.retry_backoff = 0.25
    install_fake_bleak(monkeypatch, [ble_device(DESK_ADDRESS)], failures=3)
    delays = []

    async def record_sleep(seconds):
        delays.append(seconds)

    with pytest.raises(ConnectionExhaustedError):
        await DeviceLocator(config, sleep=record_sleep).locate_and_connect()

    # one settle window for the scan, then a backoff after attempts 1 and 2 only
    assert delays == [config.scan_settle, 0.25, 0.25]
