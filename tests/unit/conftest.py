"""Fake BLE collaborators shared by the unit tests."""

from __future__ import annotations

import struct
from types import SimpleNamespace

import pytest

from crafty.exceptions import BLEConnectionError, ConnectionClosedError
from crafty.protocol import PROFILE

ADDRESS = "AA:BB:CC:DD:EE:FF"
SERIAL_DATA_KEY = "00000052-0000-1000-8000-00805f9b34fb"


def _u16(value: int) -> bytes:
    return struct.pack("<H", value)


DEFAULT_VALUES = {
    "current_temperature": _u16(1750),
    "setpoint": _u16(1800),
    "boost": _u16(100),
    "battery": _u16(85),
    "led_brightness": _u16(50),
    "model": b"Crafty+\x00\x00\x00",
    "firmware": b"02.51\x00",
    "serial": b"CY123456\x00",
    "charge_indicator": b"\x01",
}

NOTIFIABLE = {"current_temperature", "battery"}


class FakeCharacteristic:
    def __init__(self, name: str, uuid: str, properties: list[str]):
        self.name = name
        self.uuid = uuid
        self.properties = properties


class FakeGATTService:
    def __init__(self, uuid: str, characteristics: list[FakeCharacteristic]):
        self.uuid = uuid
        self._characteristics = {c.uuid: c for c in characteristics}
        self.lookups: list[str] = []

    def get_characteristic(self, uuid: str) -> FakeCharacteristic | None:
        self.lookups.append(uuid)
        return self._characteristics.get(uuid)


class FakeConnection:
    """Stands in for BLEConnection, backed by an in-memory GATT table."""

    def __init__(
            self,
            omit: tuple[str, ...] = (),
            values: dict[str, bytes] | None = None,
            identity: str = ADDRESS,
            connected: bool = True,
            fail_reads: tuple[str, ...] = (),
            fail_connect: bool = False,
    ):
        self.address = identity
        self._identity = identity
        self.connected = connected
        self.fail_connect = fail_connect
        self.fail_reads = set(fail_reads)
        self.values = dict(DEFAULT_VALUES)
        self.values.update(values or {})
        self.written: list[tuple[str, bytes, bool]] = []
        self.reads: list[str] = []
        self.callbacks: dict[str, object] = {}
        self.subscriptions: list[object] = []
        self.disconnect_calls = 0
        self.services: dict[str, FakeGATTService] = {}
        self.characteristics: dict[str, FakeCharacteristic] = {}

        for spec in PROFILE.values():
            chars = []
            for char_spec in spec.characteristics:
                if char_spec.name in omit:
                    continue
                properties = ["read"]
                if char_spec.writable:
                    properties.append("write")
                if char_spec.name in NOTIFIABLE:
                    properties.append("notify")
                char = FakeCharacteristic(char_spec.name, char_spec.uuid, properties)
                self.characteristics[char_spec.name] = char
                chars.append(char)
            if spec.name not in omit:
                self.services[spec.uuid] = FakeGATTService(spec.uuid, chars)

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        if self.fail_connect:
            raise BLEConnectionError("Failed to connect: adapter busy")
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        for subscription in self.subscriptions:
            subscription.release()
        self.subscriptions = []
        self.connected = False

    def _check(self) -> None:
        if not self.connected:
            raise ConnectionClosedError(f"Not connected to {self.address}")

    def get_service(self, uuid: str) -> FakeGATTService | None:
        self._check()
        return self.services.get(uuid)

    async def read(self, characteristic: FakeCharacteristic) -> bytes:
        self._check()
        self.reads.append(characteristic.name)
        if characteristic.name in self.fail_reads:
            raise BLEConnectionError(f"Read of {characteristic.uuid} failed: ATT error")
        return self.values[characteristic.name]

    async def write(self, characteristic: FakeCharacteristic, data: bytes, response: bool = True) -> None:
        self._check()
        self.written.append((characteristic.name, data, response))
        self.values[characteristic.name] = data

    async def start_notify(self, characteristic, callback, subscription) -> None:
        self._check()
        self.callbacks[characteristic.name] = callback
        self.subscriptions.append(subscription)

    def push(self, name: str, data: bytes) -> None:
        """Deliver a notification payload as the BLE stack would."""
        self.callbacks[name](self.characteristics[name], bytearray(data))


class FakeScanner:
    """BleakScanner stand-in that replays advertisements on start()."""

    def __init__(self, adverts, detection_callback, service_uuids=None):
        self._adverts = adverts
        self._callback = detection_callback
        self.service_uuids = service_uuids
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True
        for device, advertisement_data in self._adverts:
            self._callback(device, advertisement_data)

    async def stop(self) -> None:
        self.stopped = True


def advert(
        address: str = ADDRESS,
        serial: bytes | None = b"CY123456",
        local_name: str | None = "STORZ&BICKEL",
        rssi: int = -60,
):
    """Build a (BLEDevice, AdvertisementData) pair like Bleak delivers."""
    service_data = {SERIAL_DATA_KEY: serial} if serial is not None else {}
    device = SimpleNamespace(address=address, name=local_name)
    data = SimpleNamespace(local_name=local_name, service_data=service_data, rssi=rssi)
    return device, data


@pytest.fixture
def make_connection():
    def _make(**kwargs) -> FakeConnection:
        return FakeConnection(**kwargs)

    return _make


@pytest.fixture
def make_advert():
    return advert


@pytest.fixture
def scanner_factory():
    """Return a factory building scanners that replay the given adverts.

    The built scanners are recorded on factory.instances.
    """

    def _factory_for(adverts):
        instances: list[FakeScanner] = []

        def _factory(detection_callback, service_uuids=None):
            scanner = FakeScanner(adverts, detection_callback, service_uuids)
            instances.append(scanner)
            return scanner

        _factory.instances = instances
        return _factory

    return _factory_for
