"""GATT discovery and typed service handles."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from .exceptions import (
    CharacteristicNotFoundError,
    ConnectionClosedError,
    CraftyError,
    ProtocolError,
    TransportError,
)
from .models import DeviceMetadata, DeviceStatus
from .notifications import Subscription, ValueCallback, subscribe
from .protocol import (
    DATA_SERVICE,
    METADATA_SERVICE,
    SETTINGS_SERVICE,
    ServiceSpec,
    decode_fixed_point_u16,
    decode_flag,
    decode_text,
    service_spec,
)

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic

    from .transport import BLEConnection

_LOGGER = logging.getLogger(__name__)


def _bind_characteristics(
        connection: BLEConnection,
        spec: ServiceSpec,
) -> dict[str, BleakGATTCharacteristic]:
    """Resolve the declared characteristics of one service.

    Only the UUIDs declared in the profile are looked up. Each one found is
    bound to its named slot; missing ones are left unbound.

    Raises:
        TransportError: If the peripheral's service table cannot be reached
    """
    service = connection.get_service(spec.uuid)
    if service is None:
        _LOGGER.warning("Service %s (%s) not found on device", spec.name, spec.uuid)
        return {}

    bound: dict[str, BleakGATTCharacteristic] = {}
    for char_spec in spec.characteristics:
        characteristic = service.get_characteristic(char_spec.uuid)
        if characteristic is None:
            _LOGGER.warning(
                "Characteristic %s (%s) missing from %s service",
                char_spec.name,
                char_spec.uuid,
                spec.name,
            )
            continue
        bound[char_spec.name] = characteristic

    _LOGGER.debug(
        "Discovered %s service: %d/%d characteristics",
        spec.name,
        len(bound),
        len(spec.characteristics),
    )
    return bound


class ServiceHandle:
    """Characteristic handles of one service, valid while the connection is open."""

    SERVICE: ClassVar[str]

    def __init__(
            self,
            connection: BLEConnection,
            characteristics: dict[str, BleakGATTCharacteristic],
    ):
        self._connection = connection
        self._characteristics = dict(characteristics)

    @property
    def spec(self) -> ServiceSpec:
        return service_spec(self.SERVICE)

    @property
    def missing(self) -> tuple[str, ...]:
        """Names of declared characteristics that were not discovered."""
        return tuple(
            spec.name for spec in self.spec.characteristics
            if spec.name not in self._characteristics
        )

    def has(self, name: str) -> bool:
        return name in self._characteristics

    def characteristic(self, name: str) -> BleakGATTCharacteristic:
        """Return a bound characteristic handle.

        Raises:
            UnknownIdentifierError: If name is not part of this service
            CharacteristicNotFoundError: If it was not discovered
        """
        self.spec.characteristic(name)
        try:
            return self._characteristics[name]
        except KeyError:
            raise CharacteristicNotFoundError(
                f"Characteristic '{name}' of {self.SERVICE} service was not discovered"
            ) from None

    def _check_open(self) -> None:
        if not self._connection.is_connected:
            raise ConnectionClosedError(
                f"{self.SERVICE} service used after the connection closed"
            )

    async def _read(self, name: str) -> bytes:
        self._check_open()
        return await self._connection.read(self.characteristic(name))

    async def _write(self, name: str, payload: bytes) -> None:
        self._check_open()
        await self._connection.write(self.characteristic(name), payload, response=True)

    async def _read_u16(self, name: str) -> int:
        return decode_fixed_point_u16(await self._read(name))


class DataService(ServiceHandle):
    """Temperature, boost, battery and LED values."""

    SERVICE = DATA_SERVICE

    async def read_current_temperature(self) -> int:
        """Current temperature in deci-degrees Celsius."""
        return await self._read_u16("current_temperature")

    async def read_setpoint(self) -> int:
        """Temperature setpoint in deci-degrees Celsius."""
        return await self._read_u16("setpoint")

    async def read_boost(self) -> int:
        """Boost offset in deci-degrees Celsius."""
        return await self._read_u16("boost")

    async def read_battery(self) -> int:
        return await self._read_u16("battery")

    async def read_led_brightness(self) -> int:
        return await self._read_u16("led_brightness")

    async def write_setpoint(self, payload: bytes) -> None:
        await self._write("setpoint", payload)

    async def write_boost(self, payload: bytes) -> None:
        await self._write("boost", payload)

    async def read_status(self) -> DeviceStatus:
        """Read every data characteristic once into a snapshot.

        A field that cannot be read is logged and left at 0; the other
        fields are still read. A closed connection aborts the snapshot.
        """
        status = DeviceStatus(identity=self._connection.identity)
        readers = {
            "current_temp_deci": self.read_current_temperature,
            "setpoint_deci": self.read_setpoint,
            "boost_deci": self.read_boost,
            "battery_percent": self.read_battery,
            "led_brightness_percent": self.read_led_brightness,
        }
        for field_name, reader in readers.items():
            try:
                setattr(status, field_name, await reader())
            except ConnectionClosedError:
                raise
            except CraftyError as err:
                _LOGGER.warning("Failed to read %s: %s", field_name, err)
        return status

    async def subscribe_temperature(self, on_value: ValueCallback[int]) -> Subscription[int]:
        """Notify on_value with the current temperature in deci-degrees."""
        self._check_open()
        return await subscribe(
            self._connection,
            self.characteristic("current_temperature"),
            decode_fixed_point_u16,
            on_value,
        )

    async def subscribe_battery(self, on_value: ValueCallback[int]) -> Subscription[int]:
        """Notify on_value with the battery level in percent."""
        self._check_open()
        return await subscribe(
            self._connection,
            self.characteristic("battery"),
            decode_fixed_point_u16,
            on_value,
        )


class SettingsService(ServiceHandle):
    """Device settings; currently the charge indicator lamp."""

    SERVICE = SETTINGS_SERVICE

    async def read_charge_indicator(self) -> bool:
        return decode_flag(await self._read("charge_indicator"))

    async def write_charge_indicator(self, payload: bytes) -> None:
        await self._write("charge_indicator", payload)


async def discover_data_service(connection: BLEConnection) -> DataService:
    """Resolve the data service handles (no values are read)."""
    return DataService(connection, _bind_characteristics(connection, service_spec(DATA_SERVICE)))


async def discover_settings_service(connection: BLEConnection) -> SettingsService:
    """Resolve the settings service handles (no values are read)."""
    return SettingsService(
        connection, _bind_characteristics(connection, service_spec(SETTINGS_SERVICE))
    )


async def discover_metadata(connection: BLEConnection) -> DeviceMetadata:
    """Resolve the metadata service and read model, firmware and serial.

    Metadata does not change during a session, so it is read once here.
    A text field that fails to read is logged and left empty.

    Raises:
        TransportError: If the service table cannot be reached or the
            connection closes while reading
    """
    bound = _bind_characteristics(connection, service_spec(METADATA_SERVICE))

    values: dict[str, str] = {}
    for name in ("model", "firmware", "serial"):
        characteristic = bound.get(name)
        if characteristic is None:
            continue
        try:
            values[name] = decode_text(await connection.read(characteristic))
        except ConnectionClosedError:
            raise
        except (ProtocolError, TransportError) as err:
            _LOGGER.warning("Failed to read %s from metadata service: %s", name, err)

    return DeviceMetadata(
        identity=connection.identity,
        model_name=values.get("model", ""),
        firmware_version=values.get("firmware", ""),
        serial_number=values.get("serial", ""),
    )
