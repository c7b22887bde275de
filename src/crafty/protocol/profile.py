"""Static GATT profile of the Crafty vaporizer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from ..exceptions import UnknownIdentifierError

# All Crafty identifiers share the 4c45-4b43-4942-265a524f5453 suffix; the
# leading 32 bits carry the short id (0x0001 data service, 0x0011 current temp).
DATA_SERVICE_UUID = "00000001-4c45-4b43-4942-265a524f5453"
METADATA_SERVICE_UUID = "00000002-4c45-4b43-4942-265a524f5453"
SETTINGS_SERVICE_UUID = "00000003-4c45-4b43-4942-265a524f5453"

CURRENT_TEMP_UUID = "00000011-4c45-4b43-4942-265a524f5453"
SETPOINT_UUID = "00000021-4c45-4b43-4942-265a524f5453"
BOOST_UUID = "00000031-4c45-4b43-4942-265a524f5453"
BATTERY_UUID = "00000041-4c45-4b43-4942-265a524f5453"
LED_BRIGHTNESS_UUID = "00000051-4c45-4b43-4942-265a524f5453"

MODEL_UUID = "00000022-4c45-4b43-4942-265a524f5453"
FIRMWARE_UUID = "00000032-4c45-4b43-4942-265a524f5453"
SERIAL_UUID = "00000052-4c45-4b43-4942-265a524f5453"

CHARGE_INDICATOR_UUID = "000001c3-4c45-4b43-4942-265a524f5453"

# Advertisements carry the serial number as service data under the
# 16-bit UUID 0x0052, expanded here to the Bluetooth base UUID.
SERIAL_ADVERTISEMENT_UUID = "00000052-0000-1000-8000-00805f9b34fb"
ADVERTISED_LOCAL_NAME = "STORZ&BICKEL"

# Services the scanner filters on
ADVERTISED_SERVICE_UUIDS = (DATA_SERVICE_UUID, METADATA_SERVICE_UUID)

DATA_SERVICE = "data"
METADATA_SERVICE = "metadata"
SETTINGS_SERVICE = "settings"


class WireType(Enum):
    """Encoding of a characteristic value on the wire."""

    FIXED_POINT_U16 = "uint16-fixed1"  # little-endian uint16, tenths or percent
    TEXT = "cstring"  # NUL-terminated ASCII
    FLAG = "flag"  # single byte boolean


@dataclass(frozen=True)
class CharacteristicSpec:
    """One characteristic slot of a profile service."""

    name: str
    uuid: str
    wire_type: WireType
    readable: bool = True
    writable: bool = False
    notifiable: bool = False


@dataclass(frozen=True)
class ServiceSpec:
    """A profile service and the characteristics declared for it."""

    name: str
    uuid: str
    characteristics: tuple[CharacteristicSpec, ...]

    def characteristic(self, name: str) -> CharacteristicSpec:
        for spec in self.characteristics:
            if spec.name == name:
                return spec
        raise UnknownIdentifierError(
            f"Unknown characteristic '{name}' in service '{self.name}'"
        )

    @property
    def characteristic_uuids(self) -> tuple[str, ...]:
        return tuple(spec.uuid for spec in self.characteristics)


PROFILE: Mapping[str, ServiceSpec] = MappingProxyType({
    DATA_SERVICE: ServiceSpec(
        name=DATA_SERVICE,
        uuid=DATA_SERVICE_UUID,
        characteristics=(
            CharacteristicSpec("current_temperature", CURRENT_TEMP_UUID,
                               WireType.FIXED_POINT_U16, notifiable=True),
            CharacteristicSpec("setpoint", SETPOINT_UUID,
                               WireType.FIXED_POINT_U16, writable=True),
            CharacteristicSpec("boost", BOOST_UUID,
                               WireType.FIXED_POINT_U16, writable=True),
            CharacteristicSpec("battery", BATTERY_UUID,
                               WireType.FIXED_POINT_U16, notifiable=True),
            CharacteristicSpec("led_brightness", LED_BRIGHTNESS_UUID,
                               WireType.FIXED_POINT_U16),
        ),
    ),
    METADATA_SERVICE: ServiceSpec(
        name=METADATA_SERVICE,
        uuid=METADATA_SERVICE_UUID,
        characteristics=(
            CharacteristicSpec("model", MODEL_UUID, WireType.TEXT),
            CharacteristicSpec("firmware", FIRMWARE_UUID, WireType.TEXT),
            CharacteristicSpec("serial", SERIAL_UUID, WireType.TEXT),
        ),
    ),
    SETTINGS_SERVICE: ServiceSpec(
        name=SETTINGS_SERVICE,
        uuid=SETTINGS_SERVICE_UUID,
        characteristics=(
            CharacteristicSpec("charge_indicator", CHARGE_INDICATOR_UUID,
                               WireType.FLAG, writable=True),
        ),
    ),
})


def service_spec(service_name: str) -> ServiceSpec:
    """Return the profile entry for a service name.

    Raises:
        UnknownIdentifierError: If the name is not part of the profile
    """
    try:
        return PROFILE[service_name]
    except KeyError:
        raise UnknownIdentifierError(f"Unknown service '{service_name}'") from None


def resolve(service_name: str) -> dict[str, str]:
    """Map each characteristic name of a service to its UUID."""
    return {spec.name: spec.uuid for spec in service_spec(service_name).characteristics}


def wire_type(service_name: str, characteristic_name: str) -> WireType:
    """Return the declared wire type of a characteristic."""
    return service_spec(service_name).characteristic(characteristic_name).wire_type
