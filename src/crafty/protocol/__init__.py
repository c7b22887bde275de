"""Crafty BLE protocol implementation."""

from .codec import (
    decode_fixed_point_u16,
    decode_flag,
    decode_text,
    encode_fixed_point_u16,
    encode_flag,
)
from .commands import (
    MAX_TEMPERATURE_C,
    MIN_TEMPERATURE_C,
    CommandKind,
    PendingCommand,
    build_set_boost,
    build_set_charge_indicator,
    build_set_temperature,
)
from .profile import (
    ADVERTISED_LOCAL_NAME,
    ADVERTISED_SERVICE_UUIDS,
    DATA_SERVICE,
    DATA_SERVICE_UUID,
    METADATA_SERVICE,
    METADATA_SERVICE_UUID,
    PROFILE,
    SERIAL_ADVERTISEMENT_UUID,
    SETTINGS_SERVICE,
    SETTINGS_SERVICE_UUID,
    CharacteristicSpec,
    ServiceSpec,
    WireType,
    resolve,
    service_spec,
    wire_type,
)

__all__ = [
    "PROFILE",
    "DATA_SERVICE",
    "METADATA_SERVICE",
    "SETTINGS_SERVICE",
    "DATA_SERVICE_UUID",
    "METADATA_SERVICE_UUID",
    "SETTINGS_SERVICE_UUID",
    "SERIAL_ADVERTISEMENT_UUID",
    "ADVERTISED_SERVICE_UUIDS",
    "ADVERTISED_LOCAL_NAME",
    "CharacteristicSpec",
    "ServiceSpec",
    "WireType",
    "resolve",
    "service_spec",
    "wire_type",
    "decode_fixed_point_u16",
    "encode_fixed_point_u16",
    "decode_text",
    "decode_flag",
    "encode_flag",
    "MIN_TEMPERATURE_C",
    "MAX_TEMPERATURE_C",
    "CommandKind",
    "PendingCommand",
    "build_set_temperature",
    "build_set_boost",
    "build_set_charge_indicator",
]
