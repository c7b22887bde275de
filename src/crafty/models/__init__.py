"""Data models for Crafty devices."""

from .advertisement import (
    AdvertisementTracker,
    CraftyAdvertisement,
    SelectorKind,
    TargetSelector,
    parse_advertisement,
)
from .metadata import DeviceMetadata
from .status import DeviceStatus, format_deci

__all__ = [
    "AdvertisementTracker",
    "CraftyAdvertisement",
    "DeviceMetadata",
    "DeviceStatus",
    "SelectorKind",
    "TargetSelector",
    "format_deci",
    "parse_advertisement",
]
