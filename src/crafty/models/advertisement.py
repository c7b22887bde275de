"""BLE advertisement data structures and target matching."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from ..protocol.codec import decode_text
from ..protocol.profile import ADVERTISED_LOCAL_NAME, SERIAL_ADVERTISEMENT_UUID

# Advertised serial numbers are compared on their first 8 characters,
# the length printed on the device label (CYxxxxxx).
SERIAL_PREFIX_LENGTH = 8

_BASE_UUID_TEMPLATE = "0000{}-0000-1000-8000-00805f9b34fb"


@dataclass(frozen=True)
class CraftyAdvertisement:
    """Parsed advertisement of a (possible) Crafty device.

    Attributes:
        address: Platform device identifier reported by the scanner
        local_name: Advertised local name, if any
        serial_prefix: Serial number carried in service data 0x0052, if any
        rssi: Signal strength of the advertisement
    """

    address: str
    local_name: str | None = None
    serial_prefix: str | None = None
    rssi: int | None = None

    @property
    def is_crafty(self) -> bool:
        """False only when a local name is advertised and it is not Storz & Bickel."""
        return self.local_name is None or self.local_name == ADVERTISED_LOCAL_NAME


def _normalize_uuid_key(key: str) -> str:
    key = key.lower()
    if len(key) == 4:
        return _BASE_UUID_TEMPLATE.format(key)
    return key


def parse_advertisement(
        address: str,
        local_name: str | None,
        service_data: Mapping[str, bytes],
        rssi: int | None = None,
) -> CraftyAdvertisement:
    """Extract the advertised serial number from service data.

    Service data keys may be 16-bit short form ("0052") or full 128-bit
    UUID strings, as delivered by Bleak.

    Args:
        address: Device identifier
        local_name: Advertised local name
        service_data: Mapping of service UUID to payload
        rssi: Optional signal strength

    Returns:
        CraftyAdvertisement; serial_prefix is None if no serial was advertised
    """
    serial: str | None = None
    for key, payload in service_data.items():
        if _normalize_uuid_key(key) == SERIAL_ADVERTISEMENT_UUID:
            serial = decode_text(bytes(payload))
            break

    return CraftyAdvertisement(
        address=address,
        local_name=local_name,
        serial_prefix=serial,
        rssi=rssi,
    )


class SelectorKind(Enum):
    DEVICE_ID = "device-id"
    SERIAL = "serial"


@dataclass(frozen=True)
class TargetSelector:
    """Which device to connect to: an exact identifier or a serial number."""

    kind: SelectorKind
    value: str

    @classmethod
    def device_id(cls, value: str) -> TargetSelector:
        return cls(SelectorKind.DEVICE_ID, value)

    @classmethod
    def serial(cls, value: str) -> TargetSelector:
        return cls(SelectorKind.SERIAL, value)

    def matches(self, advertisement: CraftyAdvertisement) -> bool:
        """Check whether an advertisement belongs to the target device."""
        if self.kind is SelectorKind.DEVICE_ID:
            return advertisement.address.upper() == self.value.upper()

        if not advertisement.is_crafty or advertisement.serial_prefix is None:
            return False
        return advertisement.serial_prefix[:SERIAL_PREFIX_LENGTH] == self.value

    def matches_identity(self, identity: str) -> bool:
        """Check a connected peripheral's identifier (device-id selectors only)."""
        if self.kind is not SelectorKind.DEVICE_ID:
            return True
        return identity.upper() == self.value.upper()

    def matches_serial(self, serial_number: str, advertised_prefix: str | None = None) -> bool:
        """Check the serial read from the metadata service (serial selectors only).

        The advertisement only carries a prefix of the label serial, so the
        full serial must start with the selector and with the prefix the
        scan matched on.
        """
        if self.kind is not SelectorKind.SERIAL or not serial_number:
            return True
        if advertised_prefix and not serial_number.startswith(advertised_prefix):
            return False
        return serial_number.startswith(self.value)

    def __str__(self) -> str:
        return f"{self.kind.value}={self.value}"


class AdvertisementTracker:
    """Remember each advertised device once per scan.

    Owned by whoever runs the scan; advertisements are delivered on the
    event loop one at a time, so no locking is needed.
    """

    def __init__(self) -> None:
        self._seen: dict[str, CraftyAdvertisement] = {}

    def reset(self, address: str | None = None) -> None:
        """Forget one device or all devices."""
        if address is None:
            self._seen.clear()
        else:
            self._seen.pop(address, None)

    def update(self, advertisement: CraftyAdvertisement) -> bool:
        """Record an advertisement.

        Returns:
            True if this address had not been seen before
        """
        is_new = advertisement.address not in self._seen
        self._seen[advertisement.address] = advertisement
        return is_new

    @property
    def devices(self) -> dict[str, CraftyAdvertisement]:
        return dict(self._seen)

    def __len__(self) -> int:
        return len(self._seen)
