"""Device metadata model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DeviceMetadata:
    """Static identity read once from the metadata service.

    Attributes:
        identity: Platform device identifier (address on Linux/Windows,
            CoreBluetooth UUID on macOS)
        model_name: Model string, e.g. "Crafty+"
        firmware_version: Firmware version string
        serial_number: Serial number from the device label
    """

    identity: str
    model_name: str = ""
    firmware_version: str = ""
    serial_number: str = ""

    def __str__(self) -> str:
        return (
            f"{self.model_name} SN:{self.serial_number} "
            f"FW:{self.firmware_version} ID:{self.identity}"
        )
