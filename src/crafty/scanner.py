"""List Crafty devices that are advertising nearby."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from bleak import BleakScanner

from .exceptions import BLEConnectionError, ProtocolError, TransportError
from .models import AdvertisementTracker, CraftyAdvertisement, DeviceMetadata, parse_advertisement
from .protocol import ADVERTISED_SERVICE_UUIDS
from .services import discover_metadata
from .transport import BLEConnection

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FoundDevice:
    """A Crafty seen during a scan.

    Attributes:
        advertisement: Latest advertisement received from the device
        metadata: Model, firmware and serial read over a short connection,
            or None if the device could not be read
    """

    advertisement: CraftyAdvertisement
    metadata: DeviceMetadata | None = None

    def __str__(self) -> str:
        if self.metadata is not None:
            return f"{self.metadata} RSSI:{self.advertisement.rssi}"
        return (
            f"{self.advertisement.address} "
            f"{self.advertisement.local_name or '<unknown-name>'} "
            f"SN:{self.advertisement.serial_prefix or '?'} "
            f"RSSI:{self.advertisement.rssi}"
        )


async def _read_metadata(
        connection_factory: Callable[..., BLEConnection],
        device: BLEDevice,
        advertisement: CraftyAdvertisement,
        connect_timeout: float,
        operation_timeout: float,
        max_attempts: int,
) -> DeviceMetadata | None:
    connection = connection_factory(
        advertisement.address,
        ble_device=device,
        timeout=connect_timeout,
        operation_timeout=operation_timeout,
        max_attempts=max_attempts,
    )
    try:
        _LOGGER.debug("Connecting to %s to read metadata", advertisement.address)
        await connection.connect()
        metadata = await discover_metadata(connection)
    except (TransportError, ProtocolError) as err:
        _LOGGER.warning("Failed to read metadata from %s: %s", advertisement.address, err)
        return None
    finally:
        await connection.disconnect()

    _LOGGER.info("Found %s", metadata)
    return metadata


async def discover_devices(
        timeout: float = 10.0,
        *,
        read_metadata: bool = True,
        connect_timeout: float = 10.0,
        operation_timeout: float = 5.0,
        max_attempts: int = 3,
        scanner_factory: Callable[..., Any] = BleakScanner,
        connection_factory: Callable[..., BLEConnection] = BLEConnection,
) -> list[FoundDevice]:
    """Scan for the given time and return each Crafty seen, once.

    After the scan stops, each device is connected to in turn and its
    metadata service is read, then it is disconnected again. A device that
    cannot be read is still listed, without metadata.

    Args:
        timeout: Scan duration in seconds
        read_metadata: Connect to each device to read model, firmware and serial
        connect_timeout: Connection timeout per device in seconds
        operation_timeout: Timeout for each metadata read in seconds
        max_attempts: Connection attempts per device
        scanner_factory: BleakScanner-compatible class
        connection_factory: BLEConnection-compatible class

    Returns:
        Found devices sorted by address; the latest advertisement per device is kept

    Raises:
        BLEConnectionError: If the adapter cannot start scanning
    """
    tracker = AdvertisementTracker()
    ble_devices: dict[str, BLEDevice] = {}

    def _on_detection(device: BLEDevice, advertisement_data: AdvertisementData) -> None:
        advertisement = parse_advertisement(
            device.address,
            advertisement_data.local_name,
            advertisement_data.service_data,
            advertisement_data.rssi,
        )
        if not advertisement.is_crafty:
            return
        ble_devices[advertisement.address] = device
        if tracker.update(advertisement):
            _LOGGER.info(
                "Seen %s (%s) serial=%s",
                advertisement.address,
                advertisement.local_name,
                advertisement.serial_prefix,
            )

    scanner = scanner_factory(
        detection_callback=_on_detection,
        service_uuids=list(ADVERTISED_SERVICE_UUIDS),
    )
    try:
        await scanner.start()
    except Exception as err:
        raise BLEConnectionError(f"Failed to start scanning: {err}") from err

    try:
        await asyncio.sleep(timeout)
    finally:
        await scanner.stop()

    found: list[FoundDevice] = []
    for address, advertisement in sorted(tracker.devices.items()):
        metadata = None
        if read_metadata:
            metadata = await _read_metadata(
                connection_factory,
                ble_devices[address],
                advertisement,
                connect_timeout,
                operation_timeout,
                max_attempts,
            )
        found.append(FoundDevice(advertisement=advertisement, metadata=metadata))
    return found
