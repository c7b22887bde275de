"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol, TypeVar

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError, ConnectionClosedError

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice
    from bleak.backends.service import BleakGATTService

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")

NotifyCallback = Callable[["BleakGATTCharacteristic", bytearray], None]


class Releasable(Protocol):
    def release(self) -> None: ...


class BLEConnection:
    """Manages the single BLE connection to a Crafty device.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Context manager for automatic cleanup
    - Explicit timeout on every read, write and notify registration
    - Subscriptions released when the connection closes
    """

    def __init__(
            self,
            address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            operation_timeout: float = 5.0,
            max_attempts: int = 3,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            address: Device address (or CoreBluetooth UUID on macOS)
            ble_device: Optional BLEDevice from a scan
            timeout: Connection timeout in seconds (default: 10)
            operation_timeout: Read/write timeout in seconds (default: 5)
            max_attempts: Connection attempts for bleak-retry-connector (default: 3)
            use_services_cache: Enable GATT service caching (default: True)
        """
        self.address = address
        self.ble_device = ble_device
        self.timeout = timeout
        self.operation_timeout = operation_timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None
        self._subscriptions: list[Releasable] = []

    async def __aenter__(self) -> BLEConnection:
        """Connect to device (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    async def connect(self) -> None:
        """Establish BLE connection to device.

        Raises:
            BLEConnectionError: If connection fails
            BLETimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.address,
                self.max_attempts
            )

            # Resolve address to BLEDevice if not provided
            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.address} not found during scan"
                    )

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.address,
                disconnected_callback=self._on_disconnected,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.debug("Connected to %s", self.address)

        except BLEConnectionError:
            raise
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Release all subscriptions and disconnect from device."""
        self._release_subscriptions()
        if self._client and self._client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.address)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
        self._client = None

    def _on_disconnected(self, client: BleakClient) -> None:
        _LOGGER.info("Device %s disconnected", self.address)
        self._release_subscriptions()

    def _release_subscriptions(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.release()

    def _require_client(self) -> BleakClient:
        if not self._client or not self._client.is_connected:
            raise ConnectionClosedError(f"Not connected to {self.address}")
        return self._client

    async def _with_timeout(self, make_call: Callable[[], Awaitable[_T]], action: str) -> _T:
        try:
            return await asyncio.wait_for(make_call(), timeout=self.operation_timeout)
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"{action} timed out after {self.operation_timeout}s"
            ) from e
        except Exception as e:
            raise BLEConnectionError(f"{action} failed: {e}") from e

    @property
    def identity(self) -> str:
        """Identifier of the connected peripheral as reported by the stack."""
        if self._client is not None:
            return self._client.address
        return self.address

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected

    def get_service(self, uuid: str) -> BleakGATTService | None:
        """Look up a discovered GATT service by UUID.

        Raises:
            ConnectionClosedError: If not connected
            BLEConnectionError: If the service table cannot be queried
        """
        client = self._require_client()
        try:
            return client.services.get_service(uuid)
        except BleakError as e:
            raise BLEConnectionError(f"Service lookup for {uuid} failed: {e}") from e

    async def read(self, characteristic: BleakGATTCharacteristic) -> bytes:
        """Read a characteristic value.

        Raises:
            ConnectionClosedError: If not connected
            BLEConnectionError: If the read fails
            BLETimeoutError: If the device does not answer in time
        """
        client = self._require_client()
        data = await self._with_timeout(
            lambda: client.read_gatt_char(characteristic),
            f"Read of {characteristic.uuid}",
        )
        _LOGGER.debug("Read %s: %s", characteristic.uuid, bytes(data).hex())
        return bytes(data)

    async def write(
            self,
            characteristic: BleakGATTCharacteristic,
            data: bytes,
            response: bool = True,
    ) -> None:
        """Write a characteristic value, waiting for confirmation by default.

        Raises:
            ConnectionClosedError: If not connected
            BLEConnectionError: If the write fails
            BLETimeoutError: If the device does not confirm in time
        """
        client = self._require_client()
        _LOGGER.debug("Write %s: %s", characteristic.uuid, data.hex())
        await self._with_timeout(
            lambda: client.write_gatt_char(characteristic, data, response=response),
            f"Write of {characteristic.uuid}",
        )

    async def start_notify(
            self,
            characteristic: BleakGATTCharacteristic,
            callback: NotifyCallback,
            subscription: Releasable,
    ) -> None:
        """Enable notifications and tie the subscription to this connection."""
        client = self._require_client()
        await self._with_timeout(
            lambda: client.start_notify(characteristic, callback),
            f"Subscribe to {characteristic.uuid}",
        )
        self._subscriptions.append(subscription)
        _LOGGER.debug("Notifications started for %s", characteristic.uuid)

    @property
    def subscriptions(self) -> tuple[Releasable, ...]:
        return tuple(self._subscriptions)
