"""Connection lifecycle for a single Crafty device."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional, Protocol

from bleak import BleakScanner

from .dispatcher import CommandDispatcher, CommandRequest, CommandResult
from .exceptions import (
    BLEConnectionError,
    CharacteristicNotFoundError,
    ConnectionClosedError,
    CraftyError,
    DeviceNotFoundError,
    IdentityMismatchError,
    ProtocolError,
    TransportError,
)
from .models import (
    AdvertisementTracker,
    CraftyAdvertisement,
    DeviceMetadata,
    DeviceStatus,
    TargetSelector,
    parse_advertisement,
)
from .protocol import ADVERTISED_SERVICE_UUIDS
from .services import (
    DataService,
    SettingsService,
    discover_data_service,
    discover_metadata,
    discover_settings_service,
)
from .transport import BLEConnection

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

_LOGGER = logging.getLogger(__name__)

ValueHandler = Callable[[Optional[int], Optional[Exception]], None]


class LifecycleState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    DISCOVERING = "discovering"
    READY = "ready"
    MONITORING = "monitoring"
    COMMANDING = "commanding"
    CLOSING = "closing"


class ActionKind(Enum):
    """What a session does once the device is ready."""

    READ = "read"  # report the Ready snapshot and close
    OBSERVE = "observe"  # subscribe to notifications until stopped
    MUTATE = "mutate"  # issue validated writes and close


_ACTION_STATES = {
    ActionKind.READ: LifecycleState.READY,
    ActionKind.OBSERVE: LifecycleState.MONITORING,
    ActionKind.MUTATE: LifecycleState.COMMANDING,
}


@dataclass
class CraftySession:
    """Everything resolved for one connection, valid until it closes."""

    connection: BLEConnection
    advertisement: CraftyAdvertisement
    metadata: DeviceMetadata
    data_service: DataService
    settings_service: SettingsService
    status: DeviceStatus
    charge_indicator: bool | None = None


class SessionAction(Protocol):
    kind: ClassVar[ActionKind]

    async def run(self, session: CraftySession) -> None: ...


class StatusAction:
    """Read-only session: the Ready snapshot is the result."""

    kind = ActionKind.READ

    async def run(self, session: CraftySession) -> None:
        return None


@dataclass
class CommandAction:
    """Run the command dispatcher for each requested value."""

    kind: ClassVar[ActionKind] = ActionKind.MUTATE

    request: CommandRequest
    dispatcher: CommandDispatcher = field(default_factory=CommandDispatcher)
    results: list[CommandResult] = field(default_factory=list)

    async def run(self, session: CraftySession) -> None:
        self.results = await self.dispatcher.execute(
            self.request,
            session.data_service,
            session.settings_service,
            current_setpoint=session.status.setpoint_whole_celsius,
        )


def _ignore_value(value: int | None, error: Exception | None) -> None:
    pass


@dataclass
class MonitorAction:
    """Subscribe to temperature and battery notifications.

    Runs until stop_event is set. Without an event it never returns on its
    own and the session ends only when the task is cancelled.
    """

    kind: ClassVar[ActionKind] = ActionKind.OBSERVE

    on_temperature: ValueHandler = _ignore_value
    on_battery: ValueHandler = _ignore_value
    stop_event: asyncio.Event | None = None

    async def run(self, session: CraftySession) -> None:
        status = session.status

        def _temperature(value: int | None, error: Exception | None) -> None:
            if error is not None:
                _LOGGER.warning("Bad temperature notification: %s", error)
            elif value is not None:
                status.current_temp_deci = value
            self.on_temperature(value, error)

        def _battery(value: int | None, error: Exception | None) -> None:
            if error is not None:
                _LOGGER.warning("Bad battery notification: %s", error)
            elif value is not None:
                status.battery_percent = value
            self.on_battery(value, error)

        subscribed = 0
        for name, subscribe, handler in (
                ("battery", session.data_service.subscribe_battery, _battery),
                ("temperature", session.data_service.subscribe_temperature, _temperature),
        ):
            try:
                await subscribe(handler)
                subscribed += 1
            except ProtocolError as err:
                _LOGGER.warning("Cannot monitor %s: %s", name, err)

        if subscribed == 0:
            raise CharacteristicNotFoundError("No notifiable characteristic was discovered")

        stop_event = self.stop_event or asyncio.Event()
        await stop_event.wait()


class CraftyController:
    """Drive one session: scan, connect, discover, act, close.

    States: IDLE -> SCANNING -> CONNECTING -> DISCOVERING -> READY ->
    (MONITORING | COMMANDING) -> CLOSING -> IDLE.

    Usage:
        controller = CraftyController(TargetSelector.serial("CY123456"))
        session = await controller.run(StatusAction())
        print(session.status)
    """

    def __init__(
            self,
            selector: TargetSelector,
            *,
            scan_timeout: float = 30.0,
            connect_timeout: float = 10.0,
            operation_timeout: float = 5.0,
            max_attempts: int = 3,
            resume_scanning: bool = False,
            scanner_factory: Callable[..., Any] = BleakScanner,
            connection_factory: Callable[..., BLEConnection] = BLEConnection,
    ):
        """Initialize the controller.

        Args:
            selector: Device identifier or serial number to connect to
            scan_timeout: Seconds to scan for a matching advertisement
            connect_timeout: Connection timeout in seconds
            operation_timeout: Timeout for each read/write in seconds
            max_attempts: Connection attempts passed to bleak-retry-connector
            resume_scanning: Scan again after a failed connect or discovery
            scanner_factory: BleakScanner-compatible class
            connection_factory: BLEConnection-compatible class
        """
        self.selector = selector
        self.scan_timeout = scan_timeout
        self.connect_timeout = connect_timeout
        self.operation_timeout = operation_timeout
        self.max_attempts = max_attempts
        self.resume_scanning = resume_scanning

        self._scanner_factory = scanner_factory
        self._connection_factory = connection_factory
        self._tracker = AdvertisementTracker()
        self._state = LifecycleState.IDLE
        self._reached_ready = False

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def seen_devices(self) -> dict[str, CraftyAdvertisement]:
        """Advertisements seen during the last scan, by address."""
        return self._tracker.devices

    def _transition(self, state: LifecycleState) -> None:
        _LOGGER.debug("State %s -> %s", self._state.value, state.value)
        self._state = state

    async def run(
            self,
            action: SessionAction,
            on_ready: Callable[[CraftySession], None] | None = None,
    ) -> CraftySession:
        """Run one full session with the target device.

        Args:
            action: What to do once the device is ready
            on_ready: Called with the session after metadata, status and
                charge indicator have been read

        Returns:
            The closed session with its last known values

        Raises:
            DeviceNotFoundError: If no matching device advertised in time
            TransportError: If connecting or discovery fails
            IdentityMismatchError: If the connected device is not the target
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.scan_timeout

        while True:
            device, advertisement = await self._scan(deadline - loop.time())
            try:
                return await self._run_session(device, advertisement, action, on_ready)
            except TransportError as err:
                if not self.resume_scanning or self._reached_ready:
                    raise
                _LOGGER.warning(
                    "Session with %s failed before ready (%s), resuming scan",
                    advertisement.address,
                    err,
                )

    async def _scan(self, timeout: float) -> tuple[BLEDevice, CraftyAdvertisement]:
        """Scan until an advertisement matches the selector, then stop."""
        self._transition(LifecycleState.SCANNING)
        self._tracker.reset()
        loop = asyncio.get_running_loop()
        found: asyncio.Future[tuple[BLEDevice, CraftyAdvertisement]] = loop.create_future()

        def _on_detection(device: BLEDevice, advertisement_data: AdvertisementData) -> None:
            if found.done():
                return
            advertisement = parse_advertisement(
                device.address,
                advertisement_data.local_name,
                advertisement_data.service_data,
                advertisement_data.rssi,
            )
            if self._tracker.update(advertisement):
                _LOGGER.debug(
                    "Seen %s name=%s serial=%s",
                    advertisement.address,
                    advertisement.local_name,
                    advertisement.serial_prefix,
                )
            if self.selector.matches(advertisement):
                _LOGGER.info("Matched %s for %s", advertisement.address, self.selector)
                found.set_result((device, advertisement))

        scanner = self._scanner_factory(
            detection_callback=_on_detection,
            service_uuids=list(ADVERTISED_SERVICE_UUIDS),
        )
        try:
            await scanner.start()
        except Exception as err:
            self._transition(LifecycleState.IDLE)
            raise BLEConnectionError(f"Failed to start scanning: {err}") from err

        try:
            return await asyncio.wait_for(found, timeout=max(timeout, 0))
        except asyncio.TimeoutError:
            self._transition(LifecycleState.IDLE)
            raise DeviceNotFoundError(
                f"No Crafty matching {self.selector} found within {self.scan_timeout}s"
            ) from None
        finally:
            await scanner.stop()

    async def _run_session(
            self,
            device: BLEDevice,
            advertisement: CraftyAdvertisement,
            action: SessionAction,
            on_ready: Callable[[CraftySession], None] | None,
    ) -> CraftySession:
        self._reached_ready = False
        self._transition(LifecycleState.CONNECTING)
        _LOGGER.info("Connecting to %s [%s]", advertisement.address, advertisement.local_name)
        connection = self._connection_factory(
            advertisement.address,
            ble_device=device,
            timeout=self.connect_timeout,
            operation_timeout=self.operation_timeout,
            max_attempts=self.max_attempts,
        )
        try:
            await connection.connect()
            self._verify_identity(connection, advertisement)

            self._transition(LifecycleState.DISCOVERING)
            session = await self._discover(connection, advertisement)

            self._transition(LifecycleState.READY)
            self._reached_ready = True
            await self._read_snapshot(session)
            if on_ready is not None:
                on_ready(session)

            self._transition(_ACTION_STATES[action.kind])
            await action.run(session)
            return session
        finally:
            self._transition(LifecycleState.CLOSING)
            await connection.disconnect()
            self._transition(LifecycleState.IDLE)

    def _verify_identity(self, connection: BLEConnection, advertisement: CraftyAdvertisement) -> None:
        identity = connection.identity
        if identity.upper() != advertisement.address.upper() or not self.selector.matches_identity(identity):
            raise IdentityMismatchError(
                f"Connected to {identity}, expected {advertisement.address} ({self.selector})"
            )

    async def _discover(
            self,
            connection: BLEConnection,
            advertisement: CraftyAdvertisement,
    ) -> CraftySession:
        metadata = await discover_metadata(connection)
        _LOGGER.info("Found %s", metadata)
        if not self.selector.matches_serial(metadata.serial_number, advertisement.serial_prefix):
            raise IdentityMismatchError(
                f"Connected device has serial {metadata.serial_number}, expected {self.selector}"
            )

        data_service = await discover_data_service(connection)
        settings_service = await discover_settings_service(connection)
        return CraftySession(
            connection=connection,
            advertisement=advertisement,
            metadata=metadata,
            data_service=data_service,
            settings_service=settings_service,
            status=DeviceStatus(identity=connection.identity),
        )

    async def _read_snapshot(self, session: CraftySession) -> None:
        session.status = await session.data_service.read_status()
        if not session.settings_service.has("charge_indicator"):
            return
        try:
            session.charge_indicator = await session.settings_service.read_charge_indicator()
        except ConnectionClosedError:
            raise
        except CraftyError as err:
            _LOGGER.warning("Failed to read charging indicator status: %s", err)
