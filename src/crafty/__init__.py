"""Crafty BLE client package.

  Pure Python package for reading and controlling Storz & Bickel Crafty
  vaporizers over Bluetooth Low Energy.
  """

from .config import CraftyConfig
from .device import (
    ActionKind,
    CommandAction,
    CraftyController,
    CraftySession,
    LifecycleState,
    MonitorAction,
    StatusAction,
)
from .dispatcher import CommandDispatcher, CommandRequest, CommandResult
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    CharacteristicNotFoundError,
    CommandError,
    ConfigError,
    ConnectionClosedError,
    CraftyError,
    DeviceNotFoundError,
    IdentityMismatchError,
    InvalidOptionError,
    MalformedPayloadError,
    NotificationUnsupportedError,
    ProtocolError,
    TransportError,
    UnknownIdentifierError,
    ValidationError,
)
from .models import (
    AdvertisementTracker,
    CraftyAdvertisement,
    DeviceMetadata,
    DeviceStatus,
    SelectorKind,
    TargetSelector,
    parse_advertisement,
)
from .notifications import Subscription, subscribe
from .protocol import DATA_SERVICE_UUID, METADATA_SERVICE_UUID, SETTINGS_SERVICE_UUID
from .scanner import FoundDevice, discover_devices
from .services import (
    DataService,
    SettingsService,
    discover_data_service,
    discover_metadata,
    discover_settings_service,
)
from .transport import BLEConnection

__version__ = "0.1.0"

__all__ = [
    # Main API
    "CraftyController",
    "CraftySession",
    "LifecycleState",
    "ActionKind",
    "StatusAction",
    "MonitorAction",
    "CommandAction",
    "CommandDispatcher",
    "CommandRequest",
    "CommandResult",
    "CraftyConfig",
    "BLEConnection",
    "discover_devices",
    "FoundDevice",
    # Discovery
    "DataService",
    "SettingsService",
    "discover_data_service",
    "discover_metadata",
    "discover_settings_service",
    "Subscription",
    "subscribe",
    # Exceptions
    "CraftyError",
    "ConfigError",
    "TransportError",
    "BLEConnectionError",
    "BLETimeoutError",
    "ConnectionClosedError",
    "DeviceNotFoundError",
    "IdentityMismatchError",
    "ProtocolError",
    "MalformedPayloadError",
    "CharacteristicNotFoundError",
    "UnknownIdentifierError",
    "NotificationUnsupportedError",
    "CommandError",
    "ValidationError",
    "InvalidOptionError",
    # Models
    "AdvertisementTracker",
    "CraftyAdvertisement",
    "DeviceMetadata",
    "DeviceStatus",
    "SelectorKind",
    "TargetSelector",
    "parse_advertisement",
    # Constants
    "DATA_SERVICE_UUID",
    "METADATA_SERVICE_UUID",
    "SETTINGS_SERVICE_UUID",
]
