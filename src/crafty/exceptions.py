"""Exceptions raised by the Crafty BLE client."""

from __future__ import annotations


class CraftyError(Exception):
    """Base exception for all Crafty client errors."""


class ConfigError(CraftyError):
    """Raised when environment configuration is missing or invalid."""


class TransportError(CraftyError):
    """Adapter or connection failure, fatal to the current session."""


class BLEConnectionError(TransportError):
    """Raised when connecting, reading or writing over BLE fails."""


class BLETimeoutError(TransportError):
    """Raised when a BLE operation does not complete in time."""


class ConnectionClosedError(TransportError):
    """Raised when a service handle is used after its connection closed."""


class DeviceNotFoundError(TransportError):
    """Raised when no advertisement matched the target during the scan window."""


class IdentityMismatchError(CraftyError):
    """Raised when the connected peripheral is not the requested target."""


class ProtocolError(CraftyError):
    """Raised when the device profile or a payload cannot be used."""


class MalformedPayloadError(ProtocolError, ValueError):
    """Raised when a characteristic payload has an unexpected shape."""


class CharacteristicNotFoundError(ProtocolError):
    """Raised when a characteristic was not resolved during discovery."""


class UnknownIdentifierError(ProtocolError, KeyError):
    """Raised when a service or characteristic name is not in the profile."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class NotificationUnsupportedError(ProtocolError):
    """Raised when subscribing to a characteristic that cannot notify."""


class CommandError(CraftyError):
    """Base class for rejected user commands."""


class ValidationError(CommandError, ValueError):
    """Raised when a command value is outside its allowed range."""


class InvalidOptionError(CommandError, ValueError):
    """Raised when an enumerated command option is not recognized."""
