"""Notification subscriptions for Crafty characteristics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, Optional, TypeVar

from .exceptions import (
    CharacteristicNotFoundError,
    MalformedPayloadError,
    NotificationUnsupportedError,
)

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic

    from .transport import BLEConnection

_LOGGER = logging.getLogger(__name__)

_V = TypeVar("_V")

# Called with (value, None) on success or (None, error) when decoding failed
ValueCallback = Callable[[Optional[_V], Optional[Exception]], None]

_NOTIFY_PROPERTIES = frozenset({"notify", "indicate"})


@dataclass(eq=False)
class Subscription(Generic[_V]):
    """Token for one active notification subscription.

    There is no unsubscribe: the token is released when its connection
    closes, after which late payloads are dropped.
    """

    characteristic_uuid: str
    active: bool = True
    received: int = 0

    def release(self) -> None:
        if self.active:
            _LOGGER.debug("Subscription to %s released", self.characteristic_uuid)
        self.active = False


async def subscribe(
        connection: BLEConnection,
        characteristic: BleakGATTCharacteristic | None,
        decoder: Callable[[bytes], _V],
        on_value: ValueCallback[_V],
) -> Subscription[_V]:
    """Register for value-changed notifications on a discovered characteristic.

    Every payload goes through decoder before on_value is called. A payload
    that fails to decode is handed to on_value as the error argument so the
    caller can log it and keep listening.

    Args:
        connection: Open connection owning the characteristic
        characteristic: Handle resolved during discovery
        decoder: Codec function for the characteristic's wire type
        on_value: Callback receiving (value, error)

    Returns:
        Subscription token tied to the connection lifetime

    Raises:
        CharacteristicNotFoundError: If discovery did not resolve the characteristic
        NotificationUnsupportedError: If the characteristic cannot notify
    """
    if characteristic is None:
        raise CharacteristicNotFoundError("Cannot subscribe: characteristic not discovered")

    if not _NOTIFY_PROPERTIES.intersection(characteristic.properties):
        raise NotificationUnsupportedError(
            f"Characteristic {characteristic.uuid} does not support notifications"
        )

    subscription: Subscription[_V] = Subscription(characteristic_uuid=characteristic.uuid)

    def _handle(sender: BleakGATTCharacteristic, data: bytearray) -> None:
        if not subscription.active:
            return
        subscription.received += 1
        try:
            value = decoder(bytes(data))
        except MalformedPayloadError as err:
            on_value(None, err)
            return
        on_value(value, None)

    await connection.start_notify(characteristic, _handle, subscription)
    return subscription
