"""Validated write commands for Crafty devices."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..exceptions import InvalidOptionError, ValidationError
from .codec import encode_fixed_point_u16, encode_flag

# Temperature limits in whole degrees Celsius
MIN_TEMPERATURE_C = 0
MAX_TEMPERATURE_C = 210

CHARGE_INDICATOR_OPTIONS = {"ON": True, "OFF": False}


class CommandKind(Enum):
    """Writes the dispatcher knows how to issue."""

    SET_TEMPERATURE = "set-temperature"
    SET_BOOST = "set-boost"
    SET_CHARGE_INDICATOR = "set-charge-indicator"


@dataclass(frozen=True)
class PendingCommand:
    """A validated command ready to be written.

    Attributes:
        kind: Which write this is
        requested: Value as supplied by the caller
        value: Value actually sent (whole degrees, or the flag state)
        payload: Encoded bytes for the characteristic
        clamped: True when value differs from requested because of clamping
    """

    kind: CommandKind
    requested: int | str
    value: int | bool
    payload: bytes
    clamped: bool = False


def build_set_temperature(celsius: int) -> PendingCommand:
    """Validate a setpoint and encode it as deci-degrees.

    Raises:
        ValidationError: If celsius is outside 0-210
    """
    if celsius > MAX_TEMPERATURE_C:
        raise ValidationError(f"Temperature cannot exceed {MAX_TEMPERATURE_C}.")
    if celsius < MIN_TEMPERATURE_C:
        raise ValidationError("Temperature must be positive.")
    return PendingCommand(
        kind=CommandKind.SET_TEMPERATURE,
        requested=celsius,
        value=celsius,
        payload=encode_fixed_point_u16(celsius * 10),
    )


def build_set_boost(base_temp: int, boost_offset: int) -> PendingCommand | None:
    """Validate a boost offset, clamping it so base + boost stays within 210.

    Args:
        base_temp: Setpoint the boost is added to, in whole degrees
        boost_offset: Requested boost in whole degrees

    Returns:
        The command to send, or None when the effective boost is 0

    Raises:
        ValidationError: If boost_offset is negative
    """
    if boost_offset < 0:
        raise ValidationError("Boost must be positive.")

    effective = max(0, min(boost_offset, MAX_TEMPERATURE_C - base_temp))
    if effective == 0:
        return None

    return PendingCommand(
        kind=CommandKind.SET_BOOST,
        requested=boost_offset,
        value=effective,
        payload=encode_fixed_point_u16(effective * 10),
        clamped=effective != boost_offset,
    )


def build_set_charge_indicator(option: str) -> PendingCommand:
    """Parse the literal ON/OFF token (case-sensitive).

    Raises:
        InvalidOptionError: For anything other than ON or OFF
    """
    if option not in CHARGE_INDICATOR_OPTIONS:
        raise InvalidOptionError(
            f"Unrecognized option [{option}] for charge indicator. Must be ON or OFF."
        )
    on = CHARGE_INDICATOR_OPTIONS[option]
    return PendingCommand(
        kind=CommandKind.SET_CHARGE_INDICATOR,
        requested=option,
        value=on,
        payload=encode_flag(on),
    )
