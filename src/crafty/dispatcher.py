"""Validated writes to a connected Crafty."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from .exceptions import CommandError, ConnectionClosedError, CraftyError
from .protocol import (
    CommandKind,
    PendingCommand,
    build_set_boost,
    build_set_charge_indicator,
    build_set_temperature,
)
from .services import DataService, SettingsService

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandRequest:
    """Values requested by the user; None means "leave unchanged"."""

    temperature: int | None = None
    boost: int | None = None
    charge_indicator: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.temperature is None and self.boost is None and self.charge_indicator is None


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one requested command.

    Attributes:
        kind: Which command this was
        sent: True if a write was issued and acknowledged
        command: The validated command, if validation passed
        error: Why the command was skipped or failed
        observed: Charge indicator state read back after the write
    """

    kind: CommandKind
    sent: bool
    command: PendingCommand | None = None
    error: CraftyError | None = None
    observed: bool | None = None


def _noop_report(message: str) -> None:
    pass


@dataclass
class CommandDispatcher:
    """Validate commands and write them through discovered service handles.

    report receives the user-facing progress lines ("Setting temperature
    point to 180", "Clamped boost temp to +10 C", ...).
    """

    report: Callable[[str], None] = field(default=_noop_report)

    async def set_temperature(self, data_service: DataService, celsius: int) -> CommandResult:
        """Write a new setpoint.

        Raises:
            ValidationError: If celsius is outside 0-210; nothing is written
        """
        command = build_set_temperature(celsius)
        self.report(f"Setting temperature point to {command.value}")
        await data_service.write_setpoint(command.payload)
        _LOGGER.info("Setpoint written: %d C", command.value)
        return CommandResult(kind=command.kind, sent=True, command=command)

    async def set_boost(
            self,
            data_service: DataService,
            base_temp: int,
            boost_offset: int,
    ) -> CommandResult:
        """Write a boost offset clamped so base_temp + boost <= 210.

        An effective boost of 0 writes nothing.

        Raises:
            ValidationError: If boost_offset is negative
        """
        command = build_set_boost(base_temp, boost_offset)
        if command is None:
            _LOGGER.info("Effective boost is 0 for base %d C, nothing to write", base_temp)
            return CommandResult(kind=CommandKind.SET_BOOST, sent=False)

        if command.clamped:
            self.report(f"Clamped boost temp to +{command.value} C")
        self.report(f"Setting boost temp to +{command.value} C")
        await data_service.write_boost(command.payload)
        return CommandResult(kind=command.kind, sent=True, command=command)

    async def set_charge_indicator(
            self,
            settings_service: SettingsService,
            option: str,
    ) -> CommandResult:
        """Switch the charge indicator lamp with the literal ON or OFF.

        The flag is read back after the write: the write acknowledgment
        alone has not proven that the device applied the setting.

        Raises:
            InvalidOptionError: For any other token; nothing is written
        """
        command = build_set_charge_indicator(option)
        self.report(f"Turning charge indicator {option}.")
        await settings_service.write_charge_indicator(command.payload)

        observed: bool | None = None
        try:
            observed = await settings_service.read_charge_indicator()
        except ConnectionClosedError:
            raise
        except CraftyError as err:
            _LOGGER.warning("Failed to read charging indicator status: %s", err)
        else:
            self.report(f"Charging indicator: {'ON' if observed else 'OFF'}")
            if observed != command.value:
                _LOGGER.warning(
                    "Charge indicator reads %s after writing %s", observed, option
                )

        return CommandResult(kind=command.kind, sent=True, command=command, observed=observed)

    async def execute(
            self,
            request: CommandRequest,
            data_service: DataService,
            settings_service: SettingsService,
            current_setpoint: int,
    ) -> list[CommandResult]:
        """Run every requested command in order: temperature, boost, charge indicator.

        A rejected or failed command is reported and skipped; the others
        still run. A closed connection stops the batch.

        Args:
            request: Requested values
            data_service: Discovered data service
            settings_service: Discovered settings service
            current_setpoint: Device setpoint in whole degrees, used as the
                boost base when no new temperature was accepted
        """
        results: list[CommandResult] = []
        base_temp = current_setpoint

        if request.temperature is not None:
            result = await self._guarded(
                CommandKind.SET_TEMPERATURE,
                self.set_temperature(data_service, request.temperature),
            )
            if result.sent:
                base_temp = request.temperature
            results.append(result)

        if request.boost is not None:
            results.append(await self._guarded(
                CommandKind.SET_BOOST,
                self.set_boost(data_service, base_temp, request.boost),
            ))

        if request.charge_indicator is not None:
            results.append(await self._guarded(
                CommandKind.SET_CHARGE_INDICATOR,
                self.set_charge_indicator(settings_service, request.charge_indicator),
            ))

        return results

    async def _guarded(self, kind: CommandKind, call: Awaitable[CommandResult]) -> CommandResult:
        try:
            return await call
        except ConnectionClosedError:
            raise
        except CommandError as err:
            self.report(str(err))
            return CommandResult(kind=kind, sent=False, error=err)
        except CraftyError as err:
            _LOGGER.error("%s failed: %s", kind.value, err)
            self.report(f"Failed to {kind.value.replace('-', ' ')}: {err}")
            return CommandResult(kind=kind, sent=False, error=err)
