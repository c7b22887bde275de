"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging

import typer

from .config import CraftyConfig
from .device import CommandAction, CraftyController, CraftySession, MonitorAction, StatusAction
from .dispatcher import CommandDispatcher, CommandRequest
from .exceptions import CraftyError
from .models import format_deci
from .scanner import discover_devices

app = typer.Typer(help="Read and control a Storz & Bickel Crafty over Bluetooth LE")

_DEVICE_HELP = "Device address / identifier (overrides CRAFTY_ID)"
_SERIAL_HELP = "Serial number from the device label, like CYxxxxxx (overrides CRAFTY_SN)"
_SCAN_TIMEOUT_HELP = "Seconds to scan for the device"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log protocol details to stderr"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(device: str | None, serial: str | None, scan_timeout: float | None) -> CraftyConfig:
    return CraftyConfig.from_env().with_overrides(
        device_id=device,
        serial=serial,
        scan_timeout=scan_timeout,
    )


def _build_controller(config: CraftyConfig) -> CraftyController:
    return CraftyController(
        config.require_selector(),
        scan_timeout=config.scan_timeout,
        connect_timeout=config.connect_timeout,
        operation_timeout=config.operation_timeout,
        max_attempts=config.connect_attempts,
    )


def _print_session(session: CraftySession) -> None:
    typer.echo(str(session.metadata))
    typer.echo(str(session.status))
    if session.charge_indicator is not None:
        typer.echo(f"Charging indicator: {'ON' if session.charge_indicator else 'OFF'}")


@app.command("status")
def status(
    device: str | None = typer.Option(None, "--device", help=_DEVICE_HELP),
    serial: str | None = typer.Option(None, "--serial", help=_SERIAL_HELP),
    scan_timeout: float | None = typer.Option(None, "--scan-timeout", help=_SCAN_TIMEOUT_HELP),
) -> None:
    """Connect once, print metadata and status, and disconnect."""
    try:
        controller = _build_controller(_load_config(device, serial, scan_timeout))
        asyncio.run(controller.run(StatusAction(), on_ready=_print_session))
    except CraftyError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("monitor")
def monitor(
    device: str | None = typer.Option(None, "--device", help=_DEVICE_HELP),
    serial: str | None = typer.Option(None, "--serial", help=_SERIAL_HELP),
    scan_timeout: float | None = typer.Option(None, "--scan-timeout", help=_SCAN_TIMEOUT_HELP),
) -> None:
    """Print battery and temperature notifications until interrupted."""

    def on_temperature(value: int | None, error: Exception | None) -> None:
        if error is not None:
            typer.echo(f"Warning: {error}", err=True)
        elif value is not None:
            typer.echo(f"Current Temp: {format_deci(value)} C")

    def on_battery(value: int | None, error: Exception | None) -> None:
        if error is not None:
            typer.echo(f"Warning: {error}", err=True)
        elif value is not None:
            typer.echo(f"Battery level: {value}%")

    try:
        controller = _build_controller(_load_config(device, serial, scan_timeout))
        action = MonitorAction(on_temperature=on_temperature, on_battery=on_battery)
        asyncio.run(controller.run(action, on_ready=_print_session))
    except KeyboardInterrupt:
        pass
    except CraftyError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set")
def set_values(
    temp: int | None = typer.Option(None, "--temp", help="Base temperature setpoint in C (0-210)"),
    boost: int | None = typer.Option(None, "--boost", help="Boost offset in C, clamped to 210 total"),
    charge_indicator: str | None = typer.Option(
        None, "--charge-indicator", help="Charging indicator lamp: ON or OFF"
    ),
    device: str | None = typer.Option(None, "--device", help=_DEVICE_HELP),
    serial: str | None = typer.Option(None, "--serial", help=_SERIAL_HELP),
    scan_timeout: float | None = typer.Option(None, "--scan-timeout", help=_SCAN_TIMEOUT_HELP),
) -> None:
    """Write temperature, boost and/or charge indicator settings."""
    request = CommandRequest(temperature=temp, boost=boost, charge_indicator=charge_indicator)
    if request.is_empty:
        typer.echo("Error: nothing to set; use --temp, --boost or --charge-indicator", err=True)
        raise typer.Exit(code=2)

    action = CommandAction(request=request, dispatcher=CommandDispatcher(report=typer.echo))
    try:
        controller = _build_controller(_load_config(device, serial, scan_timeout))
        asyncio.run(controller.run(action, on_ready=_print_session))
    except CraftyError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if any(result.error is not None for result in action.results):
        raise typer.Exit(code=1)


@app.command("scan")
def scan(
    timeout: float = typer.Option(10.0, "--timeout", help="Seconds to scan"),
    no_metadata: bool = typer.Option(
        False, "--no-metadata", help="List advertisements only, without connecting"
    ),
) -> None:
    """List Crafty devices nearby with their model, firmware and serial."""
    try:
        config = CraftyConfig.from_env()
        devices = asyncio.run(discover_devices(
            timeout=timeout,
            read_metadata=not no_metadata,
            connect_timeout=config.connect_timeout,
            operation_timeout=config.operation_timeout,
            max_attempts=config.connect_attempts,
        ))
    except CraftyError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if not devices:
        typer.echo("No Crafty devices found")
        return

    typer.echo("======= [Found devices] =======")
    for found in devices:
        typer.echo(str(found))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
