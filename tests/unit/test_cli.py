from __future__ import annotations

from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from crafty import cli
from crafty.dispatcher import CommandResult
from crafty.exceptions import DeviceNotFoundError, ValidationError
from crafty.models import CraftyAdvertisement, DeviceMetadata, DeviceStatus, SelectorKind
from crafty.protocol import CommandKind
from crafty.scanner import FoundDevice

ADDRESS = "AA:BB:CC:DD:EE:FF"

runner = CliRunner()


def _session():
    return SimpleNamespace(
        metadata=DeviceMetadata(ADDRESS, "Crafty+", "02.51", "CY123456"),
        status=DeviceStatus(
            identity=ADDRESS,
            current_temp_deci=1750,
            setpoint_deci=1800,
            boost_deci=100,
            battery_percent=85,
            led_brightness_percent=50,
        ),
        charge_indicator=False,
    )


class FakeController:
    instances: list[FakeController] = []
    results: list[CommandResult] = []
    error: Exception | None = None

    def __init__(self, selector, **kwargs):
        self.selector = selector
        self.kwargs = kwargs
        self.actions = []
        FakeController.instances.append(self)

    async def run(self, action, on_ready=None):
        self.actions.append(action)
        if self.error is not None:
            raise self.error
        session = _session()
        if on_ready is not None:
            on_ready(session)
        if hasattr(action, "results"):
            action.results = list(self.results)
        return session


@pytest.fixture(autouse=True)
def fake_controller(monkeypatch):
    for name in ("CRAFTY_SN", "CRAFTY_ID", "CRAFTY_SCAN_TIMEOUT", "CRAFTY_CONNECT_TIMEOUT",
                 "CRAFTY_OPERATION_TIMEOUT", "CRAFTY_CONNECT_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)
    FakeController.instances = []
    FakeController.results = []
    FakeController.error = None
    monkeypatch.setattr(cli, "CraftyController", FakeController)
    return FakeController


def test_status_command():
    result = runner.invoke(cli.app, ["status"], env={"CRAFTY_SN": "CY123456"})

    assert result.exit_code == 0
    assert "Crafty+ SN:CY123456 FW:02.51 ID:AA:BB:CC:DD:EE:FF" in result.stdout
    assert "Current Temp: 175.0 C" in result.stdout
    assert "Boost: +10.0 C" in result.stdout
    assert "Battery level: 85%" in result.stdout
    assert "Charging indicator: OFF" in result.stdout
    (controller,) = FakeController.instances
    assert controller.selector.kind is SelectorKind.SERIAL
    assert controller.selector.value == "CY123456"


def test_device_id_env_wins():
    result = runner.invoke(
        cli.app, ["status"], env={"CRAFTY_SN": "CY123456", "CRAFTY_ID": ADDRESS}
    )

    assert result.exit_code == 0
    assert FakeController.instances[0].selector.kind is SelectorKind.DEVICE_ID


def test_timeouts_from_env_and_options():
    result = runner.invoke(
        cli.app,
        ["status", "--serial", "CY654321", "--scan-timeout", "12"],
        env={"CRAFTY_CONNECT_TIMEOUT": "7", "CRAFTY_CONNECT_ATTEMPTS": "2"},
    )

    assert result.exit_code == 0
    controller = FakeController.instances[0]
    assert controller.selector.value == "CY654321"
    assert controller.kwargs["scan_timeout"] == 12.0
    assert controller.kwargs["connect_timeout"] == 7.0
    assert controller.kwargs["max_attempts"] == 2


def test_missing_serial_is_clean_error():
    result = runner.invoke(cli.app, ["status"])

    assert result.exit_code == 1
    assert "CRAFTY_SN must be set" in result.stderr
    assert FakeController.instances == []


def test_bad_env_value():
    result = runner.invoke(
        cli.app, ["status"], env={"CRAFTY_SN": "CY123456", "CRAFTY_SCAN_TIMEOUT": "soon"}
    )

    assert result.exit_code == 1
    assert "CRAFTY_SCAN_TIMEOUT must be a number" in result.stderr


def test_device_not_found():
    FakeController.error = DeviceNotFoundError("No Crafty matching serial=CY123456 found within 30.0s")

    result = runner.invoke(cli.app, ["status"], env={"CRAFTY_SN": "CY123456"})

    assert result.exit_code == 1
    assert "Error: No Crafty matching serial=CY123456" in result.stderr
    assert "Traceback" not in result.stderr


def test_set_requires_a_value():
    result = runner.invoke(cli.app, ["set"], env={"CRAFTY_SN": "CY123456"})

    assert result.exit_code == 2
    assert "nothing to set" in result.stderr
    assert FakeController.instances == []


def test_set_builds_request():
    FakeController.results = [CommandResult(kind=CommandKind.SET_TEMPERATURE, sent=True)]

    result = runner.invoke(
        cli.app,
        ["set", "--temp", "185", "--boost", "15", "--charge-indicator", "OFF"],
        env={"CRAFTY_SN": "CY123456"},
    )

    assert result.exit_code == 0
    action = FakeController.instances[0].actions[0]
    assert action.request.temperature == 185
    assert action.request.boost == 15
    assert action.request.charge_indicator == "OFF"


def test_set_failed_command_exit_code():
    FakeController.results = [
        CommandResult(
            kind=CommandKind.SET_TEMPERATURE,
            sent=False,
            error=ValidationError("Temperature cannot exceed 210."),
        )
    ]

    result = runner.invoke(cli.app, ["set", "--temp", "250"], env={"CRAFTY_SN": "CY123456"})

    assert result.exit_code == 1


def test_scan_lists_devices(monkeypatch):
    calls = {}

    async def fake_discover(timeout, **kwargs):
        calls.update(kwargs, timeout=timeout)
        return [
            FoundDevice(
                CraftyAdvertisement(ADDRESS, "STORZ&BICKEL", "CY123456", -61),
                DeviceMetadata(ADDRESS, "Crafty+", "02.51", "CY123456"),
            ),
            FoundDevice(CraftyAdvertisement("11:22:33:44:55:66", None, None, -80)),
        ]

    monkeypatch.setattr(cli, "discover_devices", fake_discover)
    result = runner.invoke(
        cli.app, ["scan", "--timeout", "1"], env={"CRAFTY_OPERATION_TIMEOUT": "2"}
    )

    assert result.exit_code == 0
    assert f"Crafty+ SN:CY123456 FW:02.51 ID:{ADDRESS} RSSI:-61" in result.stdout
    assert "11:22:33:44:55:66 <unknown-name> SN:? RSSI:-80" in result.stdout
    assert calls["timeout"] == 1.0
    assert calls["read_metadata"] is True
    assert calls["operation_timeout"] == 2.0


def test_scan_without_metadata(monkeypatch):
    calls = {}

    async def fake_discover(timeout, **kwargs):
        calls.update(kwargs)
        return []

    monkeypatch.setattr(cli, "discover_devices", fake_discover)
    result = runner.invoke(cli.app, ["scan", "--no-metadata"])

    assert result.exit_code == 0
    assert calls["read_metadata"] is False


def test_scan_nothing_found(monkeypatch):
    async def fake_discover(timeout, **kwargs):
        return []

    monkeypatch.setattr(cli, "discover_devices", fake_discover)
    result = runner.invoke(cli.app, ["scan"])

    assert result.exit_code == 0
    assert "No Crafty devices found" in result.stdout


def test_monitor_prints_ready_snapshot():
    result = runner.invoke(cli.app, ["monitor"], env={"CRAFTY_SN": "CY123456"})

    assert result.exit_code == 0
    assert "Setpoint: 180.0 C" in result.stdout
    action = FakeController.instances[0].actions[0]
