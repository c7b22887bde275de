"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping

from .exceptions import ConfigError
from .models import TargetSelector

SERIAL_ENV = "CRAFTY_SN"
DEVICE_ID_ENV = "CRAFTY_ID"

SERIAL_HELP = (
    f"{SERIAL_ENV} must be set to the device serial number from the bottom label, "
    f"like [CYxxxxxx], or {DEVICE_ID_ENV} to the device address"
)


def _positive_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class CraftyConfig:
    selector: TargetSelector | None = None
    scan_timeout: float = 30.0
    connect_timeout: float = 10.0
    operation_timeout: float = 5.0
    connect_attempts: int = 3

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CraftyConfig:
        """Build settings from CRAFTY_* variables.

        CRAFTY_ID (exact device identifier) wins over CRAFTY_SN (serial).
        """
        env = os.environ if environ is None else environ

        selector: TargetSelector | None = None
        device_id = env.get(DEVICE_ID_ENV, "").strip()
        serial = env.get(SERIAL_ENV, "").strip()
        if device_id:
            selector = TargetSelector.device_id(device_id)
        elif serial:
            selector = TargetSelector.serial(serial)

        return cls(
            selector=selector,
            scan_timeout=_positive_float(env, "CRAFTY_SCAN_TIMEOUT", 30.0),
            connect_timeout=_positive_float(env, "CRAFTY_CONNECT_TIMEOUT", 10.0),
            operation_timeout=_positive_float(env, "CRAFTY_OPERATION_TIMEOUT", 5.0),
            connect_attempts=_positive_int(env, "CRAFTY_CONNECT_ATTEMPTS", 3),
        )

    def with_overrides(
            self,
            device_id: str | None = None,
            serial: str | None = None,
            scan_timeout: float | None = None,
    ) -> CraftyConfig:
        """Apply command line overrides; a device id wins over a serial."""
        config = self
        if serial:
            config = replace(config, selector=TargetSelector.serial(serial))
        if device_id:
            config = replace(config, selector=TargetSelector.device_id(device_id))
        if scan_timeout is not None:
            if scan_timeout <= 0:
                raise ConfigError(f"Scan timeout must be positive, got {scan_timeout}")
            config = replace(config, scan_timeout=scan_timeout)
        return config

    def require_selector(self) -> TargetSelector:
        if self.selector is None:
            raise ConfigError(SERIAL_HELP)
        return self.selector
