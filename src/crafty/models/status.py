"""Device status model."""

from __future__ import annotations

from dataclasses import dataclass


def format_deci(value: int) -> str:
    """Render a deci-unit integer with one fractional digit (175 -> "17.5")."""
    return f"{value // 10}.{value % 10}"


@dataclass
class DeviceStatus:
    """Live values of the data service.

    Temperatures are stored as read from the device, in tenths of a degree
    Celsius. Battery and LED brightness are whole percent.

    A snapshot from read_status() is built in one pass. Fields updated from
    notifications change independently of each other and are not a
    consistent snapshot.
    """

    identity: str
    current_temp_deci: int = 0
    setpoint_deci: int = 0
    boost_deci: int = 0
    battery_percent: int = 0
    led_brightness_percent: int = 0

    @property
    def current_temp_celsius(self) -> float:
        return self.current_temp_deci / 10

    @property
    def setpoint_celsius(self) -> float:
        return self.setpoint_deci / 10

    @property
    def boost_celsius(self) -> float:
        return self.boost_deci / 10

    @property
    def setpoint_whole_celsius(self) -> int:
        """Setpoint truncated to whole degrees, the unit commands use."""
        return self.setpoint_deci // 10

    def __str__(self) -> str:
        return (
            f"Current Temp: {format_deci(self.current_temp_deci)} C\n"
            f"Setpoint: {format_deci(self.setpoint_deci)} C\n"
            f"Boost: +{format_deci(self.boost_deci)} C\n"
            f"Battery level: {self.battery_percent}%\n"
            f"LED brightness: {self.led_brightness_percent}%"
        )
