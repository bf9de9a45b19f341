"""Argument lists for the external adapter tools."""

from __future__ import annotations

from dataclasses import dataclass

from blueprobe.config import ToolsConfig

SCAN_ON = "scan on"
SCAN_OFF = "scan off"
EXIT = "exit"


@dataclass(frozen=True)
class ToolCommands:
    bluetoothctl: str = "bluetoothctl"
    rfkill: str = "rfkill"

    @classmethod
    def from_config(cls, config: ToolsConfig) -> ToolCommands:
        return cls(bluetoothctl=config.bluetoothctl, rfkill=config.rfkill)

    def interactive(self) -> list[str]:
        return [self.bluetoothctl]

    def show(self) -> list[str]:
        return [self.bluetoothctl, "show"]

    def power(self, on: bool) -> list[str]:
        return [self.bluetoothctl, "power", "on" if on else "off"]

    def scan(self, on: bool) -> list[str]:
        return [self.bluetoothctl, "scan", "on" if on else "off"]

    def info(self, address: str) -> list[str]:
        return [self.bluetoothctl, "info", address]

    def devices(self, filter_: str | None = None) -> list[str]:
        argv = [self.bluetoothctl, "devices"]
        if filter_:
            argv.append(filter_)
        return argv

    def device_action(self, action: str, address: str) -> list[str]:
        return [self.bluetoothctl, action, address]

    def rfkill_status(self) -> list[str]:
        return [self.rfkill, "list", "bluetooth"]
