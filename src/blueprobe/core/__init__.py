from __future__ import annotations

from .client import BluetoothClient
from .commands import ToolCommands
from .parsing import (
    is_valid_address,
    parse_adapter_status,
    parse_announcement,
    parse_device_info,
    parse_device_listing,
    parse_rfkill_status,
)
from .runner import CommandOutcome, CommandRunner
from .session import LineBuffer, ScanSession, SessionState

__all__ = [
    "BluetoothClient",
    "CommandOutcome",
    "CommandRunner",
    "LineBuffer",
    "ScanSession",
    "SessionState",
    "ToolCommands",
    "is_valid_address",
    "parse_adapter_status",
    "parse_announcement",
    "parse_device_info",
    "parse_device_listing",
    "parse_rfkill_status",
]
