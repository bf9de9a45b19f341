"""blueprobe - discover, inspect and manage Bluetooth devices through bluetoothctl."""

from __future__ import annotations

from importlib.metadata import version

from .config import ScanningConfig, Settings, ToolsConfig, get_settings
from .core import BluetoothClient, CommandRunner, ScanSession
from .errors import BluetoothError, ErrorKind
from .models import BluetoothDevice, BluetoothStatus

__all__ = [
    "BluetoothClient",
    "BluetoothDevice",
    "BluetoothError",
    "BluetoothStatus",
    "CommandRunner",
    "ErrorKind",
    "ScanSession",
    "ScanningConfig",
    "Settings",
    "ToolsConfig",
    "__version__",
    "get_settings",
]

__version__ = version("blueprobe")
