from __future__ import annotations

from enum import StrEnum


class BluetoothStatus(StrEnum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    UNKNOWN = "unknown"
