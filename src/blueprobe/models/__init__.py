"""Data models for blueprobe."""

from blueprobe.models.device import Announcement, BluetoothDevice, canonical_address
from blueprobe.models.status import BluetoothStatus

__all__ = [
    "Announcement",
    "BluetoothDevice",
    "BluetoothStatus",
    "canonical_address",
]
