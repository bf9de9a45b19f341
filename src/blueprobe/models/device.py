from __future__ import annotations

from pydantic import BaseModel, field_validator


def canonical_address(value: str) -> str:
    return value.strip().upper()


class BluetoothDevice(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    address: str
    name: str | None = None
    paired: bool = False
    connected: bool = False
    trusted: bool = False
    rssi: int | None = None
    icon: str | None = None

    @field_validator("address")
    @classmethod
    def _canonical_address(cls, value: str) -> str:
        return canonical_address(value)

    @property
    def display_name(self) -> str:
        return self.name or self.address


class Announcement(BaseModel):
    """A device announced by interactive discovery output."""

    model_config = {"frozen": True, "extra": "forbid"}

    address: str
    name: str | None = None

    @field_validator("address")
    @classmethod
    def _canonical_address(cls, value: str) -> str:
        return canonical_address(value)
