"""Parsers for bluetoothctl and rfkill text output."""

from __future__ import annotations

import re

from blueprobe.errors import BluetoothError
from blueprobe.models import Announcement, BluetoothDevice, BluetoothStatus

# Strip ANSI escape sequences like \x1b[0;94m and similar.
ANSI_ESCAPE_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")

MAC_PATTERN = r"(?:[0-9A-F]{2}:){5}[0-9A-F]{2}"

ANNOUNCEMENT_RE = re.compile(
    rf"\[(?:NEW|CHG)\]\s+Device\s+({MAC_PATTERN})(?:\s+(.+))?",
    re.IGNORECASE,
)
DEVICE_LISTING_RE = re.compile(rf"Device\s+({MAC_PATTERN})(?:\s+(.+))?", re.IGNORECASE)
ADDRESS_RE = re.compile(rf"^{MAC_PATTERN}$", re.IGNORECASE)
SIGNED_INT_RE = re.compile(r"-?\d+")
RFKILL_BLOCK_RE = re.compile(r"(Soft|Hard) blocked:\s*(yes|no)")


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def is_valid_address(value: str | None) -> bool:
    if not value:
        return False
    return bool(ADDRESS_RE.match(value.strip()))


def _remainder(line: str, prefix: str) -> str:
    return line[len(prefix) :].strip()


def parse_device_info(address: str, output: str) -> BluetoothDevice:
    """Build a device record from ``bluetoothctl info`` output.

    Never fails: fields that are missing keep their defaults.
    """
    fields: dict[str, object] = {}

    for raw_line in output.splitlines():
        line = raw_line.lstrip()
        if line.startswith("Name:"):
            fields["name"] = _remainder(line, "Name:") or None
        elif line.startswith("Paired:"):
            fields["paired"] = "yes" in _remainder(line, "Paired:")
        elif line.startswith("Connected:"):
            fields["connected"] = "yes" in _remainder(line, "Connected:")
        elif line.startswith("Trusted:"):
            fields["trusted"] = "yes" in _remainder(line, "Trusted:")
        elif line.startswith("RSSI:"):
            match = SIGNED_INT_RE.search(_remainder(line, "RSSI:"))
            if match:
                fields["rssi"] = int(match.group(0))
        elif line.startswith("Icon:"):
            fields["icon"] = _remainder(line, "Icon:") or None

    return BluetoothDevice.model_validate({"address": address, **fields})


def parse_announcement(line: str) -> Announcement | None:
    """Recognise a ``[NEW]``/``[CHG] Device <address> [name]`` line."""
    match = ANNOUNCEMENT_RE.search(strip_ansi(line))
    if match is None:
        return None
    name = (match.group(2) or "").strip() or None
    return Announcement(address=match.group(1), name=name)


def parse_device_listing(output: str) -> list[Announcement]:
    """Parse ``Device <address> <name>`` lines from ``bluetoothctl devices``."""
    entries: list[Announcement] = []
    for line in output.splitlines():
        match = DEVICE_LISTING_RE.search(strip_ansi(line))
        if match is None:
            continue
        name = (match.group(2) or "").strip() or None
        entries.append(Announcement(address=match.group(1), name=name))
    return entries


def parse_adapter_status(output: str) -> BluetoothStatus:
    if "Powered: yes" in output:
        return BluetoothStatus.ENABLED
    if "Powered: no" in output:
        return BluetoothStatus.DISABLED
    raise BluetoothError.parse("Could not parse Bluetooth status from output")


def parse_rfkill_status(output: str) -> BluetoothStatus:
    blocks = RFKILL_BLOCK_RE.findall(output)
    if not blocks:
        raise BluetoothError.parse("Could not parse rfkill status from output")
    if any(state == "yes" for _, state in blocks):
        return BluetoothStatus.DISABLED
    return BluetoothStatus.ENABLED
