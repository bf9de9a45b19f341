from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Redactor:
    """Mask device identities in printed output.

    Addresses keep their vendor prefix (OUI) and get a stable per-run
    counter in place of the device-specific half.
    """

    enabled: bool = True
    _address_map: dict[str, int] = field(default_factory=dict)

    def redact_address(self, address: str) -> str:
        if not self.enabled:
            return address
        octets = address.upper().split(":")
        if len(octets) != 6:
            return address
        key = ":".join(octets)
        counter = self._address_map.setdefault(key, len(self._address_map) + 1)
        return f"{':'.join(octets[:3])}:XX:XX:{counter:02X}"

    def redact_name(self, name: str | None) -> str:
        if not name:
            return ""
        if not self.enabled:
            return name
        return f"{name[0]}{'*' * min(len(name) - 1, 8)}"
