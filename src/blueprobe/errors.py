"""Error kinds surfaced by blueprobe operations."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    COMMAND_NOT_FOUND = "command_not_found"
    COMMAND_FAILED = "command_failed"
    PARSE_ERROR = "parse_error"
    UNKNOWN_ERROR = "unknown_error"


class BluetoothError(Exception):
    """A failed Bluetooth operation, tagged with its :class:`ErrorKind`."""

    def __init__(
        self, kind: ErrorKind, message: str, exit_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.exit_code = exit_code

    def __repr__(self) -> str:
        return (
            f"BluetoothError(kind={self.kind.value!r}, message={self.message!r}, "
            f"exit_code={self.exit_code!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BluetoothError):
            return NotImplemented
        return (self.kind, self.message, self.exit_code) == (
            other.kind,
            other.message,
            other.exit_code,
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.message, self.exit_code))

    @classmethod
    def not_found(cls, executable: str) -> BluetoothError:
        return cls(ErrorKind.COMMAND_NOT_FOUND, f"Command not found: {executable}")

    @classmethod
    def failed(cls, exit_code: int, stderr: str = "") -> BluetoothError:
        message = stderr.strip() or f"Command failed with exit code {exit_code}"
        return cls(ErrorKind.COMMAND_FAILED, message, exit_code=exit_code)

    @classmethod
    def parse(cls, message: str) -> BluetoothError:
        return cls(ErrorKind.PARSE_ERROR, message)

    @classmethod
    def unknown(cls, message: str) -> BluetoothError:
        return cls(ErrorKind.UNKNOWN_ERROR, message or "Unknown error occurred")
