from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from blueprobe.errors import BluetoothError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutcome:
    """Captured stdout of a finished command, or the error that stopped it."""

    stdout: str = ""
    error: BluetoothError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        if self.error is not None:
            raise self.error
        return self.stdout


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class CommandRunner:
    """Run one-shot external commands and capture their output."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    async def run(self, argv: Sequence[str]) -> CommandOutcome:
        if not argv:
            return CommandOutcome(error=BluetoothError.unknown("Empty command"))

        logger.debug("Running %s", " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError):
            logger.debug("Executable not found: %s", argv[0])
            return CommandOutcome(error=BluetoothError.not_found(argv[0]))
        except (OSError, ValueError) as exc:
            return CommandOutcome(error=BluetoothError.unknown(str(exc)))

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout
            )
        except (asyncio.TimeoutError, TimeoutError):
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            logger.debug("%s timed out after %.2fs", argv[0], self._timeout)
            return CommandOutcome(
                error=BluetoothError.unknown(
                    f"Command {' '.join(argv)} timed out after {self._timeout}s"
                )
            )
        except OSError as exc:
            return CommandOutcome(error=BluetoothError.unknown(str(exc)))

        exit_code = proc.returncode
        if exit_code != 0:
            code = -1 if exit_code is None else exit_code
            logger.debug("%s exited with %d", argv[0], code)
            return CommandOutcome(error=BluetoothError.failed(code, _decode(stderr)))

        return CommandOutcome(stdout=_decode(stdout))
