from __future__ import annotations

import asyncio
import logging

from blueprobe.config import Settings
from blueprobe.errors import ErrorKind
from blueprobe.models import BluetoothDevice, BluetoothStatus

from .commands import ToolCommands
from .parsing import (
    parse_adapter_status,
    parse_device_info,
    parse_device_listing,
    parse_rfkill_status,
)
from .runner import CommandRunner
from .session import (
    DEFAULT_GRACE_PERIOD,
    DEFAULT_PROGRESS_INTERVAL,
    DeviceCallback,
    ProgressCallback,
    ScanSession,
)

logger = logging.getLogger(__name__)

FALLBACK_KINDS = (ErrorKind.COMMAND_NOT_FOUND, ErrorKind.COMMAND_FAILED)


class BluetoothClient:
    """One-shot adapter operations plus interactive discovery.

    Every operation raises :class:`BluetoothError` on the first failure.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        commands: ToolCommands | None = None,
        *,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> None:
        self._runner = runner or CommandRunner()
        self._commands = commands or ToolCommands()
        self._progress_interval = progress_interval
        self._grace_period = grace_period

    @classmethod
    def from_settings(cls, settings: Settings) -> BluetoothClient:
        return cls(
            CommandRunner(timeout=settings.scanning.command_timeout),
            ToolCommands.from_config(settings.tools),
            progress_interval=settings.scanning.progress_interval,
            grace_period=settings.scanning.grace_period,
        )

    async def check_status(self) -> BluetoothStatus:
        outcome = await self._runner.run(self._commands.show())
        if outcome.error is None:
            return parse_adapter_status(outcome.stdout)
        if outcome.error.kind not in FALLBACK_KINDS:
            raise outcome.error

        logger.debug(
            "%s unavailable (%s), falling back to %s",
            self._commands.bluetoothctl,
            outcome.error.message,
            self._commands.rfkill,
        )
        fallback = await self._runner.run(self._commands.rfkill_status())
        return parse_rfkill_status(fallback.unwrap())

    async def power_on(self) -> None:
        await self._execute(self._commands.power(True))

    async def power_off(self) -> None:
        await self._execute(self._commands.power(False))

    async def toggle_power(self, current: BluetoothStatus) -> BluetoothStatus:
        """Flip the adapter power and return the status that was requested."""
        if current is BluetoothStatus.ENABLED:
            await self.power_off()
            return BluetoothStatus.DISABLED
        await self.power_on()
        return BluetoothStatus.ENABLED

    async def start_discovery(self) -> None:
        await self._execute(self._commands.scan(True))

    async def stop_discovery(self) -> None:
        await self._execute(self._commands.scan(False))

    async def get_device_info(self, address: str) -> BluetoothDevice:
        stdout = await self._execute(self._commands.info(address))
        return parse_device_info(address, stdout)

    async def list_paired_devices(self) -> list[BluetoothDevice]:
        return await self._list_devices("Paired")

    async def list_known_devices(self) -> list[BluetoothDevice]:
        return await self._list_devices(None)

    async def connect(self, address: str) -> None:
        await self._device_action("connect", address)

    async def disconnect(self, address: str) -> None:
        await self._device_action("disconnect", address)

    async def pair(self, address: str) -> None:
        await self._device_action("pair", address)

    async def trust(self, address: str) -> None:
        await self._device_action("trust", address)

    async def remove(self, address: str) -> None:
        await self._device_action("remove", address)

    async def scan(
        self,
        duration: float,
        on_progress: ProgressCallback | None = None,
        on_device_found: DeviceCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[BluetoothDevice]:
        session = ScanSession(
            self._runner,
            self._commands,
            progress_interval=self._progress_interval,
            grace_period=self._grace_period,
        )
        return await session.run(duration, on_progress, on_device_found, cancel)

    async def _execute(self, argv: list[str]) -> str:
        outcome = await self._runner.run(argv)
        return outcome.unwrap()

    async def _device_action(self, action: str, address: str) -> None:
        await self._execute(self._commands.device_action(action, address))

    async def _list_devices(self, filter_: str | None) -> list[BluetoothDevice]:
        stdout = await self._execute(self._commands.devices(filter_))

        devices: list[BluetoothDevice] = []
        for entry in parse_device_listing(stdout):
            outcome = await self._runner.run(self._commands.info(entry.address))
            if outcome.error is not None:
                logger.debug("Skipping %s: %s", entry.address, outcome.error.message)
                continue
            devices.append(parse_device_info(entry.address, outcome.stdout))
        return devices
