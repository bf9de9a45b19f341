"""Interactive discovery session driven through a long-lived bluetoothctl.

A session spawns ``bluetoothctl`` in interactive mode, sends ``scan on`` and
streams its output while three activities run side by side:

* the read loop, which buffers partial lines, recognises ``[NEW]``/``[CHG]``
  announcements and enriches every new address with a detail lookup,
* the progress ticker, which reports elapsed time at a fixed interval,
* the stop race between the scan duration and an optional cancel event.

Whichever side of the race finishes first moves the session into draining:
``scan off`` and ``exit`` are written, stdin is closed, the read loop gets a
short grace period to see end of stream and the child is then killed if it
is still alive.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from blueprobe.errors import BluetoothError
from blueprobe.models import BluetoothDevice

from .commands import EXIT, SCAN_OFF, SCAN_ON, ToolCommands
from .parsing import parse_announcement, parse_device_info
from .runner import CommandRunner

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096
DEFAULT_PROGRESS_INTERVAL = 0.1
DEFAULT_GRACE_PERIOD = 0.5

ProgressCallback = Callable[[float], None]
DeviceCallback = Callable[[BluetoothDevice], None]


class SessionState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    SCANNING = "scanning"
    DRAINING = "draining"
    STOPPED = "stopped"


class LineBuffer:
    """Accumulate streamed text and hand out complete lines."""

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, text: str) -> list[str]:
        self._pending += text
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> str:
        rest, self._pending = self._pending, ""
        return rest.rstrip("\r")


class ScanSession:
    """One discovery run. Instances are single-use."""

    def __init__(
        self,
        runner: CommandRunner,
        commands: ToolCommands | None = None,
        *,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> None:
        self._runner = runner
        self._commands = commands or ToolCommands()
        self._progress_interval = progress_interval
        self._grace_period = grace_period

        self._state = SessionState.IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._devices: list[BluetoothDevice] = []
        self._seen: set[str] = set()
        self._buffer = LineBuffer()
        self._started_at = 0.0
        self._deadline = 0.0
        self._cancel: asyncio.Event | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def devices(self) -> list[BluetoothDevice]:
        return list(self._devices)

    async def run(
        self,
        duration: float,
        on_progress: ProgressCallback | None = None,
        on_device_found: DeviceCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[BluetoothDevice]:
        """Scan for ``duration`` seconds or until ``cancel`` is set.

        Raises :class:`BluetoothError` only when bluetoothctl cannot be
        started. Failed detail lookups are skipped.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError("ScanSession is single-use; create a new session")
        if duration <= 0:
            raise ValueError(f"Scan duration must be positive, got {duration}")

        self._state = SessionState.STARTING
        try:
            process = await self._spawn()
        except BluetoothError:
            self._state = SessionState.STOPPED
            raise
        self._process = process
        self._started_at = asyncio.get_running_loop().time()
        self._deadline = self._started_at + duration
        self._cancel = cancel

        await self._send(SCAN_ON)
        self._state = SessionState.SCANNING
        logger.debug("Discovery started for %.2fs (pid %s)", duration, process.pid)

        assert process.stdout is not None
        reader = asyncio.create_task(self._read_loop(process.stdout, on_device_found))
        ticker = (
            asyncio.create_task(self._report_progress(duration, on_progress))
            if on_progress is not None
            else None
        )

        failures: list[BaseException] = []
        try:
            reason = await self._wait_for_stop(duration, cancel)
            logger.debug("Stopping discovery (%s)", reason)
        finally:
            self._state = SessionState.DRAINING
            if ticker is not None:
                ticker.cancel()
                failures.extend(await self._collect(ticker))
            await self._send_shutdown()
            failures.extend(await self._drain(reader))
            self._state = SessionState.STOPPED

        if failures:
            raise failures[0]

        logger.debug("Discovery finished with %d device(s)", len(self._devices))
        return list(self._devices)

    async def _spawn(self) -> asyncio.subprocess.Process:
        argv = self._commands.interactive()
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            raise BluetoothError.not_found(argv[0]) from exc
        except (OSError, ValueError) as exc:
            raise BluetoothError.unknown(str(exc)) from exc

    async def _wait_for_stop(
        self, duration: float, cancel: asyncio.Event | None
    ) -> str:
        timer = asyncio.create_task(asyncio.sleep(duration))
        waiters: set[asyncio.Task[Any]] = {timer}
        if cancel is not None:
            waiters.add(asyncio.create_task(cancel.wait()))

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self._state = SessionState.DRAINING
            for waiter in waiters:
                waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        return "timeout" if timer in done else "cancelled"

    async def _report_progress(
        self, duration: float, on_progress: ProgressCallback
    ) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self._progress_interval)
            on_progress(min(loop.time() - self._started_at, duration))

    async def _read_loop(
        self, stdout: asyncio.StreamReader, on_device_found: DeviceCallback | None
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            try:
                chunk = await stdout.read(READ_CHUNK_SIZE)
            except (ConnectionResetError, BrokenPipeError) as exc:
                logger.debug("bluetoothctl output closed: %s", exc)
                break
            if not chunk:
                break
            for line in self._buffer.feed(decoder.decode(chunk)):
                await self._handle_line(line, on_device_found)

        tail = self._buffer.feed(decoder.decode(b"", final=True))
        tail.append(self._buffer.flush())
        for line in tail:
            if line:
                await self._handle_line(line, on_device_found)

    async def _handle_line(
        self, line: str, on_device_found: DeviceCallback | None
    ) -> None:
        announcement = parse_announcement(line)
        if announcement is None or announcement.address in self._seen:
            return

        address = announcement.address
        if self._state is not SessionState.SCANNING or self._stop_requested():
            logger.debug("Ignoring %s announced after discovery stopped", address)
            return

        self._seen.add(address)
        outcome = await self._runner.run(self._commands.info(address))
        if outcome.error is not None:
            logger.debug("Skipping %s: %s", address, outcome.error.message)
            return

        device = parse_device_info(address, outcome.stdout)
        self._devices.append(device)
        logger.debug("Discovered %s (%s)", device.address, device.name or "unnamed")
        if on_device_found is not None:
            on_device_found(device)

    def _stop_requested(self) -> bool:
        # The read loop can run before the stop race's waiter resumes.
        if self._cancel is not None and self._cancel.is_set():
            return True
        return asyncio.get_running_loop().time() >= self._deadline

    async def _send(self, command: str) -> None:
        assert self._process is not None
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing():
            return
        try:
            stdin.write(f"{command}\n".encode())
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            logger.debug("Could not send %r to bluetoothctl: %s", command, exc)

    async def _send_shutdown(self) -> None:
        assert self._process is not None
        await self._send(SCAN_OFF)
        await self._send(EXIT)
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()

    async def _drain(self, reader: asyncio.Task[None]) -> list[BaseException]:
        assert self._process is not None
        try:
            done, _ = await asyncio.wait({reader}, timeout=self._grace_period)
            if reader not in done:
                logger.debug(
                    "bluetoothctl still running after %.2fs, killing it",
                    self._grace_period,
                )
        finally:
            self._terminate()

        await self._process.wait()
        return await self._collect(reader)

    def _terminate(self) -> None:
        assert self._process is not None
        if self._process.returncode is not None:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            pass

    @staticmethod
    async def _collect(task: asyncio.Task[None]) -> list[BaseException]:
        (outcome,) = await asyncio.gather(task, return_exceptions=True)
        if isinstance(outcome, Exception):
            return [outcome]
        return []
