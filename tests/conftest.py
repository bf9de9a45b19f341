from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import pytest

from blueprobe.config import get_settings
from blueprobe.core import session as session_module
from blueprobe.core.runner import CommandOutcome
from blueprobe.errors import BluetoothError

INFO_TEMPLATE = """Device {address} (public)
\tName: {name}
\tAlias: {name}
\tClass: 0x00240404
\tIcon: audio-card
\tPaired: no
\tTrusted: no
\tBlocked: no
\tConnected: no
\tLegacyPairing: no
\tRSSI: -61
"""


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.delenv("BLUEPROBE_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeRunner:
    """Scripted stand-in for CommandRunner."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[list[str]] = []
        self._outcomes: dict[tuple[str, ...], CommandOutcome] = {}

    def respond(self, argv: Sequence[str], stdout: str) -> None:
        self._outcomes[tuple(argv)] = CommandOutcome(stdout=stdout)

    def fail(self, argv: Sequence[str], error: BluetoothError) -> None:
        self._outcomes[tuple(argv)] = CommandOutcome(error=error)

    def device(self, address: str, name: str) -> None:
        self.respond(
            ["bluetoothctl", "info", address],
            INFO_TEMPLATE.format(address=address, name=name),
        )

    async def run(self, argv: Sequence[str]) -> CommandOutcome:
        self.calls.append(list(argv))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._outcomes.get(
            tuple(argv),
            CommandOutcome(error=BluetoothError.failed(1, "not scripted")),
        )


class FakeStdin:
    def __init__(self, process: FakeProcess) -> None:
        self._process = process
        self._closed = False
        self.written: list[str] = []

    def write(self, data: bytes) -> None:
        if self._closed:
            raise BrokenPipeError("stdin closed")
        self.written.append(data.decode())

    async def drain(self) -> None:
        return None

    def is_closing(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        if self._process.exit_on_close:
            self._process.finish(0)


class FakeProcess:
    """An interactive bluetoothctl that prints whatever the test script emits."""

    pid = 4242

    def __init__(self, argv: Sequence[str], exit_on_close: bool) -> None:
        self.argv = list(argv)
        self.exit_on_close = exit_on_close
        self.stdin = FakeStdin(self)
        self.stdout = asyncio.StreamReader()
        self.returncode: int | None = None
        self.killed = False
        self.script_task: asyncio.Task[None] | None = None

    def emit(self, data: str | bytes) -> None:
        if self.returncode is not None:
            return
        self.stdout.feed_data(data.encode() if isinstance(data, str) else data)

    def finish(self, code: int) -> None:
        if self.returncode is None:
            self.returncode = code
            self.stdout.feed_eof()

    def kill(self) -> None:
        self.killed = True
        self.finish(-9)

    async def wait(self) -> int | None:
        return self.returncode


Script = Callable[[FakeProcess], Awaitable[None]]


class FakeBluetoothctl:
    def __init__(self, script: Script | None, exit_on_close: bool) -> None:
        self.script = script
        self.exit_on_close = exit_on_close
        self.processes: list[FakeProcess] = []
        self.spawn_kwargs: list[dict[str, object]] = []

    async def spawn(self, *argv: str, **kwargs: object) -> FakeProcess:
        process = FakeProcess(argv, self.exit_on_close)
        self.processes.append(process)
        self.spawn_kwargs.append(kwargs)
        if self.script is not None:
            process.script_task = asyncio.get_running_loop().create_task(
                self.script(process)
            )
        return process

    @property
    def process(self) -> FakeProcess:
        return self.processes[-1]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def install_bluetoothctl(monkeypatch: pytest.MonkeyPatch):
    def _install(
        script: Script | None = None, exit_on_close: bool = True
    ) -> FakeBluetoothctl:
        fake = FakeBluetoothctl(script, exit_on_close)
        monkeypatch.setattr(
            session_module.asyncio, "create_subprocess_exec", fake.spawn
        )
        return fake

    return _install
