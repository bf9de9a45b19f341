from __future__ import annotations

import asyncio
import time

import pytest

from blueprobe.core import LineBuffer, ScanSession, SessionState
from blueprobe.errors import BluetoothError, ErrorKind

DEV1 = "AA:AA:AA:AA:AA:01"
DEV2 = "AA:AA:AA:AA:AA:02"
DEV3 = "AA:AA:AA:AA:AA:03"


def _session(runner, **kwargs) -> ScanSession:
    kwargs.setdefault("progress_interval", 0.02)
    kwargs.setdefault("grace_period", 0.2)
    return ScanSession(runner, **kwargs)


def test_line_buffer_keeps_partial_tail():
    buffer = LineBuffer()

    assert buffer.feed("[NEW] Dev") == []
    assert buffer.pending == "[NEW] Dev"
    assert buffer.feed("ice AA\r\nnext") == ["[NEW] Device AA"]
    assert buffer.feed("\n\n") == ["next", ""]
    assert buffer.flush() == ""


def test_line_buffer_flush_returns_tail():
    buffer = LineBuffer()
    buffer.feed("one\ntwo")

    assert buffer.flush() == "two"
    assert buffer.pending == ""


def test_two_devices_in_discovery_order(fake_runner, install_bluetoothctl):
    fake_runner.device(DEV1, "Foo")
    fake_runner.device(DEV2, "Bar")

    async def script(proc):
        proc.emit(f"[NEW] Device {DEV1} Foo\n")
        await asyncio.sleep(0.02)
        proc.emit(f"[NEW] Device {DEV2} Bar\n")

    fake = install_bluetoothctl(script)
    found = []
    session = _session(fake_runner)

    devices = asyncio.run(session.run(0.3, on_device_found=found.append))

    assert [d.address for d in devices] == [DEV1, DEV2]
    assert [d.name for d in devices] == ["Foo", "Bar"]
    assert found == devices
    assert session.state is SessionState.STOPPED
    assert fake.process.argv == ["bluetoothctl"]
    assert fake.process.stdin.written == ["scan on\n", "scan off\n", "exit\n"]
    assert fake.process.stdin.is_closing()
    assert fake.process.killed is False


def test_duplicate_announcements_are_enriched_once(fake_runner, install_bluetoothctl):
    fake_runner.device(DEV1, "Foo")
    fake_runner.device(DEV2, "Bar")

    async def script(proc):
        proc.emit(
            f"[NEW] Device {DEV1} Foo\n"
            f"[CHG] Device {DEV1} RSSI: -70\n"
            f"[NEW] Device {DEV2} Bar\n"
            f"[CHG] Device {DEV1.lower()} Foo\n"
            f"[CHG] Device {DEV2} Connected: no\n"
        )

    install_bluetoothctl(script)
    found = []

    devices = asyncio.run(
        _session(fake_runner).run(0.2, on_device_found=found.append)
    )

    assert [d.address for d in devices] == [DEV1, DEV2]
    assert [d.address for d in found] == [DEV1, DEV2]
    info_calls = [call for call in fake_runner.calls if call[1] == "info"]
    assert info_calls == [
        ["bluetoothctl", "info", DEV1],
        ["bluetoothctl", "info", DEV2],
    ]


def test_announcement_split_across_reads(fake_runner, install_bluetoothctl):
    fake_runner.device(DEV1, "Café")
    line = f"\x1b[0;93m[NEW]\x1b[0m Device {DEV1} Café\r\n".encode()
    accent = line.index("é".encode())

    async def script(proc):
        proc.emit(b"[bluetooth]# Discovery started\n" + line[:4])
        for piece in (line[4:10], line[10 : accent + 1], line[accent + 1 :]):
            await asyncio.sleep(0.01)
            proc.emit(piece)

    install_bluetoothctl(script)

    devices = asyncio.run(_session(fake_runner).run(0.2))

    assert [d.address for d in devices] == [DEV1]
    assert devices[0].name == "Café"


def test_announcement_without_trailing_newline_is_parsed_at_end_of_stream(
    fake_runner, install_bluetoothctl
):
    fake_runner.device(DEV1, "Foo")

    async def script(proc):
        proc.emit(f"[NEW] Device {DEV1} Foo")
        proc.finish(0)

    install_bluetoothctl(script)

    devices = asyncio.run(_session(fake_runner).run(0.1))

    assert [d.address for d in devices] == [DEV1]


def test_failed_lookup_is_skipped(fake_runner, install_bluetoothctl):
    fake_runner.device(DEV1, "Foo")
    fake_runner.fail(
        ["bluetoothctl", "info", DEV3],
        BluetoothError.failed(1, "Device AA:AA:AA:AA:AA:03 not available"),
    )
    fake_runner.device(DEV2, "Bar")

    async def script(proc):
        proc.emit(
            f"[NEW] Device {DEV1} Foo\n"
            f"[NEW] Device {DEV3} Broken\n"
            f"[NEW] Device {DEV2} Bar\n"
            f"[CHG] Device {DEV3} RSSI: -40\n"
        )

    install_bluetoothctl(script)
    found = []

    devices = asyncio.run(
        _session(fake_runner).run(0.2, on_device_found=found.append)
    )

    assert [d.address for d in devices] == [DEV1, DEV2]
    assert found == devices
    assert fake_runner.calls.count(["bluetoothctl", "info", DEV3]) == 1


def test_progress_is_nondecreasing_and_bounded(fake_runner, install_bluetoothctl):
    install_bluetoothctl()
    reported: list[float] = []

    asyncio.run(_session(fake_runner).run(0.3, on_progress=reported.append))

    assert reported
    assert reported == sorted(reported)
    assert all(0 <= value <= 0.3 for value in reported)


def test_cancel_stops_early_without_new_lookups(fake_runner, install_bluetoothctl):
    fake_runner.device(DEV1, "Foo")
    fake_runner.device(DEV2, "Late")
    cancel = asyncio.Event()

    async def script(proc):
        proc.emit(f"[NEW] Device {DEV1} Foo\n")
        await asyncio.sleep(0.05)
        cancel.set()
        while not proc.stdin.is_closing():
            await asyncio.sleep(0.005)
        proc.emit(f"[NEW] Device {DEV2} Late\n")

    fake = install_bluetoothctl(script, exit_on_close=False)
    session = _session(fake_runner, grace_period=0.1)

    started = time.monotonic()
    devices = asyncio.run(session.run(30.0, cancel=cancel))
    elapsed = time.monotonic() - started

    assert elapsed < 5
    assert [d.address for d in devices] == [DEV1]
    assert ["bluetoothctl", "info", DEV2] not in fake_runner.calls
    assert fake.process.killed is True
    assert session.state is SessionState.STOPPED


def test_cancel_already_set_ends_immediately(fake_runner, install_bluetoothctl):
    install_bluetoothctl()
    cancel = asyncio.Event()
    cancel.set()

    started = time.monotonic()
    devices = asyncio.run(_session(fake_runner).run(30.0, cancel=cancel))

    assert devices == []
    assert time.monotonic() - started < 5


def test_in_flight_lookup_completes_after_cancel(fake_runner, install_bluetoothctl):
    fake_runner.delay = 0.3
    fake_runner.device(DEV1, "Slow")
    cancel = asyncio.Event()

    async def script(proc):
        proc.emit(f"[NEW] Device {DEV1} Slow\n")
        await asyncio.sleep(0.05)
        cancel.set()

    install_bluetoothctl(script)
    found = []

    devices = asyncio.run(
        _session(fake_runner, grace_period=0.05).run(
            30.0, on_device_found=found.append, cancel=cancel
        )
    )

    assert [d.address for d in devices] == [DEV1]
    assert found == devices


def test_announcement_racing_cancel_is_not_looked_up(
    fake_runner, install_bluetoothctl
):
    fake_runner.device(DEV1, "Late")
    cancel = asyncio.Event()

    async def script(proc):
        await asyncio.sleep(0.05)
        cancel.set()
        proc.emit(f"[NEW] Device {DEV1} Late\n")

    install_bluetoothctl(script)

    devices = asyncio.run(_session(fake_runner).run(30.0, cancel=cancel))

    assert devices == []
    assert ["bluetoothctl", "info", DEV1] not in fake_runner.calls


def test_outer_cancellation_still_shuts_down(fake_runner, install_bluetoothctl):
    fake = install_bluetoothctl()
    session = _session(fake_runner)
    reported: list[float] = []

    async def scenario():
        task = asyncio.create_task(session.run(30.0, on_progress=reported.append))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert session.state is SessionState.STOPPED
    assert fake.process.stdin.written == ["scan on\n", "scan off\n", "exit\n"]
    assert fake.process.returncode is not None


def test_spawn_failure_is_fatal(fake_runner, monkeypatch):
    from blueprobe.core import session as session_module

    async def _missing(*_argv, **_kwargs):
        raise FileNotFoundError("bluetoothctl")

    monkeypatch.setattr(session_module.asyncio, "create_subprocess_exec", _missing)
    session = _session(fake_runner)
    reported: list[float] = []

    with pytest.raises(BluetoothError) as excinfo:
        asyncio.run(session.run(0.1, on_progress=reported.append))

    assert excinfo.value.kind is ErrorKind.COMMAND_NOT_FOUND
    assert session.state is SessionState.STOPPED
    assert reported == []
    assert fake_runner.calls == []


def test_session_is_single_use(fake_runner, install_bluetoothctl):
    install_bluetoothctl()
    session = _session(fake_runner)
    asyncio.run(session.run(0.05))

    with pytest.raises(RuntimeError):
        asyncio.run(session.run(0.05))


def test_non_positive_duration_is_rejected(fake_runner):
    with pytest.raises(ValueError):
        asyncio.run(_session(fake_runner).run(0))


def test_device_callback_error_propagates_after_shutdown(
    fake_runner, install_bluetoothctl
):
    fake_runner.device(DEV1, "Foo")

    async def script(proc):
        proc.emit(f"[NEW] Device {DEV1} Foo\n")

    fake = install_bluetoothctl(script, exit_on_close=False)

    def _explode(_device):
        raise RuntimeError("renderer broke")

    with pytest.raises(RuntimeError, match="renderer broke"):
        asyncio.run(_session(fake_runner).run(0.1, on_device_found=_explode))

    assert fake.process.returncode is not None
