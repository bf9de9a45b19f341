from __future__ import annotations

import asyncio
import logging
import signal

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn

from blueprobe.core import BluetoothClient
from blueprobe.models import BluetoothDevice
from blueprobe.utils.redaction import Redactor

from .common import build_client, load_settings_or_exit, run_or_exit
from .devices import device_table

logger = logging.getLogger(__name__)


async def _scan_with_progress(
    client: BluetoothClient, duration: float, console: Console, redactor: Redactor
) -> list[BluetoothDevice]:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        handler_installed = False

    progress = Progress(
        TextColumn("[cyan]Scanning...[/cyan]"),
        BarColumn(bar_width=40),
        TextColumn("{task.percentage:>3.0f}%"),
        TextColumn("{task.completed:.1f}s / {task.total:.1f}s"),
        console=console,
        transient=True,
    )
    task_id = progress.add_task("scan", total=duration)

    def on_progress(elapsed: float) -> None:
        progress.update(task_id, completed=elapsed)

    def on_device_found(device: BluetoothDevice) -> None:
        progress.console.print(
            f"  [green]+[/green] [cyan]{redactor.redact_address(device.address)}[/cyan]"
            f" {redactor.redact_name(device.name)}"
        )

    try:
        with progress:
            return await client.scan(duration, on_progress, on_device_found, cancel)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
        if cancel.is_set():
            console.print("Scan stopped early.")


def scan(
    duration: float | None = typer.Option(
        None,
        "--duration",
        "-d",
        min=0.1,
        help="Seconds to scan. Uses config default if omitted.",
    ),
    redact: bool = typer.Option(
        False,
        "--redact",
        help="Redact device identities in output",
    ),
) -> None:
    """Discover nearby Bluetooth devices. Press Ctrl+C to stop early."""
    console = Console()

    settings = load_settings_or_exit()
    client = build_client(settings)
    if duration is None:
        duration = settings.scanning.duration

    logger.info(
        "Scan settings: duration=%.1fs, grace_period=%.2fs",
        duration,
        settings.scanning.grace_period,
    )
    redactor = Redactor(enabled=redact)
    devices = run_or_exit(_scan_with_progress(client, duration, console, redactor))

    if not devices:
        console.print("No devices found.")
        return

    console.print(device_table(devices, redactor))
    console.print(f"\n[green]Found {len(devices)} device(s)[/green]")


def register(app: typer.Typer) -> None:
    app.command()(scan)
