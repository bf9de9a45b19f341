from __future__ import annotations

from collections.abc import Callable, Iterable

import typer
from rich.console import Console
from rich.table import Table

from blueprobe.models import BluetoothDevice
from blueprobe.utils.redaction import Redactor

from .common import build_client, load_settings_or_exit, run_or_exit, validate_address


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def device_table(devices: Iterable[BluetoothDevice], redactor: Redactor) -> Table:
    table = Table()
    table.add_column("Address", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Paired")
    table.add_column("Connected")
    table.add_column("Trusted")
    table.add_column("RSSI", justify="right")
    table.add_column("Icon")

    for device in devices:
        table.add_row(
            redactor.redact_address(device.address),
            redactor.redact_name(device.name),
            _flag(device.paired),
            _flag(device.connected),
            _flag(device.trusted),
            "" if device.rssi is None else str(device.rssi),
            device.icon or "",
        )
    return table


def _print_devices(
    devices: list[BluetoothDevice], empty_message: str, redact: bool
) -> None:
    console = Console()
    if not devices:
        console.print(empty_message)
        return
    console.print(device_table(devices, Redactor(enabled=redact)))
    console.print(f"\n[green]{len(devices)} device(s)[/green]")


def paired(
    redact: bool = typer.Option(False, "--redact", help="Redact device identities"),
) -> None:
    """List paired devices."""
    client = build_client(load_settings_or_exit())
    devices = run_or_exit(client.list_paired_devices())
    _print_devices(devices, "No paired devices.", redact)


def known_devices(
    redact: bool = typer.Option(False, "--redact", help="Redact device identities"),
) -> None:
    """List every device the adapter knows about."""
    client = build_client(load_settings_or_exit())
    devices = run_or_exit(client.list_known_devices())
    _print_devices(devices, "No known devices.", redact)


def info(
    address: str = typer.Argument(
        ..., help="Device address", callback=validate_address
    ),
) -> None:
    """Show details for one device."""
    client = build_client(load_settings_or_exit())
    device = run_or_exit(client.get_device_info(address))

    console = Console()
    console.print(f"[bold]{device.display_name}[/bold]\n")
    console.print(f"Address:   {device.address}")
    console.print(f"Paired:    {_flag(device.paired)}")
    console.print(f"Connected: {_flag(device.connected)}")
    console.print(f"Trusted:   {_flag(device.trusted)}")
    console.print(f"RSSI:      {'' if device.rssi is None else device.rssi}")
    console.print(f"Icon:      {device.icon or ''}")


def _action(name: str, done: str) -> Callable[[str], None]:
    def command(
        address: str = typer.Argument(
            ..., help="Device address", callback=validate_address
        ),
    ) -> None:
        client = build_client(load_settings_or_exit())
        run_or_exit(getattr(client, name)(address))
        Console().print(f"[green]✓[/green] {done} {address}")

    command.__doc__ = f"{name.capitalize()} a device by address."
    return command


def register(app: typer.Typer) -> None:
    app.command("paired")(paired)
    app.command("devices")(known_devices)
    app.command("info")(info)
    app.command("connect")(_action("connect", "Connected to"))
    app.command("disconnect")(_action("disconnect", "Disconnected from"))
    app.command("pair")(_action("pair", "Paired with"))
    app.command("trust")(_action("trust", "Trusted"))
    app.command("remove")(_action("remove", "Removed"))
