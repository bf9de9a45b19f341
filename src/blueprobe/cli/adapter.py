from __future__ import annotations

from enum import Enum

import typer
from rich.console import Console

from blueprobe.core import BluetoothClient
from blueprobe.models import BluetoothStatus

from .common import build_client, load_settings_or_exit, run_or_exit

STATUS_STYLES = {
    BluetoothStatus.ENABLED: "green",
    BluetoothStatus.DISABLED: "yellow",
    BluetoothStatus.UNKNOWN: "dim",
}


class PowerAction(str, Enum):
    on = "on"
    off = "off"
    toggle = "toggle"


def _styled(status: BluetoothStatus) -> str:
    style = STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


async def _apply_power(client: BluetoothClient, action: PowerAction) -> BluetoothStatus:
    if action is PowerAction.on:
        await client.power_on()
    elif action is PowerAction.off:
        await client.power_off()
    else:
        await client.toggle_power(await client.check_status())
    return await client.check_status()


def status() -> None:
    """Show whether the Bluetooth adapter is powered."""
    client = build_client(load_settings_or_exit())
    current = run_or_exit(client.check_status())
    Console().print(f"Bluetooth: {_styled(current)}")


def power(
    action: PowerAction = typer.Argument(..., help="Power on, off or toggle"),
) -> None:
    """Change the adapter power state."""
    client = build_client(load_settings_or_exit())
    current = run_or_exit(_apply_power(client, action))
    Console().print(f"[green]✓[/green] Bluetooth: {_styled(current)}")


def register(app: typer.Typer) -> None:
    app.command("status")(status)
    app.command("power")(power)
