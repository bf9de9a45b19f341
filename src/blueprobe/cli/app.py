from __future__ import annotations

from typing import Annotated

import typer

from blueprobe.utils.logging import setup_logging

from . import config as config_cmd
from .adapter import register as register_adapter
from .devices import register as register_devices
from .scan import register as register_scan

app = typer.Typer(
    help="blueprobe - discover and manage Bluetooth devices via bluetoothctl",
    no_args_is_help=True,
)

app.add_typer(config_cmd.app, name="config")

register_adapter(app)
register_scan(app)
register_devices(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
) -> None:
    """blueprobe CLI."""
    setup_logging()

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"blueprobe version {get_version('blueprobe')}")
        raise typer.Exit()
