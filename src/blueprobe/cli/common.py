from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console

from blueprobe.config import Settings, get_settings, resolve_config_path
from blueprobe.core import BluetoothClient, is_valid_address
from blueprobe.errors import BluetoothError

T = TypeVar("T")

err_console = Console(stderr=True)


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_client(settings: Settings) -> BluetoothClient:
    return BluetoothClient.from_settings(settings)


def run_or_exit(operation: Coroutine[Any, Any, T]) -> T:
    """Run a client coroutine, turning a BluetoothError into exit code 1."""
    try:
        return asyncio.run(operation)
    except BluetoothError as exc:
        err_console.print(f"[red]Error:[/red] {exc.message} ({exc.kind.value})")
        raise typer.Exit(1) from None


def validate_address(value: str) -> str:
    if not is_valid_address(value):
        raise typer.BadParameter(
            f"'{value}' is not a Bluetooth address (expected XX:XX:XX:XX:XX:XX)"
        )
    return value.strip().upper()
