from __future__ import annotations

import json
import logging
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, expand_path

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BLUEPROBE_CONFIG"


class ToolsConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    bluetoothctl: str = Field(default="bluetoothctl", min_length=1)
    rfkill: str = Field(default="rfkill", min_length=1)


class ScanningConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    duration: float = Field(default=10.0, gt=0)
    progress_interval: float = Field(default=0.1, gt=0)
    grace_period: float = Field(default=0.5, ge=0)
    command_timeout: float = Field(default=10.0, gt=0)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    scanning: ScanningConfig = Field(default_factory=ScanningConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    """Return the config path and whether a file is there.

    An explicit ``BLUEPROBE_CONFIG`` must name an existing file unless
    ``allow_missing`` is set; the XDG default may be absent.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    path = expand_path(override) if override else default_config_path()
    exists = path.is_file()
    if override and not exists and not allow_missing:
        raise FileNotFoundError(f"{CONFIG_ENV_VAR} is set but {path} does not exist")
    return path, exists


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc


def load_settings(path: Path) -> Settings:
    data = _read_toml(path)
    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc
    logger.debug("Loaded settings from %s", path)
    return settings


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path()
    if not exists:
        logger.debug("No config file at %s, using defaults", path)
        return Settings()
    return load_settings(path)


def _toml_string(value: str) -> str:
    return json.dumps(value)


def render_settings_toml(settings: Settings) -> str:
    lines = [
        "# blueprobe configuration",
        "",
        "[tools]",
        f"bluetoothctl = {_toml_string(settings.tools.bluetoothctl)}",
        f"rfkill = {_toml_string(settings.tools.rfkill)}",
        "",
        "[scanning]",
        f"duration = {settings.scanning.duration}",
        f"progress_interval = {settings.scanning.progress_interval}",
        f"grace_period = {settings.scanning.grace_period}",
        f"command_timeout = {settings.scanning.command_timeout}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    """Write ``settings`` as TOML, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings), encoding="utf-8")
    logger.debug("Wrote settings to %s", path)
