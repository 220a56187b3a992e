"""Bridge settings: address, username and sync interval.

Settings come from a YAML file (the mixer plugin key names,
``hueip``/``hueuser``/``synctime``, are accepted) and are overridden by
HUE_MIXER_* environment variables.
"""

from __future__ import annotations

import asyncio
import math
import os
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from hue_mixer.const import (
    DEFAULT_SETTINGS_PATH,
    DEFAULT_SYNC_INTERVAL,
    ENV_BRIDGE_IP,
    ENV_BRIDGE_USER,
    ENV_SETTINGS_PATH,
    ENV_SYNC_INTERVAL,
)
from hue_mixer.logging_abstraction import get_logger

logger = get_logger(__name__)

__all__ = ["BridgeSettings", "load_settings", "normalize_sync_interval"]


def normalize_sync_interval(value: object) -> int:
    """Round a configured interval up to whole seconds.

    Unset, non-numeric, non-finite, zero or negative values fall back to
    DEFAULT_SYNC_INTERVAL.
    """
    if value is None or value == "" or isinstance(value, bool):
        return DEFAULT_SYNC_INTERVAL
    try:
        seconds = math.ceil(float(cast("Any", value)))
    except (TypeError, ValueError, OverflowError):
        logger.warning("Invalid sync interval %r, using %ds", value, DEFAULT_SYNC_INTERVAL)
        return DEFAULT_SYNC_INTERVAL
    if seconds <= 0:
        return DEFAULT_SYNC_INTERVAL
    return seconds


class BridgeSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    address: str | None = Field(default=None, alias="hueip")
    username: str | None = Field(default=None, alias="hueuser")
    sync_interval: int = Field(default=DEFAULT_SYNC_INTERVAL, alias="synctime")
    api_timeout: float | None = None

    @field_validator("address", "username", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("sync_interval", mode="before")
    @classmethod
    def _normalize_interval(cls, value: Any) -> int:
        return normalize_sync_interval(value)

    @field_validator("api_timeout", mode="before")
    @classmethod
    def _positive_timeout(cls, value: Any) -> Any:
        if value in (None, "", 0, "0"):
            return None
        return value


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data: object = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Settings file %s is not a mapping, ignoring it", path)
        return {}
    return cast("dict[str, Any]", data)


def _env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    env_keys = (
        (ENV_BRIDGE_IP, "address"),
        (ENV_BRIDGE_USER, "username"),
        (ENV_SYNC_INTERVAL, "sync_interval"),
    )
    for env_name, key in env_keys:
        value = os.environ.get(env_name)
        if value:
            overrides[key] = value
    return overrides


async def load_settings(path: str | Path | None = None) -> BridgeSettings:
    """Load settings from the YAML file and the environment.

    A missing file is not an error: address and username may come from the
    environment alone, and when they are absent the bridge client reports it on
    first use.

    Raises:
        yaml.YAMLError: The settings file exists but cannot be parsed

    """
    raw_path = path or os.environ.get(ENV_SETTINGS_PATH) or DEFAULT_SETTINGS_PATH
    settings_path = Path(raw_path).expanduser()

    file_data: dict[str, Any] = {}
    try:
        file_data = await asyncio.to_thread(_read_yaml, settings_path)
    except FileNotFoundError:
        logger.debug("Settings file not found: %s", settings_path)
    except yaml.YAMLError:
        logger.exception("Failed to parse settings file: %s", settings_path)
        raise
    else:
        logger.info("Loaded settings", extra={"path": str(settings_path)})

    # env values win over both the file's aliases and its canonical keys
    merged: dict[str, Any] = dict(file_data)
    for key, value in _env_overrides().items():
        alias = BridgeSettings.model_fields[key].alias
        if alias is not None:
            merged.pop(alias, None)
        merged[key] = value

    settings = BridgeSettings.model_validate(merged)
    logger.info("Sync interval: %d seconds", settings.sync_interval)
    return settings
