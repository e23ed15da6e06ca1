"""Load and validate the monitor's JSON configuration file."""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from fip_monitor.models.config import MonitorConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"
CONFIG_PATH_ENV = "FIP_MONITOR_CONFIG"


class ConfigError(Exception):
    """Missing or invalid configuration. Fatal at startup."""
    pass


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Explicit path, then $FIP_MONITOR_CONFIG, then ./config.json."""
    if path:
        return Path(path)
    return Path(os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(loc) for loc in err["loc"]) or "config"
        if err["type"] == "missing":
            parts.append(f"Missing {location} parameter")
        else:
            parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def parse_config(data: dict) -> MonitorConfig:
    """Validate an already-decoded config mapping."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")
    try:
        return MonitorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_describe(e)) from e


def load_config(path: Optional[Union[str, Path]] = None) -> MonitorConfig:
    """Read, decode and validate the configuration file."""
    config_path = resolve_config_path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Unable to read {config_path}: file not found") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Unable to read {config_path}: {e}") from e

    config = parse_config(data)
    logger.info("Loaded configuration from %s", config_path)
    return config
