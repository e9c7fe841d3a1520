"""
Configuration loading for xcodecache.

Settings come from built-in defaults overlaid with an optional YAML file,
either given explicitly or found in the platform configuration directory.
"""

import copy
import os
from typing import Any, Dict, Optional

import platformdirs
import yaml

from xcodecache.constants import APP_NAME, CONFIG_FILE_NAME, DEFAULT_CONFIG
from xcodecache.download.version import MINIMUM_VERSION, Version
from xcodecache.exceptions import ConfigFileError, ConfigValidationError
from xcodecache.log_utils import logger

_POSITIVE_INT_KEYS = ("FAMILY_SEGMENTS", "KEEP_PER_FAMILY")
_NON_NEGATIVE_INT_KEYS = ("MAX_RETRIES", "MAX_RESUME_ATTEMPTS")


def default_config_path() -> str:
    """Return the platform-specific location of the configuration file."""
    return os.path.join(platformdirs.user_config_dir(APP_NAME), CONFIG_FILE_NAME)


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigFileError(f"Could not read configuration file {path}", str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML in configuration file {path}", str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Configuration file {path} must contain a mapping",
            f"got {type(data).__name__}",
        )
    return {str(key).upper(): value for key, value in data.items()}


def parse_floor(value: Any, key: str) -> Version:
    """
    Parse a configured version floor.

    Raises:
        ConfigValidationError: If the value does not parse to a real version.
    """
    floor = Version.parse(str(value)) if value is not None else MINIMUM_VERSION
    # A real zero floor such as "0.0.0" still carries its parsed segments
    if not floor.segments:
        raise ConfigValidationError(
            f"{key} must be a dotted version number", key=key, value=value
        )
    return floor


def get_simulator_floors(config: Dict[str, Any]) -> Dict[str, Version]:
    """Return the per-platform simulator floors as parsed versions."""
    return {
        str(platform): parse_floor(value, f"SIMULATOR_FLOORS.{platform}")
        for platform, value in (config.get("SIMULATOR_FLOORS") or {}).items()
    }


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check value types and ranges.

    Raises:
        ConfigValidationError: On the first invalid value found.
    """
    parse_floor(config.get("MINIMUM_VERSION"), "MINIMUM_VERSION")

    for key in _POSITIVE_INT_KEYS + _NON_NEGATIVE_INT_KEYS:
        value = config.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigValidationError(
                f"{key} must be an integer", key=key, value=value
            )
        minimum = 1 if key in _POSITIVE_INT_KEYS else 0
        if value < minimum:
            raise ConfigValidationError(
                f"{key} must be at least {minimum}", key=key, value=value
            )

    floors = config.get("SIMULATOR_FLOORS")
    if not isinstance(floors, dict):
        raise ConfigValidationError(
            "SIMULATOR_FLOORS must map platform names to versions",
            key="SIMULATOR_FLOORS",
            value=floors,
        )
    get_simulator_floors(config)

    indexes = config.get("SIMULATOR_INDEXES")
    if not isinstance(indexes, list):
        raise ConfigValidationError(
            "SIMULATOR_INDEXES must be a list of paths or URLs",
            key="SIMULATOR_INDEXES",
            value=indexes,
        )


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the configuration.

    Parameters:
        path: Explicit configuration file. When omitted, the platform
            configuration file is used if it exists.

    Returns:
        Dict[str, Any]: Defaults overlaid with the file's values (keys upper-cased).

    Raises:
        ConfigFileError: If an explicit file is missing, or any file cannot be parsed.
        ConfigValidationError: If a value is invalid.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        if not os.path.exists(path):
            raise ConfigFileError(f"Configuration file not found: {path}")
        config_path: Optional[str] = path
    else:
        candidate = default_config_path()
        config_path = candidate if os.path.exists(candidate) else None

    if config_path:
        logger.debug(f"Loading configuration from {config_path}")
        config.update(_read_yaml(config_path))

    validate_config(config)
    return config
