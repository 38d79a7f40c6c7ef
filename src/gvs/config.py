# src/gvs/config.py

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import yaml

from gvs.constants import (
    APP_DIR_NAME,
    BIN_DIR_NAME,
    CONFIG_FILE_NAME,
    CONFIG_KEYS,
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_TTL_HOURS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_VERSION_PREFIX,
    VERSIONS_DIR_NAME,
)
from gvs.exceptions import ConfigFileError, ConfigValidationError
from gvs.log_utils import logger
from gvs.versions.files import InstallLayout


def get_config_file() -> str:
    """Return the default location of gvs.yaml in the user's configuration directory."""
    return os.path.join(platformdirs.user_config_dir("gvs"), CONFIG_FILE_NAME)


@dataclass
class GvsConfig:
    """Settings of one gvs run; every field has a usable default."""

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    cache_ttl_hours: float = DEFAULT_CACHE_TTL_HOURS
    app_dir: Optional[Path] = None
    versions_dir: Optional[Path] = None
    bin_dir: Optional[Path] = None
    version_prefix: str = DEFAULT_VERSION_PREFIX
    log_level: Optional[str] = None

    def __post_init__(self) -> None:
        home = Path.home()
        if self.app_dir is None:
            self.app_dir = home / APP_DIR_NAME
        if self.versions_dir is None:
            self.versions_dir = home / VERSIONS_DIR_NAME
        if self.bin_dir is None:
            self.bin_dir = home / BIN_DIR_NAME

    def layout(self) -> InstallLayout:
        """Return the installation paths described by this configuration."""
        return InstallLayout(
            app_dir=Path(self.app_dir),
            versions_dir=Path(self.versions_dir),
            bin_dir=Path(self.bin_dir),
        )


def _expect_str(config: Dict[str, Any], key: str) -> Optional[str]:
    value = config.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigValidationError(
            f"{key} must be a non-empty string", key=key, details=repr(value)
        )
    return value.strip()


def _expect_positive_number(config: Dict[str, Any], key: str) -> Optional[float]:
    value = config.get(key)
    if value is None:
        return None
    # bool is an int subclass; "yes" is not a timeout
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigValidationError(
            f"{key} must be a positive number", key=key, details=repr(value)
        )
    return value


def _expect_path(config: Dict[str, Any], key: str) -> Optional[Path]:
    value = _expect_str(config, key)
    if value is None:
        return None
    return Path(os.path.expandvars(os.path.expanduser(value)))


def config_from_dict(config: Dict[str, Any]) -> GvsConfig:
    """
    Build a GvsConfig from a parsed configuration mapping.

    Unknown keys are ignored with a warning. Missing keys keep their defaults.

    Raises:
        ConfigValidationError: If a known key holds a value of the wrong type or range.
    """
    unknown = [key for key in config if key not in CONFIG_KEYS]
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(map(str, unknown))}")

    settings: Dict[str, Any] = {}
    base_url = _expect_str(config, "BASE_URL")
    if base_url is not None:
        settings["base_url"] = base_url.rstrip("/")
    timeout = _expect_positive_number(config, "REQUEST_TIMEOUT")
    if timeout is not None:
        settings["request_timeout"] = timeout
    ttl = _expect_positive_number(config, "CACHE_TTL_HOURS")
    if ttl is not None:
        settings["cache_ttl_hours"] = ttl
    for key, attribute in (
        ("APP_DIR", "app_dir"),
        ("VERSIONS_DIR", "versions_dir"),
        ("BIN_DIR", "bin_dir"),
    ):
        path = _expect_path(config, key)
        if path is not None:
            settings[attribute] = path

    prefix = config.get("VERSION_PREFIX")
    if prefix is not None:
        # An empty prefix is allowed: versions are then displayed verbatim
        if not isinstance(prefix, str):
            raise ConfigValidationError(
                "VERSION_PREFIX must be a string", key="VERSION_PREFIX", details=repr(prefix)
            )
        settings["version_prefix"] = prefix

    log_level = _expect_str(config, "LOG_LEVEL")
    if log_level is not None:
        settings["log_level"] = log_level.upper()

    return GvsConfig(**settings)


def load_config(path: Optional[str] = None) -> GvsConfig:
    """
    Load the gvs configuration.

    If `path` is given that file must exist. Otherwise gvs.yaml in the
    platformdirs configuration directory is used when present, and the
    defaults when it is not.

    Parameters:
        path (Optional[str]): Explicit configuration file.

    Returns:
        GvsConfig: The loaded configuration.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML or is not a mapping.
        ConfigValidationError: If a value has the wrong type or range.
    """
    if path is None:
        config_path = get_config_file()
        if not os.path.exists(config_path):
            logger.debug(f"No configuration file at {config_path}; using defaults")
            return GvsConfig()
    else:
        config_path = os.path.expanduser(path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigFileError(
            f"could not read configuration file {config_path}", details=str(e)
        ) from e
    except yaml.YAMLError as e:
        raise ConfigFileError(
            f"invalid YAML in configuration file {config_path}", details=str(e)
        ) from e

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigFileError(
            f"configuration file {config_path} must contain a mapping",
            details=f"got {type(config).__name__}",
        )

    logger.debug(f"Loaded configuration from {config_path}")
    return config_from_dict(config)
