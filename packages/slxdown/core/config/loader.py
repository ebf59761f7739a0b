"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from slxdown.core.config.models import AppConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SLXDOWN_CONFIG"
_DEFAULT_APP_CONFIG_PATH = Path("slxdown.yaml")


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("config.json")
        'json'
        >>> detect_format("config.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return the raw configuration dictionary.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            with path.open("r", encoding="utf-8") as f:
                content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        # safe_load returns None for empty files
        if content is None:
            content = {}

    if not isinstance(content, dict):
        raise ValueError(f"Config root in {path} must be a mapping")
    return content


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Pick the config path: explicit argument, then $SLXDOWN_CONFIG, then default."""
    if path is not None:
        return Path(path)
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        logger.debug("Using config path from %s: %s", CONFIG_ENV_VAR, env_path)
        return Path(env_path).expanduser()
    return _DEFAULT_APP_CONFIG_PATH


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    An explicitly requested file must exist. The default location is
    optional; when absent every setting takes its default.

    Args:
        path: Path to app config file (.json, .yaml, or .yml)

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If an explicitly requested file is missing
        ValueError: If the file cannot be parsed
        ValidationError: If config is invalid
    """
    explicit = path is not None or bool(os.getenv(CONFIG_ENV_VAR))
    config_path = resolve_config_path(path)

    if not explicit and not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return AppConfig()

    raw_config = load_config(config_path)
    logger.debug("Loaded config from %s", config_path)
    return AppConfig.model_validate(raw_config)
