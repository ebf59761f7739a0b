"""Configuration for slxdown."""

from slxdown.core.config.loader import load_app_config, load_config
from slxdown.core.config.models import (
    CONTAINER_EXTENSIONS,
    DEFAULT_RELEASE_MAP,
    METADATA_DOCUMENTS,
    VERSION_FIELDS,
    AppConfig,
    ConversionConfig,
    LoggingConfig,
)

__all__ = [
    "CONTAINER_EXTENSIONS",
    "DEFAULT_RELEASE_MAP",
    "METADATA_DOCUMENTS",
    "VERSION_FIELDS",
    "AppConfig",
    "ConversionConfig",
    "LoggingConfig",
    "load_app_config",
    "load_config",
]
