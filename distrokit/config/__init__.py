"""Configuration module for DistroKit.

This module provides YAML configuration parsing and validation for config.yaml.
"""

from distrokit.config.parser import (
    DownloadConfig,
    DistroKitConfig,
    PUBLIC_YARN_SERVER_ROOT,
    load_config,
)
from distrokit.core.exceptions import ConfigError

__all__ = [
    "DownloadConfig",
    "DistroKitConfig",
    "PUBLIC_YARN_SERVER_ROOT",
    "ConfigError",
    "load_config",
]
