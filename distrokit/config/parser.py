"""YAML configuration parser for DistroKit.

This module provides parsing and validation for the optional config.yaml in
the DistroKit home directory, plus environment variable overrides.

Example config.yaml:
    home: ~/.distrokit
    servers:
      yarn: https://mirror.example.com/yarn
    download:
      timeout: 60
    progress: true
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from distrokit.core.directory import HOME_ENV_VAR, get_home_dir
from distrokit.core.exceptions import ConfigError

YARN_SERVER_ENV_VAR = "DISTROKIT_YARN_SERVER"

PUBLIC_YARN_SERVER_ROOT = "https://github.com/notion-cli/yarn-releases/raw/master/dist"

CONFIG_FILE_NAME = "config.yaml"


@dataclass
class DownloadConfig:
    """Network transfer settings."""

    timeout: int = 30


@dataclass
class DistroKitConfig:
    """Complete DistroKit configuration."""

    home: Path = field(default_factory=get_home_dir)
    servers: Dict[str, str] = field(
        default_factory=lambda: {"yarn": PUBLIC_YARN_SERVER_ROOT}
    )
    download: DownloadConfig = field(default_factory=DownloadConfig)
    progress: bool = True

    def server_root(self, tool: str) -> str:
        """Base URL of the public distributor for tool."""
        try:
            return self.servers[tool].rstrip("/")
        except KeyError:
            raise ConfigError(f"No server configured for tool: {tool}")


def load_config(
    config_path: Optional[Path] = None, home: Optional[Path] = None
) -> DistroKitConfig:
    """
    Load configuration with environment overrides applied.

    Resolution order (later wins): built-in defaults, config file, environment
    variables, explicit home argument.

    Args:
        config_path: Explicit config file; it must exist when given
        home: Explicit home directory (e.g. from --home)

    Returns:
        Resolved configuration

    Raises:
        ConfigError: If the file is missing (explicit path only) or invalid
    """
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")
    else:
        config_path = (Path(home) if home else get_home_dir()) / CONFIG_FILE_NAME

    data = {}
    if config_path.exists():
        data = _read_yaml(config_path)

    config = _parse_and_validate(data)

    if os.environ.get(HOME_ENV_VAR):
        config.home = get_home_dir()
    if os.environ.get(YARN_SERVER_ENV_VAR):
        config.servers["yarn"] = os.environ[YARN_SERVER_ENV_VAR]
    if home is not None:
        config.home = Path(home).expanduser()

    return config


def _read_yaml(config_path: Path) -> dict:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {config_path}")

    return data


def _parse_and_validate(data: dict) -> DistroKitConfig:
    """Parse and validate configuration data."""
    config = DistroKitConfig()

    if "home" in data:
        if not isinstance(data["home"], str):
            raise ConfigError("home must be a string path")
        config.home = Path(data["home"]).expanduser()

    servers = data.get("servers", {})
    if not isinstance(servers, dict):
        raise ConfigError("servers must be a mapping of tool name to URL")
    for tool, url in servers.items():
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise ConfigError(f"servers.{tool} must be an http(s) URL")
        config.servers[tool] = url

    download = data.get("download", {})
    if not isinstance(download, dict):
        raise ConfigError("download must be a mapping")
    timeout = download.get("timeout", config.download.timeout)
    if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout <= 0:
        raise ConfigError("download.timeout must be a positive integer")
    config.download = DownloadConfig(timeout=timeout)

    progress = data.get("progress", config.progress)
    if not isinstance(progress, bool):
        raise ConfigError("progress must be true or false")
    config.progress = progress

    return config
