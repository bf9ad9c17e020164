"""
Shared utilities for CLI commands.

Provides common functionality used across CLI commands so that every command
builds its manager the same way.
"""

import logging

from distrokit.config.parser import load_config
from distrokit.distro.manager import DistroManager

logger = logging.getLogger(__name__)


def build_manager(args) -> DistroManager:
    """
    Create a DistroManager from global CLI options.

    Args:
        args: Parsed arguments with config, home and tool

    Returns:
        Configured manager
    """
    config = load_config(config_path=args.config, home=args.home)
    if args.quiet:
        config.progress = False
    logger.debug(f"Using home directory: {config.home}")
    return DistroManager(args.tool, config=config)
