"""
Fetch command implementation.

Downloads a version into the archive cache without installing it.
"""

import logging

from distrokit.cli.utils import build_manager

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the fetch command.

    Args:
        args: Parsed command-line arguments with version and from_url

    Returns:
        Exit code (0 for success)
    """
    manager = build_manager(args)
    cached = manager.fetch(args.version, url=args.from_url)
    print(f"{manager.tool} {args.version} cached at {cached}")
    return 0
