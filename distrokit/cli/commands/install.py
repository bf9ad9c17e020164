"""
Install command implementation.

Provisions a version and installs it into the image directory.
"""

import logging

from distrokit.cli.utils import build_manager
from distrokit.distro.base import AlreadyInstalled

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with:
            - version: Version to install
            - from_url: Optional archive URL
            - from_file: Optional local archive path

    Returns:
        Exit code (0 for success)
    """
    manager = build_manager(args)
    outcome = manager.install(args.version, url=args.from_url, file=args.from_file)

    if isinstance(outcome, AlreadyInstalled):
        print(f"{manager.tool} {outcome.version} is already installed")
    else:
        path = manager.layout.image_dir(str(outcome.version))
        print(f"{manager.tool} {outcome.version} installed")
        logger.debug(f"Installed at: {path}")

    return 0
