"""
List command implementation.

Prints installed versions, oldest first.
"""

from distrokit.cli.utils import build_manager
from distrokit.core.inventory import scan_image_root


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments with scan flag

    Returns:
        Exit code (0 for success)
    """
    manager = build_manager(args)

    if args.scan:
        versions = scan_image_root(manager.layout)
    else:
        versions = manager.installed_versions()

    if not versions:
        print(f"No {manager.tool} versions installed")
        return 0

    for version in versions:
        print(version)
    return 0
