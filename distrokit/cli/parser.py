"""
DistroKit CLI argument parser.

Global options select the home directory, config file and tool; each
subcommand lives in its own module under ``distrokit.cli.commands`` and is
imported only when it runs.
"""

import argparse
import importlib
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from distrokit.core.exceptions import DistroKitError

try:
    from importlib.metadata import version as _package_version

    __version__ = _package_version("distrokit")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

COMMAND_MODULES = {
    "install": "distrokit.cli.commands.install",
    "fetch": "distrokit.cli.commands.fetch",
    "list": "distrokit.cli.commands.list",
}

EXIT_INTERRUPTED = 130


def setup_logging(verbose: bool = False, quiet: bool = False):
    """Route log records to stderr at the level the flags ask for."""
    if verbose:
        level, fmt = logging.DEBUG, "%(levelname)s [%(name)s] %(message)s"
    elif quiet:
        level, fmt = logging.ERROR, "%(levelname)s: %(message)s"
    else:
        level, fmt = logging.INFO, "%(message)s"

    # force: a second CLI run in the same process must not keep old handlers
    logging.basicConfig(level=level, format=fmt, force=True)


class CLI:
    """DistroKit command-line interface."""

    def __init__(self):
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="distrokit",
            description="DistroKit - install and cache toolchain distributions",
            epilog='Run "distrokit COMMAND --help" for the options of one command',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        parser.add_argument(
            "--version", action="version", version=f"DistroKit {__version__}"
        )
        parser.add_argument(
            "-v", "--verbose", action="store_true", help="Show debug logging"
        )
        parser.add_argument(
            "-q", "--quiet", action="store_true", help="Only report errors; no progress bars"
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Configuration file (default: <home>/config.yaml)",
        )
        parser.add_argument(
            "--home",
            type=Path,
            metavar="PATH",
            help="DistroKit home directory (default: $DISTROKIT_HOME or ~/.distrokit)",
        )
        parser.add_argument(
            "--tool",
            default="yarn",
            metavar="NAME",
            help="Tool to operate on (default: yarn)",
        )

        commands = parser.add_subparsers(dest="command", metavar="COMMAND")
        self._add_install(commands)
        self._add_fetch(commands)
        self._add_list(commands)
        return parser

    @staticmethod
    def _add_install(commands):
        sub = commands.add_parser(
            "install",
            help="Install a version",
            description="Fetch (or reuse the cached archive of) a version and install it",
        )
        sub.add_argument("version", metavar="VERSION", help="Exact version, e.g. 1.9.4")
        source = sub.add_mutually_exclusive_group()
        source.add_argument(
            "--from-url",
            metavar="URL",
            help="Download the archive from URL instead of the public distributor",
        )
        source.add_argument(
            "--from-file",
            type=Path,
            metavar="PATH",
            help="Install from a local archive file",
        )

    @staticmethod
    def _add_fetch(commands):
        sub = commands.add_parser(
            "fetch",
            help="Download a version into the cache without installing",
            description="Populate the archive cache for a version",
        )
        sub.add_argument("version", metavar="VERSION", help="Exact version, e.g. 1.9.4")
        sub.add_argument(
            "--from-url",
            metavar="URL",
            help="Download the archive from URL instead of the public distributor",
        )

    @staticmethod
    def _add_list(commands):
        sub = commands.add_parser(
            "list",
            help="List installed versions",
            description="List installed versions, oldest first",
        )
        sub.add_argument(
            "--scan",
            action="store_true",
            help="List version directories on disk instead of the registry",
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Parse args and run the selected command.

        Args:
            args: Argument list (default: sys.argv[1:])

        Returns:
            Process exit code: 0 on success, 1 on a DistroKit or I/O error,
            130 when interrupted
        """
        options = self.parse_args(args)
        setup_logging(options.verbose, options.quiet)

        if not options.command:
            self.parser.print_help()
            return 1

        try:
            command = importlib.import_module(COMMAND_MODULES[options.command])
            return command.run(options)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return EXIT_INTERRUPTED
        except (DistroKitError, OSError) as e:
            logger.error(f"Error: {e}")
            if options.verbose:
                traceback.print_exc()
            return 1


def main():
    sys.exit(CLI().run())


if __name__ == "__main__":
    main()
