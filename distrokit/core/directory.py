"""
Directory layout for DistroKit.

This module resolves the home directory and the naming scheme for cached
archives and installed images. Every path here is a pure function of the
home directory, the tool name and the version string.

Directory Structure:
    Home (~/.distrokit/ or $DISTROKIT_HOME):
        - config.yaml                         : Optional user configuration
        - registry.json                       : Installed-version inventory
        - lock/                               : Registry lock file
        - tools/inventory/<tool>/             : Downloaded archives (cache)
            - <tool>-v<version>.tar.gz
        - tools/image/<tool>/                 : Staging root and installs
            - <tool>-v<version>/              : Extracted archive root (staging)
            - <version>/                      : Promoted installation
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from distrokit.core.exceptions import DistroKitError

HOME_ENV_VAR = "DISTROKIT_HOME"


def get_home_dir() -> Path:
    """
    Get the DistroKit home directory path.

    Returns:
        Path: $DISTROKIT_HOME when set, otherwise ~/.distrokit

    Example:
        >>> home = get_home_dir()
        >>> print(home)
        /home/user/.distrokit  # on Linux
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    try:
        return Path.home() / ".distrokit"
    except RuntimeError as e:
        raise DistroKitError(
            f"Cannot determine home directory; set {HOME_ENV_VAR}"
        ) from e


@dataclass(frozen=True)
class DistroLayout:
    """
    Naming scheme for one tool's cached archives and installed images.

    Example:
        >>> layout = DistroLayout(Path("/home/user/.distrokit"), "yarn")
        >>> layout.distro_file_name("1.9.4")
        'yarn-v1.9.4.tar.gz'
        >>> layout.image_dir("1.9.4")
        PosixPath('/home/user/.distrokit/tools/image/yarn/1.9.4')
    """

    home: Path
    tool: str
    archive_extension: str = ".tar.gz"

    @classmethod
    def for_tool(cls, tool: str, home: Optional[Union[str, Path]] = None):
        """Build a layout rooted at home (default: get_home_dir())."""
        return cls(Path(home) if home is not None else get_home_dir(), tool)

    @property
    def inventory_dir(self) -> Path:
        return self.home / "tools" / "inventory" / self.tool

    @property
    def image_root_dir(self) -> Path:
        return self.home / "tools" / "image" / self.tool

    @property
    def registry_file(self) -> Path:
        return self.home / "registry.json"

    def distro_file_name(self, version: str) -> str:
        return f"{self.archive_root_dir_name(version)}{self.archive_extension}"

    def distro_file(self, version: str) -> Path:
        return self.inventory_dir / self.distro_file_name(version)

    def archive_root_dir_name(self, version: str) -> str:
        return f"{self.tool}-v{version}"

    def image_dir(self, version: str) -> Path:
        return self.image_root_dir / version
