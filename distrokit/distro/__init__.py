"""
Distribution provisioning and installation.
"""

from distrokit.distro.base import (
    AlreadyInstalled,
    Distro,
    InstallOutcome,
    Installed,
    ServerRoot,
    distro_is_valid,
)
from distrokit.distro.yarn import YarnDistro, public_yarn_server_root

DISTROS = {
    YarnDistro.tool: YarnDistro,
}

__all__ = [
    "AlreadyInstalled",
    "Distro",
    "InstallOutcome",
    "Installed",
    "ServerRoot",
    "distro_is_valid",
    "YarnDistro",
    "public_yarn_server_root",
    "DISTROS",
]
