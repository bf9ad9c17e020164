"""
Yarn distributions.

Yarn is published as ``yarn-v<version>.tar.gz`` whose single top-level
directory is ``yarn-v<version>``.
"""

import os

from distrokit.config.parser import PUBLIC_YARN_SERVER_ROOT, YARN_SERVER_ENV_VAR
from distrokit.distro.base import Distro


def public_yarn_server_root() -> str:
    """
    Root URL of the public Yarn distributor.

    ``$DISTROKIT_YARN_SERVER`` replaces it, which is how tests point the
    public path at a local mock server.
    """
    return os.environ.get(YARN_SERVER_ENV_VAR) or PUBLIC_YARN_SERVER_ROOT


class YarnDistro(Distro):
    """A provisioned Yarn distribution."""

    tool = "yarn"

    @classmethod
    def public_server_root(cls) -> str:
        return public_yarn_server_root()
