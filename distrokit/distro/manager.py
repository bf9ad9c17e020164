"""
Distribution install orchestration.

This module ties provisioning, installation and inventory bookkeeping
together for callers such as the CLI:
1. Provision the distro (public distributor, explicit URL or local file)
2. Install it against the current inventory snapshot
3. Record the version in the registry when the install actually happened
"""

import logging
from pathlib import Path
from typing import Optional, Type, Union

from distrokit.config.parser import DistroKitConfig, load_config
from distrokit.core.directory import DistroLayout
from distrokit.core.exceptions import DistroKitError
from distrokit.core.inventory import InventoryRegistry, VersionCollection
from distrokit.core.progress import ProgressFactory, progress_bar, silent_progress
from distrokit.core.version import Version
from distrokit.distro import DISTROS
from distrokit.distro.base import (
    AlreadyInstalled,
    Distro,
    InstallOutcome,
    Installed,
)

logger = logging.getLogger(__name__)


class DistroManager:
    """
    Provisions and installs versions of one tool.

    Example:
        >>> manager = DistroManager("yarn")
        >>> outcome = manager.install("1.9.4")
        >>> print(outcome)
        Installed(version=Version('1.9.4'))
    """

    def __init__(
        self,
        tool: str = "yarn",
        config: Optional[DistroKitConfig] = None,
        registry: Optional[InventoryRegistry] = None,
        progress_factory: Optional[ProgressFactory] = None,
    ):
        """
        Initialize manager.

        Args:
            tool: Tool name; must be a known distro
            config: Configuration (default: load_config())
            registry: Inventory registry (default: registry.json in home)
            progress_factory: Progress sink factory (default follows config)
        """
        try:
            self.distro_class: Type[Distro] = DISTROS[tool]
        except KeyError:
            raise DistroKitError(
                f"Unknown tool: {tool} (expected one of {sorted(DISTROS)})"
            )

        self.tool = tool
        self.config = config or load_config()
        self.layout = DistroLayout(self.config.home, tool)
        self.registry = registry or InventoryRegistry(self.layout.registry_file)

        if progress_factory is None:
            progress_factory = progress_bar if self.config.progress else silent_progress
        self.progress_factory = progress_factory

        logger.debug(f"Initialized {tool} manager with home: {self.config.home}")

    def provision(
        self,
        version: Union[str, Version],
        url: Optional[str] = None,
        file: Optional[Path] = None,
    ) -> Distro:
        """
        Provision a distribution without installing it.

        Args:
            version: Version to provision
            url: Fetch from this URL instead of the public distributor
            file: Load this local archive instead of fetching

        Returns:
            Provisioned distro; the caller owns it
        """
        if url and file:
            raise ValueError("Specify at most one of url and file")

        version = Version.coerce(version)

        if file is not None:
            return self.distro_class.local(version, Path(file), layout=self.layout)

        if url is not None:
            return self.distro_class.remote(
                version,
                url,
                layout=self.layout,
                timeout=self.config.download.timeout,
                progress_factory=self.progress_factory,
            )

        return self.distro_class.public(
            version,
            server_root=lambda: self.config.server_root(self.tool),
            layout=self.layout,
            timeout=self.config.download.timeout,
            progress_factory=self.progress_factory,
        )

    def fetch(
        self, version: Union[str, Version], url: Optional[str] = None
    ) -> Path:
        """
        Make sure the archive for version is in the cache.

        Returns:
            Path of the cached archive
        """
        distro = self.provision(version, url=url)
        distro.archive.close()
        return self.layout.distro_file(str(distro.version))

    def install(
        self,
        version: Union[str, Version],
        url: Optional[str] = None,
        file: Optional[Path] = None,
    ) -> InstallOutcome:
        """
        Provision and install a version, recording it on success.

        Returns:
            AlreadyInstalled or Installed
        """
        version = Version.coerce(version)
        collection = self.installed_versions()

        # Provisioning may hit the network; skip it when nothing would install
        if version in collection:
            logger.info(f"{self.tool} {version} is already installed")
            return AlreadyInstalled(version)

        distro = self.provision(version, url=url, file=file)
        outcome = distro.install(collection, progress_factory=self.progress_factory)

        if isinstance(outcome, Installed):
            self.registry.register_version(
                self.tool,
                outcome.version,
                self.layout.image_dir(str(outcome.version)),
                source_url=distro.source_url,
            )

        return outcome

    def installed_versions(self) -> VersionCollection:
        """Versions recorded in the registry for this tool."""
        return self.registry.collection(self.tool)

    def is_installed(self, version: Union[str, Version]) -> bool:
        return Version.coerce(version) in self.installed_versions()
