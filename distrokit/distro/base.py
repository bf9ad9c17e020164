"""
Provisioned distributions.

A Distro wraps a loaded, validated Archive together with the Version it
provides. It is created by exactly one of three constructors:

- ``public(version)``: from the tool's public distributor
- ``remote(version, url)``: from an arbitrary URL, reusing a valid cached copy
- ``local(version, file)``: from an archive already on disk

and is consumed exactly once by ``install``, which unpacks the archive into
the shared staging root and renames the extracted tree into its final,
version-named directory.

Concurrent installs of the same version are not coordinated: two processes
extracting into the same staging subtree can race each other.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Container, Optional, Union

from distrokit.core.archive import Archive, fetch_archive, load_archive
from distrokit.core.directory import DistroLayout
from distrokit.core.exceptions import (
    ArchiveError,
    DistroIOError,
    DistroKitError,
    DownloadError,
    TransferError,
)
from distrokit.core.filesystem import ensure_containing_dir_exists
from distrokit.core.progress import (
    Action,
    ProgressFactory,
    TransferProgress,
    progress_bar,
)
from distrokit.core.version import Version

logger = logging.getLogger(__name__)

ServerRoot = Callable[[], str]
"""Zero-argument callable returning the distributor's base URL."""


@dataclass(frozen=True)
class AlreadyInstalled:
    """The version was already in the inventory; nothing was written."""

    version: Version


@dataclass(frozen=True)
class Installed:
    """The archive was extracted and promoted to its final directory."""

    version: Version


InstallOutcome = Union[AlreadyInstalled, Installed]


def distro_is_valid(file: Union[str, Path]) -> bool:
    """
    Check if a cached distribution file is usable.

    It may have been corrupted or interrupted in the middle of downloading.
    The check is structural (does the archive parse), not a checksum.

    Args:
        file: Cached archive path

    Returns:
        True if file exists and parses as an archive, False otherwise
    """
    file = Path(file)
    if not file.is_file():
        return False

    try:
        archive = load_archive(file)
    except (DistroKitError, OSError) as e:
        logger.debug(f"Cached distribution is not valid: {file}: {e}")
        return False

    archive.close()
    return True


class Distro(ABC):
    """
    A provisioned, not yet installed, distribution of one tool.

    Subclasses name the tool and its public distributor.
    """

    tool: str = ""

    def __init__(
        self,
        archive: Archive,
        version: Version,
        layout: DistroLayout,
        source_url: Optional[str] = None,
    ):
        self.archive = archive
        self._version = version
        self.layout = layout
        self.source_url = source_url
        self._consumed = False

    @classmethod
    @abstractmethod
    def public_server_root(cls) -> str:
        """Base URL of the tool's public distributor."""
        pass

    @property
    def version(self) -> Version:
        return self._version

    @classmethod
    def _layout(cls, layout: Optional[DistroLayout]) -> DistroLayout:
        return layout if layout is not None else DistroLayout.for_tool(cls.tool)

    @classmethod
    def public(
        cls,
        version: Union[str, Version],
        *,
        server_root: Optional[ServerRoot] = None,
        layout: Optional[DistroLayout] = None,
        timeout: int = 30,
        progress_factory: Optional[ProgressFactory] = None,
    ) -> "Distro":
        """
        Provision a distribution from the public distributor.

        Args:
            version: Version to provision
            server_root: Override for the distributor root (e.g. a test server)
            layout: Directory layout (default: home dir layout for the tool)
            timeout: Request timeout in seconds
            progress_factory: Progress sink factory for the download

        Returns:
            Provisioned distribution

        Raises:
            DownloadError: If the archive cannot be fetched
            DistroIOError: If a cached archive cannot be opened
        """
        version = Version.coerce(version)
        layout = cls._layout(layout)
        root = (server_root or cls.public_server_root)().rstrip("/")
        url = f"{root}/{layout.distro_file_name(str(version))}"
        return cls.remote(
            version,
            url,
            layout=layout,
            timeout=timeout,
            progress_factory=progress_factory,
        )

    @classmethod
    def remote(
        cls,
        version: Union[str, Version],
        url: str,
        *,
        layout: Optional[DistroLayout] = None,
        timeout: int = 30,
        progress_factory: Optional[ProgressFactory] = None,
    ) -> "Distro":
        """
        Provision a distribution from a remote distributor.

        A valid cached archive for the version is used without network access.

        Raises:
            DownloadError: If the archive cannot be fetched
            DistroIOError: If a cached archive cannot be opened
            OSError: If the cache directory cannot be created
        """
        version = Version.coerce(version)
        layout = cls._layout(layout)
        distro_file = layout.distro_file(str(version))

        if distro_is_valid(distro_file):
            logger.info(f"Using cached {cls.tool} {version}: {distro_file}")
            return cls.local(version, distro_file, layout=layout)

        ensure_containing_dir_exists(distro_file)
        progress = TransferProgress(
            progress_factory or progress_bar, Action.FETCHING, f"v{version}"
        )

        try:
            archive = fetch_archive(
                url, distro_file, timeout=timeout, progress_callback=progress
            )
        except (TransferError, ArchiveError, OSError) as e:
            raise DownloadError(str(version), str(e)) from e
        finally:
            progress.finish()

        return cls(archive, version, layout, source_url=url)

    @classmethod
    def local(
        cls,
        version: Union[str, Version],
        file: Union[str, Path, BinaryIO],
        *,
        layout: Optional[DistroLayout] = None,
    ) -> "Distro":
        """
        Provision a distribution from the filesystem.

        Args:
            version: Version the archive provides
            file: Archive path or open binary file (ownership passes to the distro)
            layout: Directory layout

        Raises:
            DistroIOError: If the file cannot be opened or does not parse
        """
        version = Version.coerce(version)
        try:
            archive = load_archive(file)
        except (ArchiveError, OSError) as e:
            raise DistroIOError(f"Could not load {cls.tool} {version}: {e}") from e

        return cls(archive, version, cls._layout(layout))

    def install(
        self,
        collection: Container,
        progress_factory: Optional[ProgressFactory] = None,
    ) -> InstallOutcome:
        """
        Install this distribution unless the collection already has it.

        It is left to the caller to update the inventory after an
        ``Installed`` outcome. The archive is closed either way and the
        distro cannot be installed again.

        Args:
            collection: Anything supporting ``version in collection``
            progress_factory: Progress sink factory for extraction

        Returns:
            AlreadyInstalled or Installed

        Raises:
            DistroIOError: If extraction or promotion fails; the staging tree
                is left in place
        """
        if self._consumed:
            raise DistroKitError(f"{self.tool} {self.version} was already consumed")
        self._consumed = True

        try:
            if self.version in collection:
                logger.info(f"{self.tool} {self.version} is already installed")
                return AlreadyInstalled(self.version)

            return self._unpack_and_promote(progress_factory or progress_bar)
        finally:
            self.archive.close()

    def _unpack_and_promote(self, progress_factory: ProgressFactory) -> Installed:
        version_string = str(self.version)
        dest = self.layout.image_root_dir

        total = self.archive.uncompressed_size()
        if total is None:
            total = self.archive.compressed_size()
        bar = progress_factory(Action.INSTALLING, f"v{version_string}", total)

        logger.info(f"Unpacking {self.tool} {version_string} into {dest}")
        try:
            final = self._extract_and_promote(dest, bar.inc, version_string)
        finally:
            bar.finish_and_clear()

        logger.info(f"Installed {self.tool} {version_string} at {final}")
        return Installed(self.version)

    def _extract_and_promote(
        self, dest: Path, progress: Callable[[int], None], version_string: str
    ) -> Path:
        try:
            self.archive.unpack(dest, progress)
        except (ArchiveError, OSError) as e:
            raise DistroIOError(
                f"Failed to unpack {self.tool} {version_string}: {e}"
            ) from e

        staged = dest / self.layout.archive_root_dir_name(version_string)
        final = self.layout.image_dir(version_string)
        try:
            staged.rename(final)
        except OSError as e:
            raise DistroIOError(
                f"Failed to move {staged} to {final}: {e}"
            ) from e
        return final

    def __repr__(self) -> str:
        return f"{type(self).__name__}(version='{self.version}')"
