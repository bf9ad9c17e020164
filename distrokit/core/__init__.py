"""
Core functionality for DistroKit.

This package contains the foundational modules that the distro layer depends on.
"""

from .directory import (
    DistroLayout,
    get_home_dir,
)

from .version import Version

from .archive import (
    Archive,
    Tarball,
    ZipArchive,
    load_archive,
    fetch_archive,
)

from .inventory import (
    InventoryRegistry,
    VersionCollection,
    scan_image_root,
)

from .exceptions import (
    DistroKitError,
    InvalidVersionError,
    ConfigError,
    DownloadError,
    TransferError,
    DistroIOError,
    ArchiveError,
    InsecureArchiveError,
    RegistryError,
    RegistryLockTimeout,
)

__all__ = [
    "DistroLayout",
    "get_home_dir",
    "Version",
    "Archive",
    "Tarball",
    "ZipArchive",
    "load_archive",
    "fetch_archive",
    "InventoryRegistry",
    "VersionCollection",
    "scan_image_root",
    "DistroKitError",
    "InvalidVersionError",
    "ConfigError",
    "DownloadError",
    "TransferError",
    "DistroIOError",
    "ArchiveError",
    "InsecureArchiveError",
    "RegistryError",
    "RegistryLockTimeout",
]
