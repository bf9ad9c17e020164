"""
Centralized exception hierarchy for DistroKit.

This module defines all custom exceptions used across the codebase
to provide clear exception semantics for callers.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class DistroKitError(Exception):
    """Base exception for all DistroKit errors."""

    pass


class InvalidVersionError(DistroKitError):
    """Invalid semantic version string."""

    pass


class ConfigError(DistroKitError):
    """Configuration parsing or validation error."""

    pass


# ============================================================================
# Provisioning Exceptions
# ============================================================================


class DownloadError(DistroKitError):
    """Raised when a distribution cannot be fetched from a remote source."""

    def __init__(self, version: str, reason: str = ""):
        self.version = version
        self.reason = reason
        msg = f"Could not download version {version}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class TransferError(DistroKitError):
    """HTTP transfer failed (status, connection or timeout)."""

    pass


class DistroIOError(DistroKitError):
    """Filesystem or archive failure while provisioning or installing."""

    pass


class ArchiveError(DistroKitError):
    """Archive could not be parsed or extracted."""

    pass


class InsecureArchiveError(ArchiveError):
    """Archive member attempts to escape the extraction directory."""

    pass


# ============================================================================
# Inventory Exceptions
# ============================================================================


class RegistryError(DistroKitError):
    """Base exception for inventory registry errors."""

    pass


class RegistryLockTimeout(RegistryError):
    """Raised when registry lock cannot be acquired within timeout."""

    pass
