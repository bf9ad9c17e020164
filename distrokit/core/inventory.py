"""
Inventory of installed versions.

The provisioning core only asks whether a version is present; keeping the
record current is the caller's job once an install reports success. This
module provides both sides: an immutable VersionCollection for membership
queries and an InventoryRegistry that persists installs to registry.json.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional

from filelock import FileLock, Timeout

from distrokit.core.directory import DistroLayout, get_home_dir
from distrokit.core.exceptions import (
    InvalidVersionError,
    RegistryError,
    RegistryLockTimeout,
)
from distrokit.core.filesystem import atomic_write
from distrokit.core.version import Version

logger = logging.getLogger(__name__)

REGISTRY_FORMAT_VERSION = 1


class VersionCollection:
    """
    Immutable set of installed versions for one tool.

    Example:
        >>> collection = VersionCollection([Version.parse("1.9.4")])
        >>> Version.parse("1.9.4") in collection
        True
    """

    def __init__(self, versions: Iterable[Version] = ()):
        self._versions = frozenset(versions)

    def __contains__(self, version) -> bool:
        if isinstance(version, str):
            try:
                version = Version.parse(version)
            except InvalidVersionError:
                return False
        return version in self._versions

    def __iter__(self) -> Iterator[Version]:
        return iter(sorted(self._versions))

    def __len__(self) -> int:
        return len(self._versions)

    def latest(self) -> Optional[Version]:
        return max(self._versions) if self._versions else None

    def __repr__(self) -> str:
        return f"VersionCollection([{', '.join(str(v) for v in self)}])"


def scan_image_root(layout: DistroLayout) -> VersionCollection:
    """
    Build a collection from the version-named directories under the image root.

    Staging directories (named after the archive root) and anything else that
    does not parse as a version are ignored.
    """
    root = layout.image_root_dir
    if not root.is_dir():
        return VersionCollection()

    versions = []
    for entry in root.iterdir():
        if not entry.is_dir():
            continue
        try:
            versions.append(Version.parse(entry.name))
        except InvalidVersionError:
            logger.debug(f"Skipping non-version directory: {entry}")
    return VersionCollection(versions)


class InventoryRegistry:
    """
    Persistent record of installed versions, keyed by tool.

    Registry format:
        {
          "version": 1,
          "tools": {
            "yarn": {
              "1.9.4": {"path": "...", "installed": "...", "source_url": "..."}
            }
          }
        }

    Example:
        >>> registry = InventoryRegistry()
        >>> registry.register_version("yarn", Version.parse("1.9.4"), Path("..."))
        >>> Version.parse("1.9.4") in registry.collection("yarn")
        True
    """

    def __init__(self, registry_path: Optional[Path] = None, lock_timeout: int = 30):
        """
        Initialize inventory registry.

        Args:
            registry_path: Path to registry.json (default: home dir)
            lock_timeout: Timeout in seconds for acquiring file lock
        """
        if registry_path is None:
            registry_path = get_home_dir() / "registry.json"

        self.registry_path = Path(registry_path)
        self.lock_path = self.registry_path.parent / "lock" / "registry.lock"
        self.lock_timeout = lock_timeout

        logger.debug(f"Initialized registry at {self.registry_path}")

    def _empty(self) -> dict:
        return {"version": REGISTRY_FORMAT_VERSION, "tools": {}}

    def _load_registry(self) -> dict:
        if not self.registry_path.exists():
            logger.debug("Registry file not found, starting empty")
            return self._empty()

        try:
            with open(self.registry_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load registry: {e}")
            raise RegistryError(f"Failed to load registry: {e}") from e

        if not isinstance(data, dict) or "tools" not in data:
            logger.warning("Invalid registry format, resetting")
            return self._empty()

        return data

    def _save_registry(self, data: dict):
        try:
            atomic_write(self.registry_path, json.dumps(data, indent=2))
        except OSError as e:
            logger.error(f"Failed to save registry: {e}")
            raise RegistryError(f"Failed to save registry: {e}") from e

    @contextmanager
    def _lock(self):
        """
        Hold the registry file lock for one read-modify-write.

        Raises:
            RegistryLockTimeout: If lock cannot be acquired within timeout
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self.lock_path, timeout=self.lock_timeout)

        try:
            with lock:
                yield
        except Timeout as e:
            raise RegistryLockTimeout(
                f"Could not acquire registry lock within {self.lock_timeout} seconds"
            ) from e

    def register_version(
        self,
        tool: str,
        version: Version,
        path: Path,
        source_url: Optional[str] = None,
    ):
        """
        Record a completed install.

        Args:
            tool: Tool name (e.g., "yarn")
            version: Installed version
            path: Final installation directory
            source_url: Where the archive came from, if remote
        """
        with self._lock():
            data = self._load_registry()
            entries = data["tools"].setdefault(tool, {})
            entries[str(version)] = {
                "path": str(Path(path).resolve()),
                "installed": datetime.now().isoformat(),
                "source_url": source_url,
            }
            self._save_registry(data)

        logger.info(f"Registered {tool} {version}")

    def unregister_version(self, tool: str, version: Version) -> bool:
        """
        Remove a version from the record.

        Returns:
            True if an entry was removed, False if none existed
        """
        with self._lock():
            data = self._load_registry()
            entries = data["tools"].get(tool, {})
            if str(version) not in entries:
                return False
            del entries[str(version)]
            self._save_registry(data)

        logger.info(f"Unregistered {tool} {version}")
        return True

    def get_entry(self, tool: str, version: Version) -> Optional[Dict]:
        data = self._load_registry()
        return data["tools"].get(tool, {}).get(str(version))

    def collection(self, tool: str) -> VersionCollection:
        """Snapshot of the versions recorded for tool."""
        data = self._load_registry()
        versions = []
        for text in data["tools"].get(tool, {}):
            try:
                versions.append(Version.parse(text))
            except InvalidVersionError:
                logger.warning(f"Ignoring malformed registry entry: {tool} {text}")
        return VersionCollection(versions)
