"""
Semantic version values.

Versions are the identity key for cached archives, install directories and
inventory membership, so the canonical string form matters as much as the
ordering.
"""

import re
from functools import total_ordering
from typing import Optional, Tuple, Union

from distrokit.core.exceptions import InvalidVersionError

_SEMVER_RE = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


@total_ordering
class Version:
    """
    Immutable semantic version: major.minor.patch[-prerelease][+build].

    Build metadata is kept for display but ignored for equality and ordering.

    Example:
        >>> v1 = Version.parse("1.9.4")
        >>> v2 = Version.parse("1.10.0-rc.1")
        >>> v1 < v2
        True
        >>> str(v2)
        '1.10.0-rc.1'
    """

    __slots__ = ("_major", "_minor", "_patch", "_prerelease", "_build")

    def __init__(
        self,
        major: int,
        minor: int,
        patch: int,
        prerelease: Optional[str] = None,
        build: Optional[str] = None,
    ):
        if min(major, minor, patch) < 0:
            raise InvalidVersionError(
                f"Version parts must be non-negative: {major}.{minor}.{patch}"
            )
        object.__setattr__(self, "_major", major)
        object.__setattr__(self, "_minor", minor)
        object.__setattr__(self, "_patch", patch)
        object.__setattr__(self, "_prerelease", prerelease)
        object.__setattr__(self, "_build", build)

    @classmethod
    def parse(cls, version_string: str) -> "Version":
        """
        Parse version string.

        Args:
            version_string: Version such as "1.9.4", "v1.9.4" or "1.10.0-rc.1"

        Returns:
            Parsed Version

        Raises:
            InvalidVersionError: If version format is invalid
        """
        if not isinstance(version_string, str):
            raise InvalidVersionError(f"Version must be a string: {version_string!r}")

        match = _SEMVER_RE.match(version_string.strip())
        if not match:
            raise InvalidVersionError(
                f"Invalid version format: {version_string}. "
                f"Expected format: major.minor.patch[-prerelease]"
            )

        return cls(
            int(match.group("major")),
            int(match.group("minor")),
            int(match.group("patch")),
            match.group("prerelease"),
            match.group("build"),
        )

    @classmethod
    def coerce(cls, value: Union[str, "Version"]) -> "Version":
        """Return value unchanged if it is already a Version, else parse it."""
        if isinstance(value, cls):
            return value
        return cls.parse(value)

    def __setattr__(self, name, value):
        raise AttributeError("Version is immutable")

    @property
    def major(self) -> int:
        return self._major

    @property
    def minor(self) -> int:
        return self._minor

    @property
    def patch(self) -> int:
        return self._patch

    @property
    def prerelease(self) -> Optional[str]:
        return self._prerelease

    @property
    def build(self) -> Optional[str]:
        return self._build

    def _key(self) -> Tuple:
        # A release sorts after any of its pre-releases
        if self._prerelease is None:
            pre: Tuple = (1,)
        else:
            parts = []
            for ident in self._prerelease.split("."):
                if ident.isdigit():
                    parts.append((0, int(ident), ""))
                else:
                    parts.append((1, 0, ident))
            pre = (0, tuple(parts))
        return (self._major, self._minor, self._patch, pre)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self._major}.{self._minor}.{self._patch}"
        if self._prerelease:
            text += f"-{self._prerelease}"
        if self._build:
            text += f"+{self._build}"
        return text

    def __repr__(self) -> str:
        return f"Version('{self}')"
