"""
File system helpers for DistroKit.

Only what provisioning needs lives here: creating the directory a cache file
goes into, replacing small files in one step, and refusing archive members
that would land outside their extraction root.
"""

import tempfile
from pathlib import Path
from typing import Union

from distrokit.core.exceptions import InsecureArchiveError


def is_relative_to(path: Path, parent: Path) -> bool:
    """True if path lies inside parent (``Path.is_relative_to`` before 3.9)."""
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


def ensure_containing_dir_exists(path: Union[str, Path]) -> Path:
    """
    Create the directory that will hold path, if it is not there yet.

    Args:
        path: File that is about to be written

    Returns:
        The containing directory

    Raises:
        OSError: If the directory cannot be created
    """
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
    return parent


def validate_archive_path(member: str, destination: Path) -> None:
    """
    Reject an archive member whose resolved location escapes destination.

    Args:
        member: Member name as stored in the archive
        destination: Directory the archive is being extracted into

    Raises:
        InsecureArchiveError: If the member resolves outside destination
    """
    root = destination.resolve()
    if not is_relative_to((root / member).resolve(), root):
        raise InsecureArchiveError(
            f"Refusing to extract '{member}': attempts directory traversal "
            f"outside {destination}"
        )


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Replace file_path with content in a single rename.

    Readers see either the previous file or the new one, never a partial
    write. Text content is encoded with encoding; bytes are written as is.

    Example:
        >>> atomic_write("registry.json", '{"version": 1, "tools": {}}')
    """
    target = Path(file_path)
    ensure_containing_dir_exists(target)

    # Same directory keeps the rename on one filesystem
    fd, scratch = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    scratch_path = Path(scratch)
    data = content.encode(encoding) if isinstance(content, str) else content

    try:
        with open(fd, "wb") as f:
            f.write(data)
        scratch_path.replace(target)
    except BaseException:
        scratch_path.unlink(missing_ok=True)
        raise
