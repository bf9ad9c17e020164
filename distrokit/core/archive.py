"""
Distribution archives.

An Archive is an opened, structurally validated container with size metadata
and streamed extraction. Two flavours are supported:
- Tarball: gzip-compressed tar (.tar.gz, .tgz)
- ZipArchive: zip (.zip)

Loading an archive parses it completely, so a handle that exists is known to
be well formed. Extraction reports progress as uncompressed byte increments.
"""

import gzip
import io
import logging
import os
import shutil
import struct
import sys
import tarfile
import zipfile
import zlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional, Tuple, Union

from distrokit.core.download import download_file
from distrokit.core.exceptions import ArchiveError, InsecureArchiveError
from distrokit.core.filesystem import validate_archive_path

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

ISIZE_LIMIT = 2**32

ProgressCallback = Callable[[int], None]
ArchiveSource = Union[str, Path, BinaryIO]


def _open_source(source: ArchiveSource) -> Tuple[BinaryIO, str]:
    """Return a readable binary handle and a display name for source."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        return open(path, "rb"), str(path)
    return source, str(getattr(source, "name", "<stream>"))


def _stream_size(fileobj: BinaryIO) -> int:
    fileobj.seek(0, io.SEEK_END)
    size = fileobj.tell()
    fileobj.seek(0)
    return size


class _ProgressReader:
    """File-like wrapper that reports the size of every chunk read."""

    def __init__(self, fileobj, progress: ProgressCallback):
        self._fileobj = fileobj
        self._progress = progress

    def read(self, size: int = -1) -> bytes:
        data = self._fileobj.read(size)
        if data:
            self._progress(len(data))
        return data

    def drain(self) -> None:
        """Read to end of stream so every byte is accounted for."""
        while self.read(CHUNK_SIZE):
            pass


class Archive(ABC):
    """
    Abstract interface for a loaded distribution archive.

    Implementations own an open file handle until close() is called.
    """

    def __init__(self, fileobj: BinaryIO, name: str):
        self._fileobj = fileobj
        self.name = name

    @classmethod
    @abstractmethod
    def load(cls, source: ArchiveSource) -> "Archive":
        """
        Open and validate an archive.

        Args:
            source: Path or open binary file

        Returns:
            Loaded archive

        Raises:
            ArchiveError: If the content is not a well-formed archive
        """
        pass

    @abstractmethod
    def compressed_size(self) -> int:
        """Size of the archive file in bytes."""
        pass

    @abstractmethod
    def uncompressed_size(self) -> Optional[int]:
        """Size of the unpacked content in bytes, if known."""
        pass

    @abstractmethod
    def unpack(self, dest: Path, progress: ProgressCallback) -> None:
        """
        Extract the archive into dest.

        Args:
            dest: Directory to extract into (created if missing)
            progress: Called with the byte count of every chunk processed

        Raises:
            ArchiveError: If extraction fails
            InsecureArchiveError: If a member escapes dest
        """
        pass

    def close(self) -> None:
        if not self._fileobj.closed:
            self._fileobj.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class Tarball(Archive):
    """
    A gzip-compressed tar archive.

    Example:
        >>> with Tarball.load("yarn-v1.9.4.tar.gz") as tarball:
        ...     tarball.unpack(Path("/tmp/out"), lambda n: None)
    """

    def __init__(self, fileobj: BinaryIO, name: str, compressed: int, isize: int):
        super().__init__(fileobj, name)
        self._compressed = compressed
        self._isize = isize

    @classmethod
    def load(cls, source: ArchiveSource) -> "Tarball":
        fileobj, name = _open_source(source)
        try:
            compressed = _stream_size(fileobj)
            if compressed < 18:
                raise ArchiveError(f"Not a gzip archive (too short): {name}")

            # ISIZE: uncompressed length mod 2**32, last four bytes of the stream
            fileobj.seek(-4, io.SEEK_END)
            (isize,) = struct.unpack("<I", fileobj.read(4))

            cls._scan(fileobj)
            fileobj.seek(0)
        except ArchiveError:
            fileobj.close()
            raise
        except (tarfile.TarError, EOFError, OSError, zlib.error) as e:
            fileobj.close()
            raise ArchiveError(f"Invalid tarball {name}: {e}") from e

        logger.debug(f"Loaded tarball {name} ({compressed} bytes, {isize} unpacked)")
        return cls(fileobj, name, compressed, isize)

    @staticmethod
    def _scan(fileobj: BinaryIO) -> None:
        """Walk every member and the full gzip stream (CRC and length check)."""
        fileobj.seek(0)
        with gzip.GzipFile(fileobj=fileobj, mode="rb") as gz:
            with tarfile.open(fileobj=gz, mode="r|") as tar:
                for _ in tar:
                    pass
            while gz.read(CHUNK_SIZE):
                pass

    def compressed_size(self) -> int:
        return self._compressed

    def uncompressed_size(self) -> Optional[int]:
        # ISIZE wraps at 4 GiB; past that compressed size it cannot be trusted
        if self._compressed >= ISIZE_LIMIT:
            return None
        return self._isize

    def unpack(self, dest: Path, progress: ProgressCallback) -> None:
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)
        self._fileobj.seek(0)

        try:
            with gzip.GzipFile(fileobj=self._fileobj, mode="rb") as gz:
                reader = _ProgressReader(gz, progress)
                with tarfile.open(fileobj=reader, mode="r|") as tar:
                    members = self._checked_members(tar, dest)
                    if sys.version_info >= (3, 12):
                        tar.extractall(dest, members=members, filter="data")
                    else:
                        tar.extractall(dest, members=members)
                reader.drain()
        except InsecureArchiveError:
            raise
        except (tarfile.TarError, EOFError, OSError, zlib.error) as e:
            raise ArchiveError(f"Failed to extract {self.name}: {e}") from e

    @staticmethod
    def _checked_members(tar: tarfile.TarFile, dest: Path) -> Iterator[tarfile.TarInfo]:
        for member in tar:
            validate_archive_path(member.name, dest)
            yield member


class ZipArchive(Archive):
    """A zip archive."""

    def __init__(self, fileobj: BinaryIO, name: str, zf: zipfile.ZipFile, compressed: int):
        super().__init__(fileobj, name)
        self._zf = zf
        self._compressed = compressed

    @classmethod
    def load(cls, source: ArchiveSource) -> "ZipArchive":
        fileobj, name = _open_source(source)
        try:
            compressed = _stream_size(fileobj)
            zf = zipfile.ZipFile(fileobj, "r")
            bad = zf.testzip()
            if bad is not None:
                zf.close()
                raise ArchiveError(f"Corrupt member '{bad}' in {name}")
        except ArchiveError:
            fileobj.close()
            raise
        except (
            zipfile.BadZipFile,
            EOFError,
            OSError,
            zlib.error,
            NotImplementedError,
            RuntimeError,
        ) as e:
            # NotImplementedError: unsupported compression; RuntimeError: encrypted member
            fileobj.close()
            raise ArchiveError(f"Invalid zip archive {name}: {e}") from e

        logger.debug(f"Loaded zip archive {name} ({compressed} bytes)")
        return cls(fileobj, name, zf, compressed)

    def compressed_size(self) -> int:
        return self._compressed

    def uncompressed_size(self) -> Optional[int]:
        return sum(info.file_size for info in self._zf.infolist())

    def unpack(self, dest: Path, progress: ProgressCallback) -> None:
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)
        infos = self._zf.infolist()

        for info in infos:
            validate_archive_path(info.filename, dest)

        try:
            for info in infos:
                target = dest / info.filename
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with self._zf.open(info) as src, open(target, "wb") as out:
                    shutil.copyfileobj(_ProgressReader(src, progress), out, CHUNK_SIZE)
        except (zipfile.BadZipFile, OSError, zlib.error) as e:
            raise ArchiveError(f"Failed to extract {self.name}: {e}") from e

    def close(self) -> None:
        self._zf.close()
        super().close()


def _archive_class(name: str):
    if name.lower().endswith(".zip"):
        return ZipArchive
    return Tarball


def load_archive(source: ArchiveSource) -> Archive:
    """
    Load a cached archive, choosing the flavour from its file name.

    Args:
        source: Path or open binary file

    Returns:
        Loaded Archive

    Raises:
        ArchiveError: If the file does not parse
        OSError: If a path source cannot be opened
    """
    if isinstance(source, (str, Path)):
        name = os.fspath(source)
    else:
        name = str(getattr(source, "name", ""))
    return _archive_class(name).load(source)


def fetch_archive(
    url: str,
    cache_file: Path,
    timeout: int = 30,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Archive:
    """
    Fetch a remote archive into cache_file and load it.

    Args:
        url: Archive URL
        cache_file: Where the downloaded archive is stored
        timeout: Request timeout in seconds
        progress_callback: Optional callback(bytes_downloaded, total_bytes)

    Returns:
        Loaded Archive backed by cache_file

    Raises:
        TransferError: If the download fails
        ArchiveError: If the downloaded content does not parse
    """
    download_file(url, cache_file, progress_callback=progress_callback, timeout=timeout)
    return _archive_class(Path(cache_file).name).load(cache_file)
