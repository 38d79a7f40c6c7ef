"""
File Operations for the gvs Version Pipeline

This module provides the on-disk layout of an installation, the local file
system capability, path-traversal guards and the tar.gz extractor.
"""

import os
import shutil
import tarfile
import tempfile
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List

from gvs.constants import (
    CATALOG_CACHE_FILE,
    CURRENT_VERSION_FILE,
    DIRECTORY_PERMISSIONS,
    EXECUTABLES_DIR_NAME,
    FORCED_PARENT_PERMISSIONS,
    STAGING_ARCHIVE_FILE,
)
from gvs.exceptions import ExtractionError, PathTraversalError
from gvs.log_utils import logger

from .interfaces import ArchiveExtractor, DirEntry, FileSystem, Pathish


@dataclass(frozen=True)
class InstallLayout:
    """
    Every path gvs reads or writes, derived from three roots.

    Attributes:
        app_dir: Holds the catalog cache and the log file.
        versions_dir: Holds one directory per installed version, the
            active-version marker and the staging archive.
        bin_dir: Shared directory of symlinks to the active version's executables.
    """

    app_dir: Path
    versions_dir: Path
    bin_dir: Path

    @property
    def cache_file(self) -> Path:
        return self.app_dir / CATALOG_CACHE_FILE

    @property
    def marker_file(self) -> Path:
        return self.versions_dir / CURRENT_VERSION_FILE

    @property
    def staging_file(self) -> Path:
        return self.versions_dir / STAGING_ARCHIVE_FILE

    def version_dir(self, version: str) -> Path:
        return self.versions_dir / version

    def executables_dir(self, version: str) -> Path:
        return self.version_dir(version) / EXECUTABLES_DIR_NAME

    def ensure_directories(self, fs: FileSystem) -> None:
        """
        Create the app, versions and bin directories if they are missing.

        Raises:
            OSError: If a directory cannot be created.
        """
        for directory in (self.app_dir, self.versions_dir, self.bin_dir):
            fs.makedirs(directory, DIRECTORY_PERMISSIONS)


def _is_within_base(real_base_dir: str, candidate: str) -> bool:
    """
    Determine whether the candidate path resides within the given base directory.

    Returns:
        True if the candidate path is inside `real_base_dir` (or equal to it), False otherwise.
    """
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        return False


def safe_extract_path(extract_dir: Pathish, member_name: str) -> str:
    """
    Resolve the destination of an archive member and prevent directory traversal.

    The member is joined to the real path of `extract_dir` and resolved; the
    result must lie strictly inside the extraction root. Absolute member names,
    `..` segments and symlinked parents that lead elsewhere are all rejected.

    Parameters:
        extract_dir (Pathish): Base directory intended for extraction.
        member_name (str): Member path from the archive.

    Returns:
        str: Absolute, normalized path inside extract_dir.

    Raises:
        PathTraversalError: If the resolved path is the root itself or lies outside it.
    """
    real_extract_dir = os.path.realpath(extract_dir)
    if "\x00" in member_name:
        raise PathTraversalError(member_name, real_extract_dir)

    prospective_path = os.path.join(real_extract_dir, member_name)
    normalized_path = os.path.realpath(prospective_path)

    if normalized_path == real_extract_dir or not _is_within_base(
        real_extract_dir, normalized_path
    ):
        raise PathTraversalError(member_name, real_extract_dir)

    return normalized_path


def _top_level_name(real_root: str, resolved_path: str) -> str:
    """Return the first path component of `resolved_path` relative to `real_root`."""
    return os.path.relpath(resolved_path, real_root).split(os.sep)[0]


def _atomic_write(file_path: Pathish, data: bytes) -> None:
    """
    Write bytes to a file atomically by writing a temporary sibling and replacing the target.

    The target is fully overwritten; readers never observe a partially written file.

    Raises:
        OSError: If the temporary file cannot be created, written or moved into place.
    """
    file_path = os.fspath(file_path)
    temp_fd, temp_path = tempfile.mkstemp(
        dir=os.path.dirname(file_path) or ".", prefix="tmp-", suffix=".tmp"
    )
    try:
        with os.fdopen(temp_fd, "wb") as temp_f:
            temp_f.write(data)
        os.replace(temp_path, file_path)
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.debug(f"Could not remove temporary file {temp_path}: {e}")


class LocalFileSystem(FileSystem):
    """FileSystem backed by the operating system."""

    def exists(self, path: Pathish) -> bool:
        return os.path.exists(path)

    def lexists(self, path: Pathish) -> bool:
        return os.path.lexists(path)

    def is_dir(self, path: Pathish) -> bool:
        return os.path.isdir(path)

    def modified_time(self, path: Pathish) -> datetime:
        return datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)

    def read_bytes(self, path: Pathish) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def read_text(self, path: Pathish) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write_bytes(self, path: Pathish, data: bytes) -> None:
        _atomic_write(path, data)

    def write_text(self, path: Pathish, text: str) -> None:
        _atomic_write(path, text.encode("utf-8"))

    def open_read(self, path: Pathish) -> BinaryIO:
        return open(path, "rb")

    def open_write(self, path: Pathish) -> BinaryIO:
        return open(path, "wb")

    def makedirs(self, path: Pathish, mode: int) -> None:
        os.makedirs(path, mode=mode, exist_ok=True)

    def list_dir(self, path: Pathish) -> List[DirEntry]:
        entries: List[DirEntry] = []
        with os.scandir(path) as iterator:
            for entry in iterator:
                stat_result = entry.stat(follow_symlinks=False)
                entries.append(
                    DirEntry(
                        name=entry.name,
                        is_dir=entry.is_dir(follow_symlinks=False),
                        modified=datetime.fromtimestamp(
                            stat_result.st_mtime, tz=timezone.utc
                        ),
                    )
                )
        entries.sort(key=lambda e: e.name)
        return entries

    def rename(self, source: Pathish, target: Pathish) -> None:
        os.rename(source, target)

    def remove(self, path: Pathish) -> None:
        os.remove(path)

    def rmtree(self, path: Pathish) -> None:
        if os.path.islink(path):
            os.unlink(path)
            return
        if not os.path.lexists(path):
            return
        if os.path.isdir(path):
            shutil.rmtree(path)
        else:
            os.remove(path)

    def symlink(self, target: Pathish, link: Pathish) -> None:
        os.symlink(target, link)

    def chmod(self, path: Pathish, mode: int) -> None:
        os.chmod(path, mode)


class TarGzExtractor(ArchiveExtractor):
    """
    Extracts gzip-compressed tar archives with a zip-slip guard.

    Members are processed one at a time straight from the compressed stream:
    directories are created with the member's mode, regular files get their
    parent directory force-created (some archives omit directory entries for
    nested files) and are written truncated with the member's mode. Any member
    that would resolve outside the destination aborts the extraction before it
    is written. Links and special files are skipped.
    """

    def __init__(self, chunk_size: int = 64 * 1024):
        self.chunk_size = chunk_size

    def extract(self, source: Pathish, destination: Pathish) -> List[str]:
        archive_path = os.fspath(source)
        real_root = os.path.realpath(destination)
        top_level: List[str] = []

        try:
            with open(archive_path, "rb") as raw, tarfile.open(
                fileobj=raw, mode="r|gz"
            ) as archive:
                for member in archive:
                    try:
                        target = safe_extract_path(real_root, member.name)
                    except PathTraversalError as e:
                        e.archive_path = archive_path
                        raise

                    name = _top_level_name(real_root, target)

                    if member.isdir():
                        os.makedirs(
                            target,
                            mode=(member.mode & 0o7777) or DIRECTORY_PERMISSIONS,
                            exist_ok=True,
                        )
                    elif member.isfile():
                        self._write_member(archive, member, target)
                    else:
                        logger.warning(
                            f"Skipping unsupported archive member {member.name} (type {member.type!r})"
                        )
                        continue

                    if name not in top_level:
                        top_level.append(name)
        except PathTraversalError:
            raise
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            raise ExtractionError(
                "unzip failed", archive_path=archive_path, details=str(e)
            ) from e

        logger.debug(f"Extracted {archive_path} into {real_root}: {top_level}")
        return top_level

    def _write_member(
        self, archive: tarfile.TarFile, member: tarfile.TarInfo, target: str
    ) -> None:
        """Stream one regular file member to `target`."""
        os.makedirs(os.path.dirname(target), mode=FORCED_PARENT_PERMISSIONS, exist_ok=True)

        source = archive.extractfile(member)
        if source is None:
            raise ExtractionError(f"cannot read archive member {member.name}")

        fd = os.open(
            target,
            os.O_CREAT | os.O_TRUNC | os.O_WRONLY,
            (member.mode & 0o7777) or 0o644,
        )
        with os.fdopen(fd, "wb") as out, source:
            shutil.copyfileobj(source, out, self.chunk_size)
