"""
Core Interfaces for the gvs Version Pipeline

This module defines the data structures shared by the catalog cache, the
resolver and the installer, together with the capability interfaces
(clock, file system, catalog source, archive extractor) those components
receive through their constructors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union

from gvs.constants import DEFAULT_VERSION_PREFIX

Pathish = Union[str, Path]


@dataclass
class ReleaseArtifact:
    """Represents one downloadable file of a release."""

    filename: str
    """The archive file name, also the key used to download it"""

    os: str
    """Operating system (e.g. 'linux', 'darwin', 'windows')"""

    arch: str
    """Architecture (e.g. 'amd64', 'arm64', '386')"""

    kind: str
    """One of 'archive', 'source' or 'installer'"""

    sha256: str = ""
    """Hex encoded SHA-256 checksum declared by the catalog"""

    size: int = 0
    """File size in bytes"""

    version: str = ""
    """Version the file belongs to (e.g. 'go1.21.3')"""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseArtifact":
        """
        Build an artifact from one entry of the catalog's `files` list.

        Raises:
            KeyError, TypeError, ValueError: If `data` is not a mapping or a field has the wrong shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        return cls(
            filename=str(data.get("filename", "")),
            os=str(data.get("os", "")),
            arch=str(data.get("arch", "")),
            kind=str(data.get("kind", "")),
            sha256=str(data.get("sha256", "") or ""),
            size=int(data.get("size", 0) or 0),
            version=str(data.get("version", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the catalog JSON representation of the artifact."""
        return {
            "filename": self.filename,
            "os": self.os,
            "arch": self.arch,
            "version": self.version,
            "sha256": self.sha256,
            "size": self.size,
            "kind": self.kind,
        }


@dataclass
class CatalogEntry:
    """Represents one toolchain release of the remote catalog."""

    version: str
    """Full version identifier as published (e.g. 'go1.21.3')"""

    stable: bool = False
    """Whether this is a stable release"""

    files: List[ReleaseArtifact] = field(default_factory=list)
    """Downloadable artifacts for every platform"""

    prefix: str = field(default=DEFAULT_VERSION_PREFIX, compare=False, repr=False)
    """Runtime name stripped from `version` for display"""

    @property
    def display_name(self) -> str:
        """The version without the runtime prefix ('go1.21.3' -> '1.21.3')."""
        if self.prefix and self.version.startswith(self.prefix):
            return self.version[len(self.prefix) :]
        return self.version

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], prefix: str = DEFAULT_VERSION_PREFIX
    ) -> "CatalogEntry":
        """
        Build an entry from one element of the catalog JSON array.

        Raises:
            KeyError: If the mandatory `version` key is missing.
            TypeError, ValueError: If a field has the wrong shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        version = data["version"]
        if not isinstance(version, str) or not version:
            raise ValueError(f"invalid version field: {version!r}")
        files = data.get("files") or []
        if not isinstance(files, list):
            raise TypeError(f"expected a list of files, got {type(files).__name__}")
        return cls(
            version=version,
            stable=bool(data.get("stable", False)),
            files=[ReleaseArtifact.from_dict(f) for f in files],
            prefix=prefix,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the catalog JSON representation of the entry."""
        return {
            "version": self.version,
            "stable": self.stable,
            "files": [f.to_dict() for f in self.files],
        }


@dataclass
class ResolvedVersion:
    """A catalog entry annotated with its state on this machine."""

    entry: CatalogEntry

    already_installed: bool = False
    """A directory for this version exists under the versions root"""

    is_active: bool = False
    """The active-version marker names this version"""

    @property
    def version(self) -> str:
        return self.entry.version

    @property
    def display_name(self) -> str:
        return self.entry.display_name

    @property
    def stable(self) -> bool:
        return self.entry.stable

    @property
    def files(self) -> List[ReleaseArtifact]:
        return self.entry.files

    def prompt_name(self, show_stability: bool = False) -> str:
        """
        Render the version the way the selection menu lists it.

        Examples:
            1.21.3 (stable) - current version
            1.21.0 (stable) - already downloaded
            1.21rc4 (unstable)

        Parameters:
            show_stability (bool): Append "(stable)"/"(unstable)" after the name.
        """
        message = self.display_name
        if show_stability:
            message = f"{message} ({'stable' if self.stable else 'unstable'})"
        if self.already_installed and not self.is_active:
            message += " - already downloaded"
        if self.is_active:
            message += " - current version"
        return message


@dataclass
class DirEntry:
    """A directory listing entry as reported by a FileSystem."""

    name: str
    is_dir: bool
    modified: datetime


class Clock(ABC):
    """Source of the current time, injectable so staleness checks are testable."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""

    @abstractmethod
    def is_before(self, first: datetime, second: datetime) -> bool:
        """Return whether `first` is strictly before `second`."""

    @abstractmethod
    def is_after(self, first: datetime, second: datetime) -> bool:
        """Return whether `first` is strictly after `second`."""

    @abstractmethod
    def hours_since(self, moment: datetime) -> float:
        """Return the number of hours elapsed between `moment` and now."""


class FileSystem(ABC):
    """
    File system operations used by the version pipeline.

    Every method raises OSError (or a subclass) on failure; callers decide how
    to translate it.
    """

    @abstractmethod
    def exists(self, path: Pathish) -> bool:
        """Return whether anything exists at `path` (following symlinks)."""

    @abstractmethod
    def lexists(self, path: Pathish) -> bool:
        """Return whether anything exists at `path`, including dangling symlinks."""

    @abstractmethod
    def is_dir(self, path: Pathish) -> bool:
        """Return whether `path` is a directory."""

    @abstractmethod
    def modified_time(self, path: Pathish) -> datetime:
        """Return the modification time of `path` as a timezone-aware datetime."""

    @abstractmethod
    def read_bytes(self, path: Pathish) -> bytes:
        """Return the whole content of `path`."""

    @abstractmethod
    def read_text(self, path: Pathish) -> str:
        """Return the whole content of `path` decoded as UTF-8."""

    @abstractmethod
    def write_bytes(self, path: Pathish, data: bytes) -> None:
        """Replace the content of `path` with `data`."""

    @abstractmethod
    def write_text(self, path: Pathish, text: str) -> None:
        """Replace the content of `path` with `text` encoded as UTF-8."""

    @abstractmethod
    def open_read(self, path: Pathish) -> BinaryIO:
        """Open `path` for binary reading."""

    @abstractmethod
    def open_write(self, path: Pathish) -> BinaryIO:
        """Create or truncate `path` and open it for binary writing."""

    @abstractmethod
    def makedirs(self, path: Pathish, mode: int) -> None:
        """Create `path` and any missing parents; existing directories are fine."""

    @abstractmethod
    def list_dir(self, path: Pathish) -> List[DirEntry]:
        """Return the entries of `path` sorted by name."""

    @abstractmethod
    def rename(self, source: Pathish, target: Pathish) -> None:
        """Rename `source` to `target`."""

    @abstractmethod
    def remove(self, path: Pathish) -> None:
        """Remove a file or symlink."""

    @abstractmethod
    def rmtree(self, path: Pathish) -> None:
        """Remove a directory tree; a missing path is not an error."""

    @abstractmethod
    def symlink(self, target: Pathish, link: Pathish) -> None:
        """Create `link` pointing at `target`."""

    @abstractmethod
    def chmod(self, path: Pathish, mode: int) -> None:
        """Change the permission bits of `path`."""


class CatalogSource(ABC):
    """Remote collaborator serving the release catalog and its artifacts."""

    @abstractmethod
    def fetch_catalog(self) -> List[Dict[str, Any]]:
        """
        Fetch the raw catalog as a list of JSON objects, newest release first.

        Raises:
            CatalogFetchError: On transport errors or a non-success status.
            CatalogParseError: If the response body is not a JSON array.
        """

    @abstractmethod
    def download_artifact(self, filename: str, destination: Pathish) -> int:
        """
        Stream the artifact named `filename` into `destination`.

        Returns:
            int: Number of bytes written.

        Raises:
            ArtifactDownloadError: On transport errors or a non-success status.
        """


class ArchiveExtractor(ABC):
    """Unpacks a downloaded archive into a directory."""

    @abstractmethod
    def extract(self, source: Pathish, destination: Pathish) -> List[str]:
        """
        Extract `source` into `destination`.

        Returns:
            List[str]: Top-level names created under `destination`, in archive order.

        Raises:
            ExtractionError: If the archive is malformed or cannot be written.
            PathTraversalError: If a member would land outside `destination`.
        """
