"""
gvs Version Pipeline

This package holds the pieces that turn the remote release catalog into an
active toolchain on disk, each built around injected capabilities so they can
be exercised without the network or the real home directory.

Core Components:
- interfaces: Data model and capability interfaces
- clock: Wall-clock implementation
- files: Install layout, local file system and tar.gz extraction
- client: go.dev catalog and artifact client
- cache: TTL-bounded catalog cache
- semver: Version specifier parsing and matching
- resolver: Installed/active annotation and filters
- installer: Download, verify, extract, relocate and activate
- pruner: Deletion of unused versions
- manager: Facade used by the command line
"""

from .cache import CatalogCache
from .client import GoDevClient
from .clock import RealClock
from .files import InstallLayout, LocalFileSystem, TarGzExtractor
from .installer import ArchiveInstaller, InstallStage
from .interfaces import (
    ArchiveExtractor,
    CatalogEntry,
    CatalogSource,
    Clock,
    DirEntry,
    FileSystem,
    ReleaseArtifact,
    ResolvedVersion,
)
from .manager import VersionSwitcher
from .pruner import UnusedVersionPruner
from .resolver import VersionResolver
from .semver import SemverPattern, find_match, parse_semver

__all__ = [
    # Interfaces
    "ArchiveExtractor",
    "CatalogSource",
    "Clock",
    "FileSystem",
    # Data model
    "CatalogEntry",
    "DirEntry",
    "ReleaseArtifact",
    "ResolvedVersion",
    "SemverPattern",
    # Implementations
    "GoDevClient",
    "InstallLayout",
    "LocalFileSystem",
    "RealClock",
    "TarGzExtractor",
    # Pipeline
    "ArchiveInstaller",
    "CatalogCache",
    "InstallStage",
    "UnusedVersionPruner",
    "VersionResolver",
    "VersionSwitcher",
    "find_match",
    "parse_semver",
]
