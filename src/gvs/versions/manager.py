"""
Version Switcher Facade

This module wires the catalog cache, resolver, installer and pruner together
and exposes the operations the command line works with. Collaborators are
built from a GvsConfig by default and can be injected for testing.
"""

from typing import TYPE_CHECKING, List, Optional, Union

from gvs.exceptions import NoMatchingVersion, NoStableVersion
from gvs.log_utils import logger

from .cache import CatalogCache
from .client import GoDevClient
from .clock import RealClock
from .files import InstallLayout, LocalFileSystem, TarGzExtractor
from .installer import ArchiveInstaller
from .interfaces import (
    ArchiveExtractor,
    CatalogSource,
    Clock,
    FileSystem,
    ResolvedVersion,
)
from .pruner import UnusedVersionPruner
from .resolver import VersionResolver
from .semver import SemverPattern, find_match, parse_semver

if TYPE_CHECKING:
    from gvs.config import GvsConfig


class VersionSwitcher:
    """
    Entry point for listing, installing and pruning toolchain versions.

    The switcher keeps the list produced by the last `get_versions()` call;
    lookups and pruning work on that list and load it first when needed.
    """

    def __init__(
        self,
        layout: InstallLayout,
        source: CatalogSource,
        fs: Optional[FileSystem] = None,
        clock: Optional[Clock] = None,
        extractor: Optional[ArchiveExtractor] = None,
        cache_ttl_hours: Optional[float] = None,
        prefix: Optional[str] = None,
    ):
        """
        Initialize the switcher.

        Parameters:
            layout (InstallLayout): Installation paths.
            source (CatalogSource): Remote catalog and artifact source.
            fs (Optional[FileSystem]): File system capability; LocalFileSystem by default.
            clock (Optional[Clock]): Time source; RealClock by default.
            extractor (Optional[ArchiveExtractor]): Archive extractor; TarGzExtractor by default.
            cache_ttl_hours (Optional[float]): Catalog cache TTL; the cache default when None.
            prefix (Optional[str]): Runtime prefix stripped for display; the cache default when None.
        """
        self.layout = layout
        self.source = source
        self.fs = fs or LocalFileSystem()
        self.clock = clock or RealClock()
        self.extractor = extractor or TarGzExtractor()

        cache_kwargs = {}
        if cache_ttl_hours is not None:
            cache_kwargs["ttl_hours"] = cache_ttl_hours
        if prefix is not None:
            cache_kwargs["prefix"] = prefix
        self.prefix = prefix

        self.cache = CatalogCache(
            self.source, self.fs, self.clock, layout.cache_file, **cache_kwargs
        )
        self.resolver = VersionResolver(self.fs, layout)
        self.installer = ArchiveInstaller(
            self.source, self.fs, self.extractor, self.clock, layout
        )
        self.pruner = UnusedVersionPruner(self.fs, layout, self.resolver)
        self.versions: Optional[List[ResolvedVersion]] = None

    @classmethod
    def from_config(cls, config: "GvsConfig") -> "VersionSwitcher":
        """Build a switcher talking to the configured catalog with the local file system."""
        source = GoDevClient(config.base_url, timeout=config.request_timeout)
        return cls(
            layout=config.layout(),
            source=source,
            cache_ttl_hours=config.cache_ttl_hours,
            prefix=config.version_prefix,
        )

    def ensure_directories(self) -> None:
        """Create the app, versions and bin directories when missing."""
        self.layout.ensure_directories(self.fs)

    def get_versions(self, force_refresh: bool = False) -> List[ResolvedVersion]:
        """
        Load the catalog (from cache or remote) and annotate it with local state.

        Parameters:
            force_refresh (bool): Fetch the catalog even if the cache is fresh.

        Returns:
            List[ResolvedVersion]: Every catalog version, newest first.
        """
        entries = self.cache.fetch_or_load(force_refresh=force_refresh)
        self.versions = self.resolver.annotate(entries)
        return self.versions

    def _current_versions(self) -> List[ResolvedVersion]:
        if self.versions is None:
            return self.get_versions()
        return self.versions

    def find_version_by_semver(
        self, specifier: Union[str, SemverPattern]
    ) -> Optional[ResolvedVersion]:
        """
        Return the newest version matching `specifier`, or None.

        Raises:
            InvalidVersionFormat: If `specifier` is a string that cannot be parsed.
        """
        if isinstance(specifier, SemverPattern):
            pattern = specifier
        elif self.prefix is not None:
            pattern = parse_semver(specifier, prefix=self.prefix)
        else:
            pattern = parse_semver(specifier)
        return find_match(self._current_versions(), pattern)

    def get_latest_stable(self) -> Optional[ResolvedVersion]:
        """Return the newest stable version, or None if the catalog has none."""
        return self.resolver.select_latest_stable(self._current_versions())

    def filter_for_display(self, include_unstable: bool = False) -> List[ResolvedVersion]:
        """Return the versions offered for selection."""
        return self.resolver.filter_for_display(
            self._current_versions(), include_unstable=include_unstable
        )

    def filter_installed(self) -> List[str]:
        """Return the names of the installed versions, newest first."""
        return self.resolver.filter_installed(self._current_versions())

    def install(self, version: ResolvedVersion, os_name: str, arch: str) -> None:
        """
        Activate `version`, downloading and unpacking it first if necessary.

        Raises:
            GvsError: Any install pipeline failure.
        """
        self.installer.install(version, os_name, arch)
        logger.info(f"{version.display_name} version is installed!")
        # Marker and install state changed; the next lookup re-annotates.
        self.versions = None

    def install_by_specifier(self, specifier: str, os_name: str, arch: str) -> ResolvedVersion:
        """
        Install the newest version matching `specifier`.

        Raises:
            InvalidVersionFormat: If the specifier cannot be parsed.
            NoMatchingVersion: If no catalog version matches.
        """
        version = self.find_version_by_semver(specifier)
        if version is None:
            raise NoMatchingVersion(specifier)
        self.install(version, os_name, arch)
        return version

    def install_latest(self, os_name: str, arch: str) -> ResolvedVersion:
        """
        Install the newest stable version.

        Raises:
            NoStableVersion: If the catalog holds no stable release.
        """
        version = self.get_latest_stable()
        if version is None:
            raise NoStableVersion()
        self.install(version, os_name, arch)
        return version

    def delete_unused_versions(self) -> int:
        """
        Delete every installed version except the active one.

        Returns:
            int: Number of versions deleted.

        Raises:
            NoInstalledVersions: If no version is active.
            DeleteVersionFailed: On the first deletion failure.
        """
        try:
            return self.pruner.prune(self._current_versions())
        finally:
            self.versions = None
