"""
Version Resolver for the gvs Version Pipeline

This module annotates catalog entries with their local state (installed,
active) and provides the filters used for selection, display and pruning.
"""

from typing import Iterable, List, Optional

from gvs.log_utils import logger

from .files import InstallLayout
from .interfaces import CatalogEntry, FileSystem, ResolvedVersion


class VersionResolver:
    """
    Resolves installed/active state for catalog entries.

    A version counts as installed as soon as its directory exists under the
    versions root, whatever the catalog says; it is active when the
    active-version marker holds its name.
    """

    def __init__(self, fs: FileSystem, layout: InstallLayout):
        self.fs = fs
        self.layout = layout

    def read_active_version(self) -> str:
        """
        Return the version recorded in the active-version marker.

        Returns:
            str: The recorded version, or an empty string if the marker is missing or unreadable.
        """
        marker = self.layout.marker_file
        try:
            return self.fs.read_text(marker).strip()
        except FileNotFoundError:
            logger.debug(f"No active version marker at {marker}")
            return ""
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read active version marker {marker}: {e}")
            return ""

    def is_installed(self, version: str) -> bool:
        """Return whether a directory for `version` exists under the versions root."""
        return self.fs.exists(self.layout.version_dir(version))

    def annotate(self, entries: Iterable[CatalogEntry]) -> List[ResolvedVersion]:
        """
        Build a fresh ResolvedVersion for every catalog entry, keeping catalog order.

        Parameters:
            entries (Iterable[CatalogEntry]): Catalog entries, newest first.

        Returns:
            List[ResolvedVersion]: The annotated entries.
        """
        active = self.read_active_version()
        resolved = [
            ResolvedVersion(
                entry=entry,
                already_installed=self.is_installed(entry.version),
                is_active=bool(active) and entry.version == active,
            )
            for entry in entries
        ]
        logger.debug(
            f"Resolved {len(resolved)} versions "
            f"({sum(1 for r in resolved if r.already_installed)} installed, active: {active or 'none'})"
        )
        return resolved

    @staticmethod
    def select_latest_stable(
        resolved: Iterable[ResolvedVersion],
    ) -> Optional[ResolvedVersion]:
        """Return the first stable version in catalog order, or None."""
        for version in resolved:
            if version.stable:
                return version
        return None

    @staticmethod
    def filter_for_display(
        resolved: Iterable[ResolvedVersion], include_unstable: bool = False
    ) -> List[ResolvedVersion]:
        """Return stable versions, or every version when `include_unstable` is set."""
        return [v for v in resolved if include_unstable or v.stable]

    @staticmethod
    def filter_installed(resolved: Iterable[ResolvedVersion]) -> List[str]:
        """Return the names of the installed versions in catalog order."""
        return [v.version for v in resolved if v.already_installed]
