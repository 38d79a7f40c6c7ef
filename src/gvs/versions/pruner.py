"""Deletion of installed versions other than the active one."""

from typing import Iterable

from gvs.exceptions import DeleteVersionFailed, NoInstalledVersions
from gvs.log_utils import logger

from .files import InstallLayout
from .interfaces import FileSystem, ResolvedVersion
from .resolver import VersionResolver


class UnusedVersionPruner:
    """
    Removes every installed version except the active one.

    Versions are deleted in catalog order and the first failure stops the run;
    versions already deleted stay deleted.
    """

    def __init__(self, fs: FileSystem, layout: InstallLayout, resolver: VersionResolver):
        self.fs = fs
        self.layout = layout
        self.resolver = resolver

    def prune(self, resolved: Iterable[ResolvedVersion]) -> int:
        """
        Delete the directories of installed, inactive versions.

        Parameters:
            resolved (Iterable[ResolvedVersion]): Annotated catalog, newest first.

        Returns:
            int: Number of versions deleted.

        Raises:
            NoInstalledVersions: If no active version is recorded.
            DeleteVersionFailed: On the first deletion failure; `deleted_count`
                holds the number of versions removed before it.
        """
        installed = self.resolver.filter_installed(resolved)
        active = self.resolver.read_active_version()
        if not active:
            raise NoInstalledVersions()

        count = 0
        for version in installed:
            if version == active:
                continue
            logger.info(f"Deleting {version}.")
            try:
                self.fs.rmtree(self.layout.version_dir(version))
            except OSError as e:
                raise DeleteVersionFailed(version, e, deleted_count=count) from e
            logger.info(f"{version} is deleted.")
            count += 1

        return count
