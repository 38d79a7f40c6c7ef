"""
Archive Installer for the gvs Version Pipeline

This module downloads a release archive, verifies its checksum, extracts it,
renames the extracted tree after the version and switches the shared
executable symlinks and the active-version marker over to it.

A new version goes through every stage:

    DOWNLOADING -> CHECKSUM_VERIFYING -> EXTRACTING -> RELOCATING
        -> SYMLINK_SWITCHING -> DONE

An installed version only goes through SYMLINK_SWITCHING -> DONE.

Nothing is rolled back. A failure after extraction leaves the extracted tree
in place, and the next resolution pass reports that version as installed even
though it never became active.
"""

import os
from enum import Enum
from typing import Iterable, List, Optional

from gvs.constants import ARCHIVE_KIND, SYMLINK_PERMISSIONS
from gvs.exceptions import (
    ActiveMarkerError,
    ArtifactNotFound,
    ChecksumComputationError,
    ChecksumMismatch,
    ChecksumNotDeclared,
    RelocationError,
    StagingCleanupError,
    SymlinkError,
)
from gvs.log_utils import logger
from gvs.utils import sha256_of_stream

from .files import InstallLayout
from .interfaces import (
    ArchiveExtractor,
    CatalogSource,
    Clock,
    FileSystem,
    ReleaseArtifact,
    ResolvedVersion,
)


class InstallStage(Enum):
    """Stages of the install pipeline, in order."""

    IDLE = "idle"
    DOWNLOADING = "downloading"
    CHECKSUM_VERIFYING = "checksum_verifying"
    EXTRACTING = "extracting"
    RELOCATING = "relocating"
    SYMLINK_SWITCHING = "symlink_switching"
    DONE = "done"


def select_artifact(
    files: Iterable[ReleaseArtifact], os_name: str, arch: str
) -> ReleaseArtifact:
    """
    Pick the archive artifact of a release for the given platform.

    When several archive artifacts match, the last one listed wins.

    Raises:
        ArtifactNotFound: If no archive artifact exists for the platform.
        ChecksumNotDeclared: If the selected artifact has no checksum.
    """
    selected: Optional[ReleaseArtifact] = None
    for artifact in files:
        if artifact.os == os_name and artifact.arch == arch and artifact.kind == ARCHIVE_KIND:
            selected = artifact

    if selected is None or not selected.filename:
        raise ArtifactNotFound(os_name, arch)
    if not selected.sha256:
        raise ChecksumNotDeclared(os_name, arch)
    return selected


class ArchiveInstaller:
    """
    Installs and activates toolchain versions.

    All downloads go through one fixed staging file, so only one install may
    run at a time against a given installation root.
    """

    def __init__(
        self,
        source: CatalogSource,
        fs: FileSystem,
        extractor: ArchiveExtractor,
        clock: Clock,
        layout: InstallLayout,
    ):
        """
        Initialize the installer.

        Parameters:
            source (CatalogSource): Remote collaborator serving the archives.
            fs (FileSystem): File system capability.
            extractor (ArchiveExtractor): Unpacks the staged archive.
            clock (Clock): Time comparisons for the relocation fallback.
            layout (InstallLayout): Installation paths.
        """
        self.source = source
        self.fs = fs
        self.extractor = extractor
        self.clock = clock
        self.layout = layout
        self.stage = InstallStage.IDLE

    def _enter(self, stage: InstallStage) -> None:
        logger.debug(f"Install stage: {self.stage.value} -> {stage.value}")
        self.stage = stage

    def install(self, version: ResolvedVersion, os_name: str, arch: str) -> None:
        """
        Make `version` the active version, downloading it first when it is not installed.

        Raises:
            ArtifactNotFound, ChecksumNotDeclared: Before any download, for an unusable catalog entry.
            GvsError: Any failure of the pipeline stages.
        """
        self.stage = InstallStage.IDLE
        if version.already_installed:
            self.activate_existing(version.version)
            return

        artifact = select_artifact(version.files, os_name, arch)
        self.install_new(version.version, artifact)

    def install_new(self, version: str, artifact: ReleaseArtifact) -> None:
        """
        Run the full pipeline for a version that is not on disk yet.

        Parameters:
            version (str): Version name; becomes the install directory name and the marker content.
            artifact (ReleaseArtifact): The archive to download.
        """
        self.stage = InstallStage.IDLE

        self._enter(InstallStage.DOWNLOADING)
        logger.info("Downloading...")
        self.source.download_artifact(artifact.filename, self.layout.staging_file)

        self._enter(InstallStage.CHECKSUM_VERIFYING)
        logger.info("Comparing checksums...")
        self._verify_checksum(artifact.sha256)

        self._enter(InstallStage.EXTRACTING)
        logger.info("Extracting...")
        top_level = self.extractor.extract(
            self.layout.staging_file, self.layout.versions_dir
        )

        self._enter(InstallStage.RELOCATING)
        self._relocate(version, top_level)
        self._remove_staging()

        self._switch(version)

    def activate_existing(self, version: str) -> None:
        """Point the symlinks and the marker at an already installed version."""
        self.stage = InstallStage.IDLE
        self._switch(version)

    def _switch(self, version: str) -> None:
        self._enter(InstallStage.SYMLINK_SWITCHING)
        logger.info("Installing version...")
        self._link_executables(version)
        self._write_marker(version)
        self._enter(InstallStage.DONE)

    def _verify_checksum(self, expected: str) -> None:
        """
        Compare the staged archive's SHA-256 with the declared checksum.

        On any failure the staging file is removed before raising. A failure to
        remove it is logged and the original error is still raised.

        Raises:
            ChecksumComputationError: If the staged archive cannot be read.
            ChecksumMismatch: If the digests differ.
        """
        staging = self.layout.staging_file
        try:
            with self.fs.open_read(staging) as stream:
                actual = sha256_of_stream(stream)
        except OSError as e:
            self._discard_staging()
            raise ChecksumComputationError(
                "could not compute checksum", path=str(staging), details=str(e)
            ) from e

        if actual.lower() != expected.strip().lower():
            self._discard_staging()
            raise ChecksumMismatch(expected, actual, path=str(staging))

        logger.debug(f"Checksum verified for {staging}: {actual}")

    def _discard_staging(self) -> None:
        staging = self.layout.staging_file
        try:
            self.fs.remove(staging)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not remove staged archive {staging}: {e}")

    def _remove_staging(self) -> None:
        staging = self.layout.staging_file
        try:
            self.fs.remove(staging)
        except OSError as e:
            raise StagingCleanupError(
                "could not remove downloaded archive", path=str(staging), details=str(e)
            ) from e

    def _relocate(self, version: str, top_level: List[str]) -> None:
        """
        Rename the extracted top-level directory to `version`.

        The directory reported by the extractor is used when it reported exactly
        one; otherwise the most recently modified directory under the versions
        root is taken.

        Raises:
            RelocationError: If no directory can be found or the rename fails.
        """
        versions_dir = self.layout.versions_dir
        reported = [
            name for name in top_level if self.fs.is_dir(versions_dir / name)
        ]
        if len(reported) == 1:
            source_name: Optional[str] = reported[0]
        else:
            logger.debug(
                f"Extractor reported {len(reported)} top-level directories; "
                "falling back to the most recently modified one"
            )
            source_name = self.latest_created_directory()

        if not source_name:
            raise RelocationError(
                "no extracted directory found", path=str(versions_dir)
            )
        if source_name == version:
            return

        source = versions_dir / source_name
        target = self.layout.version_dir(version)
        try:
            self.fs.rename(source, target)
        except OSError as e:
            raise RelocationError(
                f"could not rename {source_name} to {version}",
                path=str(source),
                details=str(e),
            ) from e
        logger.debug(f"Renamed {source} to {target}")

    def latest_created_directory(self) -> Optional[str]:
        """
        Return the most recently modified directory directly under the versions root.

        Entries are scanned in name order and only a strictly newer modification
        time replaces the current pick, so the first one seen wins ties.

        Raises:
            RelocationError: If the versions root cannot be listed.
        """
        try:
            entries = self.fs.list_dir(self.layout.versions_dir)
        except OSError as e:
            raise RelocationError(
                "could not list versions directory",
                path=str(self.layout.versions_dir),
                details=str(e),
            ) from e

        latest_name: Optional[str] = None
        latest_time = None
        for entry in entries:
            if not entry.is_dir:
                continue
            if latest_time is None or self.clock.is_after(entry.modified, latest_time):
                latest_name = entry.name
                latest_time = entry.modified
        return latest_name

    def _link_executables(self, version: str) -> None:
        """
        Replace the shared bin symlinks with links to `version`'s executables.

        Raises:
            SymlinkError: If the executables cannot be listed or a link cannot be replaced.
        """
        executables_dir = self.layout.executables_dir(version)
        try:
            entries = self.fs.list_dir(executables_dir)
        except OSError as e:
            raise SymlinkError(
                f"could not list executables of {version}",
                path=str(executables_dir),
                details=str(e),
            ) from e

        for entry in entries:
            target = executables_dir / entry.name
            link = self.layout.bin_dir / entry.name
            try:
                if self.fs.lexists(link):
                    self.fs.remove(link)
                self.fs.symlink(target, link)
                self.fs.chmod(link, SYMLINK_PERMISSIONS)
            except OSError as e:
                raise SymlinkError(
                    f"could not link {entry.name}", path=os.fspath(link), details=str(e)
                ) from e
            logger.debug(f"Linked {link} -> {target}")

    def _write_marker(self, version: str) -> None:
        marker = self.layout.marker_file
        try:
            self.fs.write_text(marker, version)
        except OSError as e:
            raise ActiveMarkerError(
                "could not update the active version", path=str(marker), details=str(e)
            ) from e
