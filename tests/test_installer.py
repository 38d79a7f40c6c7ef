"""
Tests for the archive installer.

Covers:
- Artifact selection for a platform
- The full download, verify, extract, relocate and activate pipeline
- Activation of an already installed version
- Failure handling at every stage
"""

import os
import platform
from datetime import timedelta

import pytest

from fakes import FIXED_NOW, build_tar_gz, sha256_hex
from gvs.exceptions import (
    ActiveMarkerError,
    ArtifactDownloadError,
    ArtifactNotFound,
    ChecksumComputationError,
    ChecksumMismatch,
    ChecksumNotDeclared,
    RelocationError,
    StagingCleanupError,
    SymlinkError,
)
from gvs.versions.installer import ArchiveInstaller, InstallStage, select_artifact
from gvs.versions.interfaces import CatalogEntry, ReleaseArtifact, ResolvedVersion

pytestmark = [pytest.mark.unit, pytest.mark.core]

posix_only = pytest.mark.skipif(
    platform.system() == "Windows", reason="POSIX permissions and symlinks"
)


@pytest.fixture
def installer(fake_source, fs, extractor, fake_clock, layout):
    return ArchiveInstaller(fake_source, fs, extractor, fake_clock, layout)


def _resolved(source, version, installed=False, active=False):
    for item in source.catalog:
        if item["version"] == version:
            return ResolvedVersion(
                entry=CatalogEntry.from_dict(item),
                already_installed=installed,
                is_active=active,
            )
    raise AssertionError(f"{version} not in catalog")


def _artifact(filename, os_name="linux", arch="amd64", kind="archive", sha256="ab"):
    return ReleaseArtifact(filename=filename, os=os_name, arch=arch, kind=kind, sha256=sha256)


def _install_fake_version(layout, version, executables=("go", "gofmt")):
    bin_dir = layout.executables_dir(version)
    bin_dir.mkdir(parents=True)
    for name in executables:
        (bin_dir / name).write_text(f"#!/bin/sh\necho {version}\n")


class TestSelectArtifact:
    """Test select_artifact."""

    def test_selects_platform_archive(self):
        files = [
            _artifact("go.src.tar.gz", os_name="", arch="", kind="source"),
            _artifact("go.darwin-arm64.tar.gz", os_name="darwin", arch="arm64"),
            _artifact("go.linux-amd64.tar.gz"),
        ]
        assert select_artifact(files, "linux", "amd64").filename == "go.linux-amd64.tar.gz"

    def test_last_match_wins(self):
        files = [_artifact("first.tar.gz"), _artifact("second.tar.gz")]
        assert select_artifact(files, "linux", "amd64").filename == "second.tar.gz"

    def test_installer_kind_is_ignored(self):
        files = [_artifact("go.msi", os_name="windows", kind="installer")]
        with pytest.raises(ArtifactNotFound) as exc_info:
            select_artifact(files, "windows", "amd64")
        assert exc_info.value.os == "windows"
        assert exc_info.value.arch == "amd64"

    def test_no_artifact_for_platform(self):
        with pytest.raises(ArtifactNotFound):
            select_artifact([_artifact("go.linux-amd64.tar.gz")], "plan9", "amd64")

    def test_missing_checksum(self):
        with pytest.raises(ChecksumNotDeclared):
            select_artifact([_artifact("go.linux-amd64.tar.gz", sha256="")], "linux", "amd64")


class TestInstallNewVersion:
    """Test the full pipeline for a version that is not installed."""

    @posix_only
    def test_installs_and_activates(self, installer, fake_source, layout):
        installer.install(_resolved(fake_source, "go1.21.0"), "linux", "amd64")

        version_dir = layout.version_dir("go1.21.0")
        assert (version_dir / "VERSION").read_text() == "go1.21.0"
        assert not (layout.versions_dir / "go").exists()
        assert not layout.staging_file.exists()
        assert layout.marker_file.read_text() == "go1.21.0"
        assert installer.stage is InstallStage.DONE
        assert fake_source.downloads == ["go1.21.0.linux-amd64.tar.gz"]

        for name in ("go", "gofmt"):
            link = layout.bin_dir / name
            assert link.is_symlink()
            assert os.readlink(link) == str(layout.executables_dir("go1.21.0") / name)
            assert os.stat(link).st_mode & 0o777 == 0o700

    @posix_only
    def test_switching_replaces_previous_links(self, installer, fake_source, layout):
        installer.install(_resolved(fake_source, "go1.20.5"), "linux", "amd64")
        installer.install(_resolved(fake_source, "go1.21.0"), "linux", "amd64")

        assert os.readlink(layout.bin_dir / "go") == str(
            layout.executables_dir("go1.21.0") / "go"
        )
        assert layout.marker_file.read_text() == "go1.21.0"
        assert layout.version_dir("go1.20.5").is_dir()

    def test_checksum_mismatch(self, installer, fake_source, layout):
        artifact = _artifact("go1.21.0.linux-amd64.tar.gz", sha256="0" * 64)

        with pytest.raises(ChecksumMismatch) as exc_info:
            installer.install_new("go1.21.0", artifact)

        assert exc_info.value.expected == "0" * 64
        assert exc_info.value.actual == sha256_hex(
            fake_source.artifacts["go1.21.0.linux-amd64.tar.gz"]
        )
        assert installer.stage is InstallStage.CHECKSUM_VERIFYING
        assert not layout.staging_file.exists()
        assert not layout.version_dir("go1.21.0").exists()
        assert not (layout.versions_dir / "go").exists()
        assert not layout.marker_file.exists()
        assert list(layout.bin_dir.iterdir()) == []

    def test_checksum_comparison_ignores_case(self, installer, fake_source, layout):
        data = fake_source.artifacts["go1.21.0.linux-amd64.tar.gz"]
        artifact = _artifact("go1.21.0.linux-amd64.tar.gz", sha256=sha256_hex(data).upper())

        installer.install_new("go1.21.0", artifact)

        assert layout.version_dir("go1.21.0").is_dir()

    def test_checksum_mismatch_cleanup_failure_is_logged(
        self, installer, fs, layout, mocker
    ):
        mocker.patch.object(fs, "remove", side_effect=PermissionError("busy"))
        mock_logger = mocker.patch("gvs.versions.installer.logger")
        artifact = _artifact("go1.21.0.linux-amd64.tar.gz", sha256="0" * 64)

        with pytest.raises(ChecksumMismatch):
            installer.install_new("go1.21.0", artifact)

        mock_logger.error.assert_called_once()
        assert "busy" in mock_logger.error.call_args[0][0]
        assert layout.staging_file.exists()

    def test_checksum_computation_failure(self, installer, fs, layout, mocker):
        mocker.patch.object(fs, "open_read", side_effect=OSError("I/O error"))
        artifact = _artifact("go1.21.0.linux-amd64.tar.gz", sha256="0" * 64)

        with pytest.raises(ChecksumComputationError) as exc_info:
            installer.install_new("go1.21.0", artifact)

        assert exc_info.value.path == str(layout.staging_file)
        assert not layout.staging_file.exists()

    def test_download_failure(self, installer, fake_source, mocker):
        mocker.patch.object(
            fake_source,
            "download_artifact",
            side_effect=ArtifactDownloadError("request failed with status 404", status_code=404),
        )

        with pytest.raises(ArtifactDownloadError):
            installer.install(_resolved(fake_source, "go1.21.0"), "linux", "amd64")

        assert installer.stage is InstallStage.DOWNLOADING

    def test_unknown_platform_fails_before_download(self, installer, fake_source):
        with pytest.raises(ArtifactNotFound):
            installer.install(_resolved(fake_source, "go1.21.0"), "plan9", "amd64")
        assert fake_source.downloads == []
        assert installer.stage is InstallStage.IDLE

    def test_staging_cleanup_failure(self, installer, fake_source, fs, layout, mocker):
        mocker.patch.object(fs, "remove", side_effect=PermissionError("busy"))

        with pytest.raises(StagingCleanupError):
            installer.install(_resolved(fake_source, "go1.21.0"), "linux", "amd64")

        assert layout.version_dir("go1.21.0").is_dir()
        assert not layout.marker_file.exists()
        assert installer.stage is InstallStage.RELOCATING

    def test_archive_without_executables(self, installer, fake_source, layout):
        data = build_tar_gz({"go/": None, "go/VERSION": b"go1.21.0"})
        fake_source.artifacts["custom.tar.gz"] = data
        artifact = _artifact("custom.tar.gz", sha256=sha256_hex(data))

        with pytest.raises(SymlinkError):
            installer.install_new("go1.21.0", artifact)

        # Not rolled back: the tree stays and no version became active
        assert layout.version_dir("go1.21.0").is_dir()
        assert not layout.marker_file.exists()

    def test_marker_write_failure(self, installer, fake_source, fs, mocker):
        mocker.patch.object(fs, "write_text", side_effect=OSError("disk full"))

        with pytest.raises(ActiveMarkerError) as exc_info:
            installer.install(_resolved(fake_source, "go1.21.0"), "linux", "amd64")

        assert "disk full" in str(exc_info.value)
        assert installer.stage is InstallStage.SYMLINK_SWITCHING


class TestRelocation:
    """Test renaming the extracted directory after the version."""

    def test_target_already_exists(self, installer, fake_source, layout):
        _install_fake_version(layout, "go1.21.0")
        (layout.version_dir("go1.21.0") / "keep").write_text("x")

        with pytest.raises(RelocationError):
            installer.install_new(
                "go1.21.0", select_artifact(_resolved(fake_source, "go1.21.0").files, "linux", "amd64")
            )

        assert (layout.version_dir("go1.21.0") / "keep").exists()

    def test_directory_already_named_after_version(self, installer, fake_source, layout):
        data = build_tar_gz({"go1.21.0/": None, "go1.21.0/bin/go": b"x"})
        fake_source.artifacts["named.tar.gz"] = data

        installer.install_new("go1.21.0", _artifact("named.tar.gz", sha256=sha256_hex(data)))

        assert (layout.executables_dir("go1.21.0") / "go").exists()
        assert layout.marker_file.read_text() == "go1.21.0"

    def test_no_directory_extracted(self, installer, fake_source, layout):
        data = build_tar_gz({"README": b"x"})
        fake_source.artifacts["flat.tar.gz"] = data

        with pytest.raises(RelocationError):
            installer.install_new("go1.21.0", _artifact("flat.tar.gz", sha256=sha256_hex(data)))

    def test_falls_back_to_most_recent_directory(self, installer, fake_source, layout, mocker):
        """When the extractor reports no directory, the newest one is renamed."""
        mocker.patch.object(installer.extractor, "extract", return_value=[])
        older = layout.versions_dir / "old"
        newer = layout.versions_dir / "go"
        (older / "bin").mkdir(parents=True)
        (newer / "bin").mkdir(parents=True)
        (newer / "bin" / "go").write_text("x")
        for path, moment in ((older, FIXED_NOW - timedelta(days=1)), (newer, FIXED_NOW)):
            os.utime(path, (moment.timestamp(), moment.timestamp()))

        installer.install(_resolved(fake_source, "go1.21.0"), "linux", "amd64")

        assert (layout.executables_dir("go1.21.0") / "go").exists()
        assert older.is_dir()


class TestLatestCreatedDirectory:
    """Test the most-recently-modified directory scan."""

    def _make(self, layout, name, moment, is_dir=True):
        path = layout.versions_dir / name
        if is_dir:
            path.mkdir()
        else:
            path.write_text("x")
        os.utime(path, (moment.timestamp(), moment.timestamp()))

    def test_newest_directory(self, installer, layout):
        self._make(layout, "a", FIXED_NOW - timedelta(hours=2))
        self._make(layout, "b", FIXED_NOW)
        self._make(layout, "c", FIXED_NOW - timedelta(hours=1))
        assert installer.latest_created_directory() == "b"

    def test_files_are_ignored(self, installer, layout):
        self._make(layout, "a", FIXED_NOW - timedelta(hours=2))
        self._make(layout, "z.tar.gz", FIXED_NOW, is_dir=False)
        assert installer.latest_created_directory() == "a"

    def test_ties_keep_first_in_name_order(self, installer, layout):
        self._make(layout, "b", FIXED_NOW)
        self._make(layout, "a", FIXED_NOW)
        assert installer.latest_created_directory() == "a"

    def test_empty_versions_directory(self, installer):
        assert installer.latest_created_directory() is None

    def test_unlistable_versions_directory(self, installer, fs, mocker):
        mocker.patch.object(fs, "list_dir", side_effect=PermissionError("denied"))
        with pytest.raises(RelocationError):
            installer.latest_created_directory()


class TestActivateExisting:
    """Test activating a version that is already on disk."""

    @posix_only
    def test_installed_version_skips_download(self, installer, fake_source, layout):
        _install_fake_version(layout, "go1.20.5")

        installer.install(_resolved(fake_source, "go1.20.5", installed=True), "linux", "amd64")

        assert fake_source.downloads == []
        assert os.readlink(layout.bin_dir / "gofmt") == str(
            layout.executables_dir("go1.20.5") / "gofmt"
        )
        assert layout.marker_file.read_text() == "go1.20.5"
        assert installer.stage is InstallStage.DONE

    @posix_only
    def test_dangling_link_is_replaced(self, installer, layout):
        _install_fake_version(layout, "go1.20.5", executables=("go",))
        os.symlink(layout.versions_dir / "deleted" / "bin" / "go", layout.bin_dir / "go")

        installer.activate_existing("go1.20.5")

        assert os.readlink(layout.bin_dir / "go") == str(
            layout.executables_dir("go1.20.5") / "go"
        )

    @posix_only
    def test_unrelated_links_are_kept(self, installer, layout):
        _install_fake_version(layout, "go1.20.5", executables=("go",))
        (layout.bin_dir / "other-tool").write_text("x")

        installer.activate_existing("go1.20.5")

        assert (layout.bin_dir / "other-tool").read_text() == "x"

    def test_missing_version_directory(self, installer, layout):
        with pytest.raises(SymlinkError):
            installer.activate_existing("go1.19")
        assert not layout.marker_file.exists()
