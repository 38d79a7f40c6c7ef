import os

import platformdirs
import pytest
import requests

from fakes import FakeCatalogSource, FakeClock, catalog_entry, go_archive
from gvs.versions.files import InstallLayout, LocalFileSystem, TarGzExtractor

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used to group the test suite.

    Parameters:
        config: pytest.Config
            The pytest configuration object used to register the markers.
    """
    config.addinivalue_line("markers", "unit: fast tests without real I/O beyond tmp_path")
    config.addinivalue_line("markers", "integration: tests running several components together")
    config.addinivalue_line("markers", "core: tests of the version pipeline")
    config.addinivalue_line("markers", "user_interface: tests of the command line")
    config.addinivalue_line("markers", "infrastructure: tests of configuration, logging and helpers")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Create an isolated temporary XDG and home directory layout and patch the environment to use it.

    This fixture creates temp directories for config, cache and home, sets XDG_* environment
    variables, HOME and GVS_DISABLE_FILE_LOGGING, and patches platformdirs user_* functions to
    return the temp paths so no test touches the real user directories.
    """
    base = tmp_path_factory.mktemp("gvs")
    cache_dir = base / "cache"
    config_dir = base / "config"
    home_dir = base / "home"

    for path in (cache_dir, config_dir, home_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("GVS_DISABLE_FILE_LOGGING", "1")
    monkeypatch.delenv("GVS_LOG_LEVEL", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.put = _block_network
    requests.delete = _block_network
    requests.head = _block_network
    requests.patch = _block_network
    requests.options = _block_network
    requests.Session.request = _block_network


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fs():
    return LocalFileSystem()


@pytest.fixture
def extractor():
    return TarGzExtractor()


@pytest.fixture
def layout(tmp_path):
    """An InstallLayout rooted in tmp_path with all directories created."""
    install_layout = InstallLayout(
        app_dir=tmp_path / "app",
        versions_dir=tmp_path / "versions",
        bin_dir=tmp_path / "bin",
    )
    for directory in (
        install_layout.app_dir,
        install_layout.versions_dir,
        install_layout.bin_dir,
    ):
        os.makedirs(directory, exist_ok=True)
    return install_layout


@pytest.fixture
def fake_source():
    """A FakeCatalogSource with 1.22rc1 (unstable), 1.21.0 and 1.20.5 (stable)."""
    archives = {
        "go1.22rc1": go_archive("go1.22rc1"),
        "go1.21.0": go_archive("go1.21.0"),
        "go1.20.5": go_archive("go1.20.5"),
    }
    catalog = [
        catalog_entry("go1.22rc1", stable=False, data=archives["go1.22rc1"]),
        catalog_entry("go1.21.0", data=archives["go1.21.0"]),
        catalog_entry("go1.20.5", data=archives["go1.20.5"]),
    ]
    artifacts = {
        f"{version}.linux-amd64.tar.gz": data for version, data in archives.items()
    }
    return FakeCatalogSource(catalog=catalog, artifacts=artifacts)
