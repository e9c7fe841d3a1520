import time

import platformdirs
import pytest
import requests

from xcodecache import log_utils
from xcodecache.download.interfaces import Release
from xcodecache.download.transfer import HostTransports

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
    """Register the markers used across the suite."""
    config.addinivalue_line("markers", "unit: fast tests without I/O")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point configuration lookups at a temporary directory and clear credentials.

    Sets XDG_CONFIG_HOME, patches platformdirs.user_config_dir and removes the
    account and log-level environment variables so no test sees the
    developer's real settings.
    """
    base = tmp_path_factory.mktemp("xcodecache")
    config_dir = base / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    for name in (
        "XCODE_LINKS_USER",
        "XCODE_LINKS_PASSWORD",
        "XCODE_LINKS_TEAM_ID",
        "XCODECACHE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_logger():
    """Restore the console-only logger after each test."""
    yield
    log_utils._file_handler = None
    log_utils._initialize_logger()


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """Make time.sleep instant for all tests to prevent delays."""
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


@pytest.fixture
def both_transports():
    """Host with both curl and aria2c installed."""
    return HostTransports(cookie_capable="/usr/bin/curl", plain="/usr/bin/aria2c")


@pytest.fixture
def make_release():
    """
    Factory for catalog releases.

    Returns:
        callable: ``make_release(name, date_modified=0)`` building a release
        whose remote path is derived from the name.
    """

    def _make(name: str, date_modified: int = 0) -> Release:
        slug = name.replace(" ", "_")
        return Release.from_catalog(
            {
                "name": f"Xcode {name}",
                "files": [{"remotePath": f"/Developer_Tools/Xcode_{slug}/Xcode_{slug}.xip"}],
                "dateModified": date_modified,
            }
        )

    return _make
