"""
Pytest configuration and shared fixtures for cxxkit tests.
"""

import pytest
from pathlib import Path

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.projects import (
    cmake_project,
    bazel_project,
    meson_project,
)
from tests.fixtures.registries import (
    vcpkg_root,
    bcr_root,
)
from tests.mocks.process import FakeProcessRunner


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that need real build tools",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def fake_runner() -> FakeProcessRunner:
    """Process runner that records commands instead of running them."""
    return FakeProcessRunner()


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))
    monkeypatch.setenv("APPDATA", str(fake_home / "AppData"))
    monkeypatch.delenv("VCPKG_ROOT", raising=False)
    monkeypatch.delenv("CXXKIT_BCR_ROOT", raising=False)

    return fake_home


@pytest.fixture(autouse=True)
def no_usage_network(monkeypatch):
    """Keep vcpkg usage lookups off the network."""
    import requests

    def guard(*args, **kwargs):
        raise requests.ConnectionError("Network access not allowed in this test")

    monkeypatch.setattr("cxxkit.packages.vcpkg.requests.get", guard)
