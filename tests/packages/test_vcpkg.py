"""
Tests for vcpkg integration: port registry, manifest edits and installs.
"""

import json
import os
from unittest.mock import Mock, patch

import pytest
import requests

from cxxkit.core.exceptions import (
    BuildFailure,
    ConfigurationError,
    DependencyNotFoundError,
    ManifestError,
)
from cxxkit.core.process import STREAM
from cxxkit.packages.vcpkg import (
    USAGE_URL,
    VcpkgIntegration,
    VcpkgManifest,
    VcpkgPortRegistry,
)


# ============================================================================
# Port Registry
# ============================================================================


class TestVcpkgPortRegistry:
    def test_versions_from_database(self, vcpkg_root):
        package = VcpkgPortRegistry(vcpkg_root).get("fmt")
        assert package.versions == ["10.2.1", "11.0.2"]
        assert package.latest_version == "11.0.2"
        assert package.dependencies == ["vcpkg-cmake", "vcpkg-cmake-config"]
        assert package.license == "MIT"

    def test_port_version_without_database(self, vcpkg_root):
        assert VcpkgPortRegistry(vcpkg_root).latest_version("zlib") == "1.3.1"

    def test_list_description_joined(self, vcpkg_root):
        package = VcpkgPortRegistry(vcpkg_root).get("zlib")
        assert package.description == "A compression library with a long history"

    def test_search(self, vcpkg_root):
        names = [p.name for p in VcpkgPortRegistry(vcpkg_root).search("z")]
        assert names == ["zlib"]

    def test_no_versions(self, vcpkg_root):
        with pytest.raises(DependencyNotFoundError, match="no versions of noversion"):
            VcpkgPortRegistry(vcpkg_root).latest_version("noversion")

    @pytest.mark.parametrize("name", ["", "..", "../ports", "fmt/vcpkg.json"])
    def test_path_like_names_are_unknown(self, vcpkg_root, name):
        with pytest.raises(DependencyNotFoundError):
            VcpkgPortRegistry(vcpkg_root).latest_version(name)

    def test_unreadable_database_falls_back(self, vcpkg_root):
        (vcpkg_root / "versions" / "f-" / "fmt.json").write_text("{ broken")
        assert VcpkgPortRegistry(vcpkg_root).get("fmt").versions == ["11.0.2"]


# ============================================================================
# vcpkg.json
# ============================================================================


@pytest.fixture
def manifest(tmp_path) -> VcpkgManifest:
    path = tmp_path / "vcpkg.json"
    path.write_text(
        json.dumps(
            {
                "name": "demo",
                "builtin-baseline": "abc123",
                "dependencies": ["zlib", {"name": "fmt", "version>=": "10.2.1"}, {"name": "boost-asio"}],
                "overrides": [{"name": "boost-asio", "version": "1.85.0"}],
            }
        )
    )
    return VcpkgManifest(path)


class TestVcpkgManifest:
    def test_dependencies(self, manifest):
        assert manifest.dependencies() == [
            ("zlib", ""),
            ("fmt", "10.2.1"),
            ("boost-asio", "1.85.0"),
        ]

    def test_add_new(self, manifest):
        assert manifest.add("spdlog", "1.14.1") is True
        data = json.loads(manifest.path.read_text())
        assert data["dependencies"][-1] == {"name": "spdlog", "version>=": "1.14.1"}
        assert data["builtin-baseline"] == "abc123"
        assert manifest.path.read_text().endswith("}\n")

    def test_add_updates_existing(self, manifest):
        assert manifest.add("fmt", "11.0.2") is False
        assert ("fmt", "11.0.2") in manifest.dependencies()
        assert len(manifest.dependencies()) == 3

    def test_remove_drops_override(self, manifest):
        manifest.remove("boost-asio")
        data = json.loads(manifest.path.read_text())
        assert data["overrides"] == []
        assert [n for n, _ in manifest.dependencies()] == ["zlib", "fmt"]

    def test_remove_missing(self, manifest):
        with pytest.raises(DependencyNotFoundError):
            manifest.remove("spdlog")

    def test_has_baseline(self, manifest, tmp_path):
        assert manifest.has_baseline()
        bare = tmp_path / "bare.json"
        bare.write_text('{"name": "x"}')
        assert not VcpkgManifest(bare).has_baseline()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "vcpkg.json"
        path.write_text("{,}")
        with pytest.raises(ManifestError, match="Invalid JSON"):
            VcpkgManifest(path).dependencies()

    def test_missing(self, tmp_path):
        with pytest.raises(ManifestError, match="not found"):
            VcpkgManifest(tmp_path / "vcpkg.json").load()


# ============================================================================
# vcpkg executable
# ============================================================================


class TestVcpkgIntegration:
    def test_environment_does_not_touch_process_env(self, cmake_project, vcpkg_root):
        vcpkg = VcpkgIntegration(cmake_project, vcpkg_root)
        before = dict(os.environ)

        env = vcpkg.environment({"PATH": "/usr/bin"})

        assert env["VCPKG_ROOT"] == str(vcpkg_root)
        assert env["VCPKG_FEATURE_FLAGS"] == "manifests"
        assert env["PATH"] == "/usr/bin"
        assert dict(os.environ) == before

    def test_root_required(self, cmake_project):
        vcpkg = VcpkgIntegration(cmake_project)
        with pytest.raises(ConfigurationError, match="vcpkg_root not set"):
            vcpkg.toolchain_file

    def test_install(self, cmake_project, vcpkg_root, fake_runner):
        vcpkg = VcpkgIntegration(cmake_project, vcpkg_root, fake_runner)
        install_root = cmake_project / ".cache" / "native" / "vcpkg_installed"

        vcpkg.install_dependencies(install_root, triplet="x64-linux")

        call = fake_runner.find("vcpkg", "install")
        assert call.mode == STREAM
        assert call.cwd == cmake_project
        assert call.args[2:] == [
            f"--x-manifest-root={cmake_project}",
            f"--x-install-root={install_root}",
            "--triplet=x64-linux",
        ]

    def test_install_failure(self, cmake_project, vcpkg_root, fake_runner):
        fake_runner.on("vcpkg", "install", returncode=1, output="error: no version database entry for zlib\n")
        vcpkg = VcpkgIntegration(cmake_project, vcpkg_root, fake_runner)
        with pytest.raises(BuildFailure) as exc_info:
            vcpkg.install_dependencies(cmake_project / "installed")
        assert exc_info.value.phase == "dependencies"
        assert "Troubleshooting" in str(exc_info.value)

    def test_missing_executable(self, cmake_project, vcpkg_root, fake_runner):
        (vcpkg_root / "vcpkg").unlink()
        vcpkg = VcpkgIntegration(cmake_project, vcpkg_root, fake_runner)
        with pytest.raises(ConfigurationError, match="bootstrap"):
            vcpkg.install_dependencies(cmake_project / "installed")
        assert fake_runner.calls == []


class TestUsage:
    def test_local_port_usage(self, cmake_project, vcpkg_root):
        usage = VcpkgIntegration(cmake_project, vcpkg_root).usage("fmt")
        assert "target_link_libraries(main PRIVATE fmt::fmt)" in usage

    def test_fetched_from_upstream(self, cmake_project):
        response = Mock(status_code=200, text="zlib is compatible with find_package(ZLIB)\n")
        with patch("cxxkit.packages.vcpkg.requests.get", return_value=response) as mock_get:
            usage = VcpkgIntegration(cmake_project).usage("zlib")
        assert usage.startswith("zlib is compatible")
        mock_get.assert_called_once_with(USAGE_URL.format(name="zlib"), timeout=10)

    def test_missing_upstream(self, cmake_project):
        with patch("cxxkit.packages.vcpkg.requests.get", return_value=Mock(status_code=404)):
            assert VcpkgIntegration(cmake_project).usage("zlib") is None

    def test_network_error(self, cmake_project):
        with patch(
            "cxxkit.packages.vcpkg.requests.get",
            side_effect=requests.Timeout("timed out"),
        ):
            assert VcpkgIntegration(cmake_project).usage("zlib") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
