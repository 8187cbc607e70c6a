"""
Unit tests for the cxxkit exception hierarchy.
"""

import pytest

from cxxkit.core.exceptions import (
    BuildFailure,
    ConfigurationError,
    CxxKitError,
    DependencyNotFoundError,
    ManifestError,
    NoBenchmarksFoundError,
    NotSupportedError,
    ProjectNotFoundError,
    RegistryNotConfiguredError,
    TargetNotFoundError,
    TestFailure,
    ToolNotFoundError,
)


class TestHierarchy:
    """Every error is catchable as CxxKitError."""

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("broken", "fix it"),
            RegistryNotConfiguredError("Bazel Central Registry", "cxxkit config set-bcr-root <path>"),
            ToolNotFoundError("cmake"),
            ProjectNotFoundError("no project"),
            ManifestError("bad manifest"),
            BuildFailure("failed"),
            TestFailure("failed"),
            TargetNotFoundError("none"),
            NoBenchmarksFoundError("none"),
            DependencyNotFoundError("fmt"),
            NotSupportedError("meson", "dependency search"),
        ],
    )
    def test_base_class(self, error):
        assert isinstance(error, CxxKitError)

    def test_configuration_subclasses(self):
        for cls in (RegistryNotConfiguredError, ToolNotFoundError, ProjectNotFoundError, ManifestError):
            assert issubclass(cls, ConfigurationError)


class TestMessages:
    """Rendered messages carry hints and details."""

    def test_configuration_error_includes_hint(self):
        error = ConfigurationError("vcpkg_root not set in config", "run 'cxxkit config set-vcpkg-root <path>'")
        assert "vcpkg_root not set in config" in str(error)
        assert "hint: run 'cxxkit config set-vcpkg-root <path>'" in str(error)
        assert error.hint.startswith("run")

    def test_registry_not_configured_names_command(self):
        error = RegistryNotConfiguredError("Bazel Central Registry", "cxxkit config set-bcr-root <path>")
        assert str(error).startswith("Bazel Central Registry not configured")
        assert "cxxkit config set-bcr-root <path>" in str(error)

    def test_tool_not_found_default_hint(self):
        error = ToolNotFoundError("ninja")
        assert error.tool == "ninja"
        assert "ninja not found in PATH" in str(error)
        assert error.hint

    def test_build_failure_keeps_output(self):
        error = BuildFailure("CMake build failed", output="error: foo.cpp:3", returncode=2, phase="configure")
        assert error.output == "error: foo.cpp:3"
        assert error.returncode == 2
        assert error.phase == "configure"

    def test_target_not_found_lists_candidates(self):
        error = TargetNotFoundError("multiple executables found", ["a", "b"])
        assert error.candidates == ["a", "b"]
        assert "candidates: a, b" in str(error)

    def test_dependency_not_found_default_message(self):
        error = DependencyNotFoundError("fmt")
        assert error.name == "fmt"
        assert "fmt" in str(error)

    def test_not_supported_message(self):
        error = NotSupportedError("meson", "dependency search", "browse https://wrapdb.mesonbuild.com")
        assert "dependency search is not supported by the meson backend" in str(error)
        assert "wrapdb.mesonbuild.com" in str(error)


def test_test_failure_is_not_collected():
    """pytest must not mistake TestFailure for a test class."""
    assert TestFailure.__test__ is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
