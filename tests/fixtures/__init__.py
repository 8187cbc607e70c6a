"""Test fixtures for cxxkit tests.

Fixtures are organized by type:

- projects: minimal CMake+vcpkg, Bazel and Meson project trees
- registries: local vcpkg and Bazel Central Registry mirrors

Import fixtures in your tests using:
    from tests.fixtures.projects import cmake_project
    from tests.fixtures.registries import bcr_root
"""

__all__ = [
    "projects",
    "registries",
]
