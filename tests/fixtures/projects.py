"""Reusable project fixtures for backend tests.

Each fixture creates the marker file and a minimal source tree of one
backend's project layout under tmp_path.
"""

import os
from pathlib import Path

import pytest


def make_executable(path: Path, content: str = "#!/bin/sh\nexit 0\n") -> Path:
    """Create a file with the executable bit set."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    os.chmod(path, 0o755)
    return path


@pytest.fixture
def cmake_project(tmp_path) -> Path:
    """
    Create a CMake project with a vcpkg manifest.

    Creates:
    - vcpkg.json (one dependency, zlib)
    - CMakeLists.txt (project "demo")
    - src/main.cpp
    """
    project_root = tmp_path / "cmake_project"
    (project_root / "src").mkdir(parents=True)
    (project_root / "vcpkg.json").write_text(
        '{\n  "name": "demo",\n  "version": "0.1.0",\n  "dependencies": [\n    "zlib"\n  ]\n}\n'
    )
    (project_root / "CMakeLists.txt").write_text(
        "cmake_minimum_required(VERSION 3.20)\n"
        "project(demo VERSION 0.1.0 LANGUAGES CXX)\n"
        "add_executable(demo src/main.cpp)\n"
    )
    (project_root / "src" / "main.cpp").write_text("int main() { return 0; }\n")
    return project_root


@pytest.fixture
def bazel_project(tmp_path) -> Path:
    """
    Create a Bazel module project.

    Creates:
    - MODULE.bazel (module "demo", googletest dependency)
    - BUILD.bazel (cc_binary "demo")
    - src/main.cpp
    """
    project_root = tmp_path / "bazel_project"
    (project_root / "src").mkdir(parents=True)
    (project_root / "MODULE.bazel").write_text(
        'module(name = "demo", version = "0.1.0")\n'
        "\n"
        'bazel_dep(name = "googletest", version = "1.14.0", dev_dependency = True)\n'
    )
    (project_root / "BUILD.bazel").write_text(
        'cc_binary(\n    name = "demo",\n    srcs = ["src/main.cpp"],\n)\n'
    )
    (project_root / "src" / "main.cpp").write_text("int main() { return 0; }\n")
    return project_root


@pytest.fixture
def meson_project(tmp_path) -> Path:
    """
    Create a Meson project.

    Creates:
    - meson.build (project "demo")
    - subprojects/ (empty)
    - src/main.cpp
    """
    project_root = tmp_path / "meson_project"
    (project_root / "src").mkdir(parents=True)
    (project_root / "subprojects").mkdir()
    (project_root / "meson.build").write_text(
        "project('demo', 'cpp', version : '0.1.0')\n"
        "executable('demo', 'src/main.cpp')\n"
    )
    (project_root / "src" / "main.cpp").write_text("int main() { return 0; }\n")
    return project_root
