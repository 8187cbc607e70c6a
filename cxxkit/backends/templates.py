"""
Initial project files written by the backend generation hooks.

Only minimal, compilable manifests live here; richer scaffolding belongs
to the project wizard.
"""

import json
from typing import Dict, Iterable, Sequence, Tuple

from cxxkit.backends.options import InitConfig

# Package name of each test/benchmark framework per package manager.
FRAMEWORK_PACKAGES: Dict[str, Dict[str, str]] = {
    "googletest": {"vcpkg": "gtest", "bazel": "googletest", "meson": "gtest"},
    "catch2": {"vcpkg": "catch2", "bazel": "catch2", "meson": "catch2"},
    "doctest": {"vcpkg": "doctest", "bazel": "doctest", "meson": "doctest"},
    "google-benchmark": {
        "vcpkg": "benchmark",
        "bazel": "google_benchmark",
        "meson": "google-benchmark",
    },
    "catch2-benchmark": {"vcpkg": "catch2", "bazel": "catch2", "meson": "catch2"},
    "nanobench": {"vcpkg": "nanobench", "meson": "nanobench"},
}

# Used for MODULE.bazel when no registry mirror is configured.
BAZEL_DEFAULT_VERSIONS = {
    "googletest": "1.15.2",
    "catch2": "3.7.1",
    "doctest": "2.4.11",
    "google_benchmark": "1.8.5",
}


def framework_packages(config: InitConfig, manager: str) -> Tuple[str, ...]:
    """Packages needed for the configured test and benchmark frameworks."""
    names = []
    for framework in (config.test_framework, config.benchmark):
        package = FRAMEWORK_PACKAGES.get(framework, {}).get(manager)
        if package and package not in names:
            names.append(package)
    return tuple(names)


def gitignore(entries: Iterable[str]) -> str:
    lines = ["# Build outputs", ".bin/", ".cache/", *entries, "", "# Editors", ".vscode/", ".idea/", ""]
    return "\n".join(lines)


def _kind(config: InitConfig) -> str:
    return "library" if config.is_library else "executable"


# =============================================================================
# CMake + vcpkg
# =============================================================================


def vcpkg_manifest(config: InitConfig) -> str:
    deps = list(config.dependencies) + list(framework_packages(config, "vcpkg"))
    data = {"name": config.name.lower().replace("_", "-"), "version": config.version, "dependencies": deps}
    return json.dumps(data, indent=2) + "\n"


def cmake_lists(config: InitConfig) -> str:
    target = f"add_library({config.name} src/{config.name}.cpp)" if config.is_library else f"add_executable({config.name} src/main.cpp)"
    return f"""cmake_minimum_required(VERSION 3.20)
project({config.name} VERSION {config.version} LANGUAGES CXX)

set(CMAKE_CXX_STANDARD {config.cpp_standard})
set(CMAKE_CXX_STANDARD_REQUIRED ON)

{target}
target_include_directories({config.name} PUBLIC include)

option(ENABLE_TESTING "Build tests" OFF)
option(ENABLE_BENCHMARKS "Build benchmarks" OFF)

if(ENABLE_TESTING AND EXISTS ${{CMAKE_SOURCE_DIR}}/tests/CMakeLists.txt)
    enable_testing()
    add_subdirectory(tests)
endif()

if(ENABLE_BENCHMARKS AND EXISTS ${{CMAKE_SOURCE_DIR}}/bench/CMakeLists.txt)
    add_subdirectory(bench)
endif()
"""


_CMAKE_TEST_LINKS = {
    "googletest": ("GTest", "GTest::gtest_main"),
    "catch2": ("Catch2", "Catch2::Catch2WithMain"),
    "doctest": ("doctest", "doctest::doctest"),
}

_CMAKE_BENCH_LINKS = {
    "google-benchmark": ("benchmark", "benchmark::benchmark_main"),
    "catch2-benchmark": ("Catch2", "Catch2::Catch2WithMain"),
    "nanobench": ("nanobench", "nanobench::nanobench"),
}


def cmake_tests(config: InitConfig) -> str:
    package, link = _CMAKE_TEST_LINKS.get(config.test_framework, ("GTest", "GTest::gtest_main"))
    return f"""find_package({package} CONFIG REQUIRED)

add_executable({config.name}_tests test_main.cpp)
target_link_libraries({config.name}_tests PRIVATE {link})
add_test(NAME {config.name}_tests COMMAND {config.name}_tests)
"""


def cmake_bench(config: InitConfig) -> str:
    package, link = _CMAKE_BENCH_LINKS.get(config.benchmark, ("benchmark", "benchmark::benchmark_main"))
    return f"""find_package({package} CONFIG REQUIRED)

add_executable({config.name}_bench bench_main.cpp)
target_link_libraries({config.name}_bench PRIVATE {link})
"""


# =============================================================================
# Bazel
# =============================================================================


def module_bazel(config: InitConfig, deps: Sequence[Tuple[str, str]]) -> str:
    lines = [f'module(name = "{config.name}", version = "{config.version}")', ""]
    lines += [f'bazel_dep(name = "{name}", version = "{version}")' for name, version in deps]
    return "\n".join(lines) + "\n"


def bazelrc(config: InitConfig) -> str:
    return f"""build --cxxopt=-std=c++{config.cpp_standard}
build:debug -c dbg
build:release -c opt
"""


def build_bazel(config: InitConfig) -> str:
    rule = "cc_library" if config.is_library else "cc_binary"
    sources = f'["src/{config.name}.cpp"]' if config.is_library else '["src/main.cpp"]'
    return f"""{rule}(
    name = "{config.name}",
    srcs = {sources},
    visibility = ["//visibility:public"],
)
"""


def bazel_tests(config: InitConfig, dep_label: str) -> str:
    return f"""cc_test(
    name = "{config.name}_test",
    srcs = ["test_main.cpp"],
    deps = ["{dep_label}"],
)
"""


def bazel_bench(config: InitConfig, dep_label: str) -> str:
    return f"""cc_binary(
    name = "{config.name}_bench",
    srcs = ["bench_main.cpp"],
    deps = ["{dep_label}"],
)
"""


# =============================================================================
# Meson
# =============================================================================


def meson_build(config: InitConfig) -> str:
    if config.is_library:
        target = f"{config.name}_lib = library('{config.name}', 'src/{config.name}.cpp', install : true)"
    else:
        target = f"executable('{config.name}', 'src/main.cpp', install : true)"
    return f"""project('{config.name}', 'cpp',
  version : '{config.version}',
  default_options : ['cpp_std=c++{config.cpp_standard}', 'warning_level=3'])

{target}

if import('fs').exists('tests/meson.build')
  subdir('tests')
endif
if import('fs').exists('bench/meson.build')
  subdir('bench')
endif
"""


def meson_tests(config: InitConfig, dependency: str) -> str:
    return f"""test_dep = dependency('{dependency}')
{config.name}_test = executable('{config.name}_test', 'test_main.cpp', dependencies : test_dep)
test('{config.name}', {config.name}_test)
"""


def meson_bench(config: InitConfig, dependency: str) -> str:
    return f"""bench_dep = dependency('{dependency}')
{config.name}_bench = executable('{config.name}_bench', 'bench_main.cpp', dependencies : bench_dep)
benchmark('{config.name}', {config.name}_bench)
"""
