"""
Option model shared by every build backend.

Plain data passed from the caller into a backend verb. Options are created
per invocation and never mutated by the backends.
"""

from dataclasses import dataclass, field
from typing import List


# =============================================================================
# Verb Options
# =============================================================================


@dataclass
class BuildOptions:
    """
    One build request.

    Attributes:
        release: Build the release configuration when opt_level is unset
        opt_level: Optimization level code ("0", "1", "2", "3", "s", "fast");
            overrides release when set
        sanitizer: "asan", "tsan", "msan" or "ubsan"; anything else is ignored
        target: Single target to build (backend default when empty)
        jobs: Parallel job count passed to the toolchain (0 = toolchain default)
        clean: Clean generated build trees before building
        verbose: Show full toolchain output
        toolchain: Toolchain override (toolchain file, Bazel toolchain label,
            or Meson native file)
    """

    release: bool = False
    opt_level: str = ""
    sanitizer: str = ""
    target: str = ""
    jobs: int = 0
    clean: bool = False
    verbose: bool = False
    toolchain: str = ""


@dataclass
class TestOptions:
    """Test run request; filter narrows the project's tests by name."""

    __test__ = False

    verbose: bool = False
    filter: str = ""
    toolchain: str = ""


@dataclass
class RunOptions:
    """Run request: build fields for the pre-build plus program arguments."""

    release: bool = False
    opt_level: str = ""
    sanitizer: str = ""
    target: str = ""
    args: List[str] = field(default_factory=list)
    verbose: bool = False
    toolchain: str = ""

    def build_options(self) -> BuildOptions:
        return BuildOptions(
            release=self.release,
            opt_level=self.opt_level,
            sanitizer=self.sanitizer,
            target=self.target,
            verbose=self.verbose,
            toolchain=self.toolchain,
        )


@dataclass
class BenchOptions:
    """Benchmark request; benchmarks build optimized unless told otherwise."""

    release: bool = True
    opt_level: str = ""
    sanitizer: str = ""
    target: str = ""
    args: List[str] = field(default_factory=list)
    verbose: bool = False
    toolchain: str = ""

    def build_options(self) -> BuildOptions:
        return BuildOptions(
            release=self.release,
            opt_level=self.opt_level,
            sanitizer=self.sanitizer,
            verbose=self.verbose,
            toolchain=self.toolchain,
        )


@dataclass
class CleanOptions:
    """
    Scope of artifact removal.

    Attributes:
        all: Also remove dependency caches and fetched registries
        verbose: Report every removed path
    """

    all: bool = False
    verbose: bool = False


# =============================================================================
# Dependency Data
# =============================================================================


@dataclass
class Dependency:
    """A declared or discovered package reference."""

    name: str
    version: str = ""
    description: str = ""


@dataclass
class DependencyInfo:
    """Detailed registry metadata for one package."""

    name: str
    version: str = ""
    description: str = ""
    homepage: str = ""
    license: str = ""
    dependencies: List[str] = field(default_factory=list)


# =============================================================================
# Project Generation
# =============================================================================


@dataclass(frozen=True)
class InitConfig:
    """
    Settings handed to the project generation hooks.

    Attributes:
        name: Project name
        version: Initial project version
        is_library: Generate a library instead of an executable
        cpp_standard: C++ standard level (e.g. 17, 20)
        test_framework: "googletest", "catch2", "doctest", or "" / "none"
        benchmark: "google-benchmark", "catch2-benchmark", "nanobench", or "" / "none"
        dependencies: Initial dependency names
    """

    name: str
    version: str = "0.1.0"
    is_library: bool = False
    cpp_standard: int = 17
    test_framework: str = ""
    benchmark: str = ""
    dependencies: tuple = ()

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.name:
            raise ValueError("Project name cannot be empty")

    @property
    def has_tests(self) -> bool:
        return self.test_framework not in ("", "none")

    @property
    def has_benchmarks(self) -> bool:
        return self.benchmark not in ("", "none")


__all__ = [
    "BuildOptions",
    "TestOptions",
    "RunOptions",
    "BenchOptions",
    "CleanOptions",
    "Dependency",
    "DependencyInfo",
    "InitConfig",
]
