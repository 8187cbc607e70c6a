"""
Build backend interface for cxxkit.

This module defines the abstract base class every build backend implements
(CMake+vcpkg, Bazel, Meson). Callers issue backend-agnostic verbs; each
backend translates them into its own toolchain invocations and normalizes
the results into the canonical output directory.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from cxxkit.backends.artifacts import (
    BIN_DIR,
    PLATFORM_DIR,
    ArtifactNormalizer,
    canonical_output_dir,
)
from cxxkit.backends.optimization import OptimizationProfile
from cxxkit.backends.options import (
    BenchOptions,
    BuildOptions,
    CleanOptions,
    Dependency,
    DependencyInfo,
    InitConfig,
    RunOptions,
    TestOptions,
)
from cxxkit.core.exceptions import BuildFailure, CxxKitError, TargetNotFoundError
from cxxkit.core.filesystem import remove_path
from cxxkit.core.process import INTERACTIVE, STREAM, ProcessResult, ProcessRunner
from cxxkit.packages.registry import LocalRegistry
from cxxkit.backends import templates

logger = logging.getLogger(__name__)

# Test suites shipped by bundled test/benchmark frameworks, never the project's own.
THIRD_PARTY_TEST_SUITES = ("google-benchmark", "gtest", "gmock", "catch2")


class BuildBackend(ABC):
    """
    Abstract base class for build backends.

    Subclasses set ``name`` and ``marker_file`` and implement the verbs.
    All external commands run through ``self.runner`` with the project root
    as working directory.

    Attributes:
        project_root: Absolute project root
        runner: ProcessRunner used for every external command
    """

    name = ""
    marker_file = ""
    ignore_entries: tuple = ()

    def __init__(self, project_root: Path, runner: Optional[ProcessRunner] = None):
        self.project_root = Path(project_root).resolve()
        self.runner = runner or ProcessRunner()

    def get_name(self) -> str:
        return self.name

    @classmethod
    def detect(cls, project_root: Path) -> bool:
        """True if the project's marker file exists."""
        return (Path(project_root) / cls.marker_file).is_file()

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    @abstractmethod
    def build(self, options: BuildOptions) -> Path:
        """
        Build the project.

        Returns:
            The canonical output directory holding the copied artifacts

        Raises:
            BuildFailure: If the toolchain exits non-zero
        """
        pass

    @abstractmethod
    def test(self, options: TestOptions) -> None:
        """
        Run the project's own tests.

        Raises:
            TestFailure: If any project test fails
        """
        pass

    @abstractmethod
    def run(self, options: RunOptions) -> int:
        """
        Build, then run one executable with inherited standard streams.

        Returns:
            The program's exit code

        Raises:
            TargetNotFoundError: If no single executable can be chosen
        """
        pass

    @abstractmethod
    def bench(self, options: BenchOptions) -> int:
        """
        Build and run one benchmark executable.

        Returns:
            The benchmark's exit code

        Raises:
            NoBenchmarksFoundError: If the project has no benchmarks
        """
        pass

    @abstractmethod
    def clean(self, options: CleanOptions) -> List[Path]:
        """
        Remove generated build trees; never raises on removal errors.

        Returns:
            Paths that were removed
        """
        pass

    @abstractmethod
    def list_targets(self) -> List[str]:
        """Buildable targets, formatted for display."""
        pass

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    @abstractmethod
    def list_dependencies(self) -> List[Dependency]:
        pass

    @abstractmethod
    def search_dependencies(self, query: str) -> List[Dependency]:
        pass

    @abstractmethod
    def dependency_info(self, name: str) -> DependencyInfo:
        pass

    @abstractmethod
    def add_dependency(self, name: str, version: str = "") -> Dependency:
        """
        Declare a dependency; an empty version resolves to the latest known.

        Raises:
            DependencyNotFoundError: If the registry does not know the package
        """
        pass

    @abstractmethod
    def remove_dependency(self, name: str) -> None:
        """
        Remove a declared dependency.

        Raises:
            DependencyNotFoundError: If it is not declared
        """
        pass

    # ------------------------------------------------------------------
    # Project generation
    # ------------------------------------------------------------------

    def generate_gitignore(self, project_path: Path) -> Path:
        path = Path(project_path) / ".gitignore"
        self._write_new(path, templates.gitignore(self.ignore_entries))
        return path

    @abstractmethod
    def generate_build_src(self, project_path: Path, config: InitConfig) -> None:
        """Write the initial build and dependency manifests."""
        pass

    @abstractmethod
    def generate_build_test(self, project_path: Path, config: InitConfig) -> None:
        """Write the test build file; a no-op without a test framework."""
        pass

    @abstractmethod
    def generate_build_bench(self, project_path: Path, config: InitConfig) -> None:
        """Write the benchmark build file; a no-op without a benchmark library."""
        pass

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        args: List[str],
        mode: str = STREAM,
        env: Optional[Dict[str, str]] = None,
    ) -> ProcessResult:
        return self.runner.run(args, cwd=self.project_root, env=env, mode=mode)

    def _check(self, result: ProcessResult, what: str, phase: str = "build") -> None:
        """Raise BuildFailure carrying the child's output if it failed."""
        if not result.ok:
            logger.error(f"{what} failed with exit code {result.returncode}")
            raise BuildFailure(
                f"{what} failed with exit code {result.returncode}",
                output=result.output,
                returncode=result.returncode,
                phase=phase,
            )

    def _exec(self, args: List[str]) -> int:
        """Run a user program in the foreground and return its exit code."""
        result = self._run([str(a) for a in args], mode=INTERACTIVE)
        if result.returncode != 0:
            logger.info(f"{Path(str(args[0])).name} exited with code {result.returncode}")
        return result.returncode

    def _normalizer(self, profile: OptimizationProfile) -> ArtifactNormalizer:
        return ArtifactNormalizer(
            canonical_output_dir(self.project_root, profile), self.runner
        )

    def _remove(self, *relative: str) -> List[Path]:
        """Remove project-relative entries, logging failures as warnings."""
        removed = []
        for rel in relative:
            path = self.project_root / rel
            if remove_path(path, self.project_root):
                removed.append(path)
        return removed

    def _remove_matching(self, *patterns: str) -> List[Path]:
        """Remove top-level entries matching glob patterns."""
        removed = []
        for pattern in patterns:
            try:
                matches = sorted(self.project_root.glob(pattern))
            except OSError as e:
                logger.warning(f"Cannot scan for {pattern}: {e}")
                continue
            for path in matches:
                if remove_path(path, self.project_root):
                    removed.append(path)
        return removed

    def _remove_output_root(self) -> List[Path]:
        return self._remove(f"{BIN_DIR}/{PLATFORM_DIR}")

    @staticmethod
    def _select(
        candidates: List[Path],
        target: str,
        preferred: str = "",
        none_found: Optional[CxxKitError] = None,
    ) -> Path:
        """
        Choose one executable.

        An explicit target must match by name. Otherwise the executable
        named ``preferred`` wins, then a single candidate; zero or several
        candidates are an error.
        """
        names = [c.name for c in candidates]
        if target:
            for candidate in candidates:
                if target in (candidate.name, candidate.stem):
                    return candidate
            raise TargetNotFoundError(f"target '{target}' not found", names)

        if preferred:
            for candidate in candidates:
                if preferred in (candidate.name, candidate.stem):
                    return candidate

        if len(candidates) == 1:
            return candidates[0]
        if not candidates:
            raise none_found or TargetNotFoundError("no executable found; build first")
        raise TargetNotFoundError(
            "multiple executables found; specify a target", names
        )

    @staticmethod
    def _resolve_version(registry: LocalRegistry, name: str, version: str) -> str:
        """
        Version to record for a new dependency.

        An explicit version is checked against the registry when one is
        configured; an empty version always needs the registry.
        """
        if not version:
            return registry.latest_version(name)
        if registry.configured:
            registry.get(name)
        else:
            logger.debug(f"Registry not configured; recording {name} {version} unchecked")
        return version

    def _write_new(self, path: Path, content: str) -> None:
        """Write a generated file unless the user already has one."""
        if path.exists():
            logger.info(f"Keeping existing {path}")
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.debug(f"Generated {path}")


__all__ = ["BuildBackend", "THIRD_PARTY_TEST_SUITES"]
