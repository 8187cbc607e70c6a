"""
Bazel build backend.

Dependencies are ``bazel_dep`` declarations in MODULE.bazel, resolved
against a local clone of the Bazel Central Registry. Bazel keeps outputs
in a read-only tree behind the ``bazel-bin`` symlink (``.bazel-bin`` in
quiet mode, which sets ``--symlink_prefix=.bazel-``); builds copy final
binaries and libraries out of it.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from cxxkit.backends.base import BuildBackend
from cxxkit.backends.optimization import OptimizationProfile, profile_for
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
from cxxkit.backends import templates
from cxxkit.core.exceptions import (
    DependencyNotFoundError,
    ManifestError,
    NoBenchmarksFoundError,
    TargetNotFoundError,
    TestFailure,
    ToolNotFoundError,
)
from cxxkit.core.process import CAPTURE, INTERACTIVE
from cxxkit.packages.bcr import BazelCentralRegistry, ModuleFile

logger = logging.getLogger(__name__)

QUIET_FLAGS = ["--noshow_progress", "--symlink_prefix=.bazel-"]
BIN_LINKS = (".bazel-bin", "bazel-bin")

_CC_BINARY_PATTERN = re.compile(r'cc_binary\s*\(\s*name\s*=\s*"([^"]+)"')


def optimization_flags(profile: OptimizationProfile) -> List[str]:
    """Bazel flags selecting optimization level and sanitizer."""
    if profile.opt_level == "0":
        flags = ["--copt=-O0", "-c", "dbg"]
    elif profile.opt_level:
        flags = [f"--copt={profile.optimization_flag}", "-c", "opt"]
    else:
        flags = ["--config=release" if profile.release else "--config=debug"]

    if profile.sanitizer:
        flags += [f"--copt={f}" for f in profile.sanitizer.compile_flags]
        flags += [f"--linkopt={f}" for f in profile.sanitizer.link_flags]
    return flags


def normalize_label(target: str) -> str:
    """Turn a bare target name into a root-package label."""
    if target.startswith(("//", ":", "@")):
        return target
    return f"//:{target}"


def _label_name(label: str) -> str:
    return label.rsplit(":", 1)[-1] if ":" in label else label.rsplit("/", 1)[-1]


class BazelBackend(BuildBackend):
    """
    Bazel build backend.

    Example:
        backend = BazelBackend(Path('/project'), registry=BazelCentralRegistry(bcr_root))
        backend.add_dependency("fmt")  # latest version from the registry
    """

    name = "bazel"
    marker_file = "MODULE.bazel"
    ignore_entries = ("bazel-*", ".bazel-*", "MODULE.bazel.lock")

    def __init__(
        self,
        project_root: Path,
        runner=None,
        registry: Optional[BazelCentralRegistry] = None,
    ):
        super().__init__(project_root, runner)
        self.registry = registry if registry is not None else BazelCentralRegistry(None)
        self.module_file = ModuleFile(self.project_root / "MODULE.bazel")

    def _common_flags(self, verbose: bool, jobs: int = 0, toolchain: str = "") -> List[str]:
        flags = [] if verbose else list(QUIET_FLAGS)
        if jobs > 0:
            flags.append(f"--jobs={jobs}")
        if toolchain:
            flags.append(f"--extra_toolchains={toolchain}")
        return flags

    def _bin_dir(self) -> Optional[Path]:
        for name in BIN_LINKS:
            path = self.project_root / name
            if path.exists():
                return path
        return None

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def build(self, options: BuildOptions) -> Path:
        profile = profile_for(options)
        if options.clean:
            self.clean(CleanOptions())

        print(f"Building with Bazel [{profile.label}]...")
        args = [
            "bazel",
            "build",
            *optimization_flags(profile),
            *self._common_flags(options.verbose, options.jobs, options.toolchain),
            options.target or "//...",
        ]
        self._check(self._run(args), "Bazel build")

        normalizer = self._normalizer(profile)
        normalizer.reset()
        bin_dir = self._bin_dir()
        if bin_dir is None:
            logger.warning("Bazel output tree not found; no artifacts copied")
        else:
            normalizer.collect(bin_dir / "src", max_depth=1)
            normalizer.collect(bin_dir, max_depth=1)
        print(f"Artifacts in: {normalizer.output_dir}")
        return normalizer.output_dir

    def test(self, options: TestOptions) -> None:
        args = ["bazel", "test", "--build_tests_only"]
        if options.verbose:
            args.append("--test_output=all")
        else:
            args += ["--test_output=errors", *QUIET_FLAGS]
        if options.toolchain:
            args.append(f"--extra_toolchains={options.toolchain}")
        # //... only matches the main repository, never external modules.
        args.append(options.filter or "//...")

        print("Running tests...")
        result = self._run(args)
        if not result.ok:
            raise TestFailure(
                f"tests failed (bazel exit code {result.returncode})",
                output=result.output,
                returncode=result.returncode,
            )

    def run(self, options: RunOptions) -> int:
        profile = profile_for(options)
        binaries = [
            label
            for label in self._binaries("//...")
            if not label.startswith("//bench")
            and "_test" not in _label_name(label)
            and "_bench" not in _label_name(label)
        ]
        label = self._select_label(
            binaries,
            options.target,
            preferred=self.module_file.module_name() or "",
            none_found=TargetNotFoundError("no cc_binary targets found"),
        )

        args = [
            "bazel",
            "run",
            *optimization_flags(profile),
            *self._common_flags(options.verbose, toolchain=options.toolchain),
            label,
        ]
        if options.args:
            args += ["--", *options.args]
        print(f"Running {label}...")
        return self._run(args, mode=INTERACTIVE).returncode

    def bench(self, options: BenchOptions) -> int:
        profile = profile_for(options)
        label = self._select_label(
            self._binaries("//bench:*"),
            options.target,
            none_found=NoBenchmarksFoundError("no benchmark targets found in //bench"),
        )

        args = ["bazel", "run", *optimization_flags(profile)]
        args += ["--verbose_failures"] if options.verbose else list(QUIET_FLAGS)
        args.append(label)
        if options.args:
            args += ["--", *options.args]
        print(f"Running benchmark {label}...")
        return self._run(args, mode=INTERACTIVE).returncode

    def _binaries(self, scope: str) -> List[str]:
        """cc_binary labels in scope, from bazel query or BUILD file scanning."""
        result = self._run(["bazel", "query", f"kind(cc_binary, {scope})"], mode=CAPTURE)
        if result.ok:
            return [
                line.strip()
                for line in result.output.splitlines()
                if line.strip().startswith("//")
            ]
        logger.debug(f"bazel query failed, scanning BUILD files: {result.stderr.strip()}")

        package = scope[2:].split(":")[0].rstrip(".").rstrip("/")
        packages = [package] if package else ["", "src"]
        labels = []
        for pkg in packages:
            build_file = self.project_root / pkg / "BUILD.bazel"
            if not build_file.is_file():
                continue
            for name in _CC_BINARY_PATTERN.findall(build_file.read_text(encoding="utf-8")):
                labels.append(f"//{pkg}:{name}")
        return labels

    def _select_label(
        self, labels: List[str], target: str, preferred: str = "", none_found=None
    ) -> str:
        """Resolve a run/bench label with the same policy as file executables."""
        by_name = {Path(_label_name(label)): label for label in labels}
        if target and target.startswith(("//", ":", "@")):
            return target
        try:
            chosen = self._select(list(by_name), target, preferred, none_found)
        except TargetNotFoundError:
            if target and not labels:
                return normalize_label(target)
            raise
        return by_name[chosen]

    def clean(self, options: CleanOptions) -> List[Path]:
        args = ["bazel", "clean"] + (["--expunge"] if options.all else [])
        try:
            result = self._run(args, mode=CAPTURE)
            if not result.ok:
                logger.warning(f"bazel clean failed: {result.stderr.strip()}")
        except ToolNotFoundError as e:
            logger.warning(str(e))

        removed = self._remove_output_root()
        removed += self._remove("build")
        removed += self._remove_matching("bazel-*", ".bazel-*")
        if options.all:
            removed += self._remove(".bazel", "external")
        return removed

    def list_targets(self) -> List[str]:
        result = self._run(["bazel", "query", "//...", "--output", "label_kind"], mode=CAPTURE)
        self._check(result, "bazel query", phase="query")
        targets = []
        for line in result.output.splitlines():
            parts = line.split()
            if len(parts) >= 3 and parts[0].startswith("cc_"):
                targets.append(f"{parts[-1]} ({parts[0]})")
        return targets

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def list_dependencies(self) -> List[Dependency]:
        return [Dependency(name=n, version=v) for n, v in self.module_file.dependencies()]

    def search_dependencies(self, query: str) -> List[Dependency]:
        return [
            Dependency(name=p.name, version=p.latest_version or "", description=p.description)
            for p in self.registry.search(query)
        ]

    def dependency_info(self, name: str) -> DependencyInfo:
        package = self.registry.get(name)
        return DependencyInfo(
            name=package.name,
            version=package.latest_version or "",
            description=package.description,
            homepage=package.homepage,
            license=package.license,
            dependencies=list(package.dependencies),
        )

    def add_dependency(self, name: str, version: str = "") -> Dependency:
        version = self._resolve_version(self.registry, name, version)
        added = self.module_file.add(name, version)
        logger.info(f"{'Added' if added else 'Updated'} {name} {version} in MODULE.bazel")
        return Dependency(name=name, version=version)

    def remove_dependency(self, name: str) -> None:
        self.module_file.remove(name)
        logger.info(f"Removed {name} from MODULE.bazel")

    # ------------------------------------------------------------------
    # Project generation
    # ------------------------------------------------------------------

    def _framework_version(self, module: str) -> str:
        if self.registry.configured:
            try:
                package = self.registry.get(module)
            except (DependencyNotFoundError, ManifestError) as e:
                logger.warning(f"Using default {module} version: {e}")
            else:
                if package.latest_version:
                    return package.latest_version
        return templates.BAZEL_DEFAULT_VERSIONS.get(module, "")

    def generate_build_src(self, project_path: Path, config: InitConfig) -> None:
        project_path = Path(project_path)
        modules = templates.framework_packages(config, "bazel")
        deps = [(m, self._framework_version(m)) for m in modules]
        self._write_new(project_path / "MODULE.bazel", templates.module_bazel(config, deps))
        self._write_new(project_path / ".bazelrc", templates.bazelrc(config))
        self._write_new(project_path / "BUILD.bazel", templates.build_bazel(config))

    def generate_build_test(self, project_path: Path, config: InitConfig) -> None:
        if not config.has_tests:
            return
        labels = {
            "googletest": "@googletest//:gtest_main",
            "catch2": "@catch2//:catch2_main",
            "doctest": "@doctest//doctest",
        }
        dep = labels.get(config.test_framework, "@googletest//:gtest_main")
        path = Path(project_path) / "tests" / "BUILD.bazel"
        self._write_new(path, templates.bazel_tests(config, dep))

    def generate_build_bench(self, project_path: Path, config: InitConfig) -> None:
        if not config.has_benchmarks:
            return
        labels = {
            "google-benchmark": "@google_benchmark//:benchmark_main",
            "catch2-benchmark": "@catch2//:catch2_main",
        }
        dep = labels.get(config.benchmark, "@google_benchmark//:benchmark_main")
        path = Path(project_path) / "bench" / "BUILD.bazel"
        self._write_new(path, templates.bazel_bench(config, dep))


__all__ = ["BazelBackend", "optimization_flags", "normalize_label"]
