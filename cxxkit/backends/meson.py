"""
Meson build backend.

One build directory (``builddir``) is reconfigured for each build;
dependencies are WrapDB wraps in ``subprojects/``. Built targets are
discovered through ``meson introspect --targets`` with a directory scan
as fallback.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional

from cxxkit.backends.artifacts import (
    find_executables,
    find_libraries,
    is_bench_executable,
    runnable,
)
from cxxkit.backends.base import THIRD_PARTY_TEST_SUITES, BuildBackend
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
    BuildFailure,
    ConfigurationError,
    DependencyNotFoundError,
    NoBenchmarksFoundError,
    NotSupportedError,
    TargetNotFoundError,
    TestFailure,
    ToolNotFoundError,
)
from cxxkit.core.process import CAPTURE
from cxxkit.packages.wrapdb import WRAPDB_URL, WrapDirectory

logger = logging.getLogger(__name__)

BUILD_DIR = "builddir"

# opt_level -> (buildtype, optimization)
_BUILD_TYPES = {
    "0": ("debug", "0"),
    "1": ("debugoptimized", "1"),
    "2": ("release", "2"),
    "3": ("release", "3"),
    "s": ("minsize", "s"),
    "fast": ("release", "3"),
}

_LIBRARY_TYPES = ("static library", "shared library", "shared module")

_PROJECT_PATTERN = re.compile(r"""project\s*\(\s*['"]([^'"]+)['"]""")


def setup_args(profile: OptimizationProfile) -> List[str]:
    """meson setup/configure options for a profile."""
    if profile.opt_level:
        buildtype, optimization = _BUILD_TYPES[profile.opt_level]
    elif profile.release:
        buildtype, optimization = "release", "2"
    else:
        buildtype, optimization = "debug", "0"

    args = [f"--buildtype={buildtype}", f"--optimization={optimization}"]
    if profile.opt_level == "fast":
        args += ["-Dc_args=-ffast-math", "-Dcpp_args=-ffast-math"]
    sanitize = profile.sanitizer.meson_name if profile.sanitizer else "none"
    args.append(f"-Db_sanitize={sanitize}")
    return args


class MesonBackend(BuildBackend):
    """
    Meson build backend.

    Example:
        backend = MesonBackend(Path('/project'))
        backend.add_dependency("fmt")  # meson wrap install fmt
    """

    name = "meson"
    marker_file = "meson.build"
    ignore_entries = ("builddir/", "build/", "subprojects/packagecache/")

    def __init__(self, project_root: Path, runner=None):
        super().__init__(project_root, runner)
        self.build_dir = self.project_root / BUILD_DIR
        self.wraps = WrapDirectory(self.project_root / "subprojects")

    def get_project_name(self) -> Optional[str]:
        try:
            content = (self.project_root / "meson.build").read_text(encoding="utf-8")
        except OSError:
            return None
        match = _PROJECT_PATTERN.search(content)
        return match.group(1) if match else None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _introspect(self) -> Optional[list]:
        """Target list from meson introspect, or None if unavailable."""
        if not self.build_dir.is_dir():
            return None
        result = self._run(["meson", "introspect", "--targets", BUILD_DIR], mode=CAPTURE)
        if not result.ok:
            logger.debug(f"meson introspect failed: {result.stderr.strip()}")
            return None
        try:
            targets = json.loads(result.output)
        except ValueError as e:
            logger.debug(f"Unparsable introspection output: {e}")
            return None
        return targets if isinstance(targets, list) else None

    def _target_files(self, types) -> Optional[List[Path]]:
        targets = self._introspect()
        if targets is None:
            return None
        files = []
        for target in targets:
            if target.get("type") not in types:
                continue
            for filename in target.get("filename", []):
                path = Path(filename)
                if not path.is_absolute():
                    path = self.build_dir / path
                if path.is_file():
                    files.append(path)
        return sorted(files)

    def _executables(self) -> List[Path]:
        files = self._target_files(("executable",))
        if files is not None:
            return files
        found = []
        for directory in (self.build_dir / "src", self.build_dir, self.build_dir / "bench"):
            found += [p for p in find_executables(directory) if p not in found]
        return found

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def _setup(self, profile: OptimizationProfile, toolchain: str = "") -> None:
        if not self.build_dir.is_dir():
            args = ["meson", "setup", BUILD_DIR, *setup_args(profile)]
            if toolchain:
                args += ["--native-file", toolchain]
            self._check(self._run(args), "meson setup", phase="configure")
            return

        result = self._run(["meson", "configure", BUILD_DIR, *setup_args(profile)])
        if not result.ok:
            logger.warning("meson configure failed; building with the previous configuration")

    def build(self, options: BuildOptions) -> Path:
        profile = profile_for(options)
        if options.clean:
            self.clean(CleanOptions())

        print(f"Building with Meson [{profile.label}]...")
        self._setup(profile, options.toolchain)

        args = ["meson", "compile", "-C", BUILD_DIR]
        if options.jobs > 0:
            args += ["-j", str(options.jobs)]
        if options.verbose:
            args.append("-v")
        if options.target:
            args.append(options.target)
        self._check(self._run(args), "Meson build")

        normalizer = self._normalizer(profile)
        normalizer.reset()
        artifacts = self._target_files(("executable",) + _LIBRARY_TYPES)
        if artifacts is not None:
            normalizer.copy(artifacts)
        else:
            normalizer.collect(self.build_dir / "src", max_depth=1, libraries=False)
            normalizer.collect(self.build_dir, max_depth=1, libraries=False)
            normalizer.copy(find_libraries(self.build_dir, max_depth=2))
        print(f"Artifacts in: {normalizer.output_dir}")
        return normalizer.output_dir

    def test(self, options: TestOptions) -> None:
        if not self.build_dir.is_dir():
            self.build(BuildOptions(toolchain=options.toolchain))

        args = ["meson", "test", "-C", BUILD_DIR]
        for suite in THIRD_PARTY_TEST_SUITES:
            args += ["--no-suite", suite]
        args.append("-v" if options.verbose else "--quiet")
        if options.filter:
            args.append(options.filter)

        print("Running tests...")
        result = self._run(args)
        if not result.ok:
            raise TestFailure(
                f"tests failed (meson exit code {result.returncode})",
                output=result.output,
                returncode=result.returncode,
            )

    def run(self, options: RunOptions) -> int:
        self.build(options.build_options())
        executable = self._select(
            runnable(self._executables()),
            options.target,
            preferred=self.get_project_name() or "",
            none_found=TargetNotFoundError(f"no executable found in {self.build_dir}"),
        )
        print(f"Running {executable.name}...")
        return self._exec([executable, *options.args])

    def bench(self, options: BenchOptions) -> int:
        if not self.build_dir.is_dir():
            self.build(options.build_options())

        executables = self._executables()
        candidates = executables if options.target else [
            p for p in executables if is_bench_executable(p)
        ]
        executable = self._select(
            candidates,
            options.target,
            none_found=NoBenchmarksFoundError("no benchmark executables (*_bench) found"),
        )
        print(f"Running benchmark {executable.name}...")
        return self._exec([executable, *options.args])

    def clean(self, options: CleanOptions) -> List[Path]:
        removed = self._remove_output_root()
        removed += self._remove(BUILD_DIR, "build")
        if options.all:
            for extracted in self.wraps.extracted_dirs():
                removed += self._remove(str(extracted.relative_to(self.project_root)))
            removed += self._remove("subprojects/packagecache")
            removed += self._remove_matching("build-*")
        return removed

    def list_targets(self) -> List[str]:
        if not self.build_dir.is_dir():
            raise ConfigurationError(f"{BUILD_DIR} does not exist", "run a build first")
        targets = self._introspect()
        if targets is None:
            raise BuildFailure("meson introspect failed", phase="query")
        return [f"{t.get('name')} ({t.get('type')})" for t in targets]

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def list_dependencies(self) -> List[Dependency]:
        return [Dependency(name=w.name, version=w.version) for w in self.wraps.wraps()]

    def search_dependencies(self, query: str) -> List[Dependency]:
        raise NotSupportedError(self.name, "dependency search", f"browse {WRAPDB_URL}")

    def dependency_info(self, name: str) -> DependencyInfo:
        raise NotSupportedError(self.name, "dependency info", f"browse {WRAPDB_URL}")

    def add_dependency(self, name: str, version: str = "") -> Dependency:
        self.wraps.path.mkdir(parents=True, exist_ok=True)
        action = "update" if self.wraps.get(name) else "install"
        result = self._run(["meson", "wrap", action, name])
        if not result.ok:
            if "not found" in result.output.lower() or "not available" in result.output.lower():
                raise DependencyNotFoundError(name, f"{name} not found in WrapDB")
            self._check(result, f"meson wrap {action} {name}", phase="dependencies")

        wrap = self.wraps.get(name)
        installed = wrap.version if wrap else ""
        if version and installed and not installed.startswith(version):
            logger.warning(
                f"WrapDB provided {name} {installed}, not the requested {version}"
            )
        logger.info(f"Installed wrap {name} {installed}")
        return Dependency(name=name, version=installed or version)

    def remove_dependency(self, name: str) -> None:
        self.wraps.remove(name)

    # ------------------------------------------------------------------
    # Project generation
    # ------------------------------------------------------------------

    def generate_build_src(self, project_path: Path, config: InitConfig) -> None:
        project_path = Path(project_path)
        self._write_new(project_path / "meson.build", templates.meson_build(config))

        subprojects = project_path / "subprojects"
        subprojects.mkdir(parents=True, exist_ok=True)
        for wrap in templates.framework_packages(config, "meson"):
            if (subprojects / f"{wrap}.wrap").exists():
                continue
            try:
                ok = self.runner.run(["meson", "wrap", "install", wrap], cwd=project_path).ok
            except ToolNotFoundError:
                ok = False
            if not ok:
                logger.warning(f"Failed to install wrap {wrap}; run: meson wrap install {wrap}")

    def generate_build_test(self, project_path: Path, config: InitConfig) -> None:
        if not config.has_tests:
            return
        dependency = {"googletest": "gtest_main", "catch2": "catch2-with-main"}.get(
            config.test_framework, config.test_framework
        )
        path = Path(project_path) / "tests" / "meson.build"
        self._write_new(path, templates.meson_tests(config, dependency))

    def generate_build_bench(self, project_path: Path, config: InitConfig) -> None:
        if not config.has_benchmarks:
            return
        dependency = {
            "google-benchmark": "benchmark-main",
            "catch2-benchmark": "catch2-with-main",
        }.get(config.benchmark, config.benchmark)
        path = Path(project_path) / "bench" / "meson.build"
        self._write_new(path, templates.meson_bench(config, dependency))


__all__ = ["MesonBackend", "setup_args"]
