"""
CMake build backend with vcpkg dependency management.

Build trees live under ``.cache/native/<configuration>``; vcpkg installs
manifest dependencies once into the shared ``.cache/native/vcpkg_installed``
tree before CMake configures. Tests and benchmarks get their own trees
(``.cache/native/test`` and ``.cache/native/bench``).
"""

import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional

from cxxkit.backends.artifacts import (
    find_executables,
    is_bench_executable,
    runnable,
)
from cxxkit.backends.base import THIRD_PARTY_TEST_SUITES, BuildBackend
from cxxkit.backends.optimization import (
    OptimizationProfile,
    profile_for,
    resolve_profile,
)
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
    ConfigurationError,
    NoBenchmarksFoundError,
    TargetNotFoundError,
    TestFailure,
)
from cxxkit.core.process import CAPTURE
from cxxkit.packages.vcpkg import VcpkgIntegration, VcpkgManifest, VcpkgPortRegistry

logger = logging.getLogger(__name__)

CACHE_DIR = Path(".cache") / "native"

_BUILD_TYPES = {
    "0": "Debug",
    "1": "RelWithDebInfo",
    "2": "Release",
    "3": "Release",
    "s": "MinSizeRel",
    "fast": "Release",
}

_PROJECT_PATTERN = re.compile(r"project\s*\(\s*([^\s\)]+)", re.IGNORECASE)
_NINJA_TARGET_PATTERN = re.compile(r"^(\S+): (\S+)$")

# ctest names of the bundled frameworks' own test programs.
_CTEST_EXCLUDE = "^(" + "|".join(THIRD_PARTY_TEST_SUITES + ("googletest", "googlemock")) + ")[-_.:/]"

_MAKE_HELP_IGNORED = {
    "all",
    "clean",
    "depend",
    "edit_cache",
    "rebuild_cache",
    "install",
    "install/local",
    "install/strip",
    "list_install_components",
    "test",
}


def build_type(profile: OptimizationProfile) -> str:
    """CMAKE_BUILD_TYPE for a profile."""
    if profile.opt_level:
        return _BUILD_TYPES[profile.opt_level]
    return "Release" if profile.release else "Debug"


class CMakeBackend(BuildBackend):
    """
    CMake build backend driven by a vcpkg manifest.

    Example:
        backend = CMakeBackend(Path('/project'), vcpkg_root=Path('/opt/vcpkg'))
        backend.build(BuildOptions(opt_level="2"))  # -> /project/.bin/native/O2
    """

    name = "vcpkg"
    marker_file = "vcpkg.json"
    ignore_entries = ("vcpkg_installed/", "out/", "cmake-build-*/", "build-*/")

    def __init__(
        self,
        project_root: Path,
        runner=None,
        vcpkg_root: Optional[Path] = None,
        registry: Optional[VcpkgPortRegistry] = None,
    ):
        super().__init__(project_root, runner)
        self.vcpkg = VcpkgIntegration(self.project_root, vcpkg_root, self.runner)
        self.registry = registry if registry is not None else VcpkgPortRegistry(vcpkg_root)
        self.manifest = VcpkgManifest(self.vcpkg.manifest_file)

    @property
    def cache_root(self) -> Path:
        return self.project_root / CACHE_DIR

    @property
    def install_root(self) -> Path:
        return self.cache_root / "vcpkg_installed"

    def get_project_name(self) -> str:
        """
        Project name from the top-level CMakeLists.txt.

        Raises:
            ConfigurationError: If no project() call is found
        """
        cmake_lists = self.project_root / "CMakeLists.txt"
        try:
            match = _PROJECT_PATTERN.search(cmake_lists.read_text(encoding="utf-8"))
        except OSError:
            match = None
        if not match:
            raise ConfigurationError(
                f"Could not find project() in {cmake_lists}",
                "add project(<name>) to CMakeLists.txt",
            )
        return match.group(1)

    # ------------------------------------------------------------------
    # Configure / compile
    # ------------------------------------------------------------------

    def configure_args(
        self,
        build_dir: Path,
        profile: OptimizationProfile,
        toolchain: str = "",
        extra: Optional[List[str]] = None,
    ) -> List[str]:
        """cmake configure command line for one build tree."""
        if (self.project_root / "CMakePresets.json").exists():
            args = ["cmake", "--preset=default", "-B", str(build_dir)]
        else:
            args = [
                "cmake",
                "-S",
                str(self.project_root),
                "-B",
                str(build_dir),
                f"-DCMAKE_TOOLCHAIN_FILE={self.vcpkg.toolchain_file}",
            ]

        args += [
            f"-DCMAKE_BUILD_TYPE={build_type(profile)}",
            f"-DVCPKG_INSTALLED_DIR={self.install_root}",
            "-DVCPKG_MANIFEST_INSTALL=OFF",
        ]

        compile_flags = " ".join(profile.compile_flags)
        if compile_flags:
            args.append(f"-DCMAKE_CXX_FLAGS={compile_flags}")
            args.append(f"-DCMAKE_C_FLAGS={compile_flags}")
        link_flags = " ".join(profile.link_flags)
        if link_flags:
            args.append(f"-DCMAKE_EXE_LINKER_FLAGS={link_flags}")
            args.append(f"-DCMAKE_SHARED_LINKER_FLAGS={link_flags}")

        if toolchain:
            chainload = (self.project_root / toolchain).resolve()
            args.append(f"-DVCPKG_CHAINLOAD_TOOLCHAIN_FILE={chainload}")

        return args + list(extra or [])

    def _prepare(
        self,
        build_dir: Path,
        profile: OptimizationProfile,
        toolchain: str = "",
        extra: Optional[List[str]] = None,
    ) -> Dict[str, str]:
        """Install dependencies and configure build_dir if needed."""
        env = self.vcpkg.environment()
        if self.vcpkg.detect():
            self.vcpkg.install_dependencies(self.install_root)

        if (build_dir / "CMakeCache.txt").exists():
            logger.debug(f"Reusing configured build tree {build_dir}")
            return env

        logger.info("Running CMake configuration")
        print("Configuring CMake...")
        args = self.configure_args(build_dir, profile, toolchain, extra)
        logger.debug(f"CMake command: {' '.join(args)}")
        self._check(self._run(args, env=env), "CMake configuration", phase="configure")
        return env

    def _compile(
        self,
        build_dir: Path,
        config: str,
        env: Dict[str, str],
        jobs: int = 0,
        target: str = "",
        verbose: bool = False,
    ) -> None:
        args = ["cmake", "--build", str(build_dir), "--config", config]
        if verbose:
            args.append("--verbose")
        args += ["--parallel", str(jobs or os.cpu_count() or 1)]
        if target:
            args += ["--target", target]
        self._check(self._run(args, env=env), "CMake build")

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def build(self, options: BuildOptions) -> Path:
        profile = profile_for(options)
        if options.clean:
            self.clean(CleanOptions())

        print(f"Building with CMake [{profile.label}]...")
        build_dir = self.cache_root / profile.dir_name
        env = self._prepare(build_dir, profile, options.toolchain)
        self._compile(
            build_dir,
            build_type(profile),
            env,
            jobs=options.jobs,
            target=options.target,
            verbose=options.verbose,
        )

        normalizer = self._normalizer(profile)
        normalizer.reset()
        normalizer.collect(build_dir, max_depth=4)
        print(f"Artifacts in: {normalizer.output_dir}")
        return normalizer.output_dir

    def test(self, options: TestOptions) -> None:
        name = self.get_project_name()
        build_dir = self.cache_root / "test"
        env = self._prepare(
            build_dir, resolve_profile(), options.toolchain, ["-DENABLE_TESTING=ON"]
        )
        self._compile(build_dir, "Debug", env, target=f"{name}_tests", verbose=options.verbose)

        args = [
            "ctest",
            "--test-dir",
            str(build_dir),
            "-C",
            "Debug",
            "--output-on-failure",
            "--exclude-regex",
            _CTEST_EXCLUDE,
        ]
        if options.verbose:
            args.append("--verbose")
        if options.filter:
            args += ["-R", options.filter]

        print("Running tests...")
        result = self._run(args, env=env)
        if not result.ok:
            raise TestFailure(
                f"tests failed (ctest exit code {result.returncode})",
                output=result.output,
                returncode=result.returncode,
            )

    def run(self, options: RunOptions) -> int:
        output_dir = self.build(options.build_options())
        candidates = runnable(find_executables(output_dir))
        try:
            preferred = self.get_project_name()
        except ConfigurationError:
            preferred = ""
        executable = self._select(
            candidates,
            options.target,
            preferred=preferred,
            none_found=TargetNotFoundError(f"no executable found in {output_dir}"),
        )
        print(f"Running {executable.name}...")
        return self._exec([executable, *options.args])

    def bench(self, options: BenchOptions) -> int:
        if not options.target and not (self.project_root / "bench").is_dir():
            raise NoBenchmarksFoundError("no benchmarks found (bench/ directory missing)")

        name = self.get_project_name()
        profile = profile_for(options)
        build_dir = self.cache_root / "bench"
        env = self._prepare(build_dir, profile, options.toolchain, ["-DENABLE_BENCHMARKS=ON"])
        self._compile(
            build_dir,
            build_type(profile),
            env,
            target=options.target or f"{name}_bench",
            verbose=options.verbose,
        )

        executables = find_executables(build_dir, max_depth=4)
        candidates = executables if options.target else [
            p for p in executables if is_bench_executable(p)
        ]
        executable = self._select(
            candidates,
            options.target,
            preferred=f"{name}_bench",
            none_found=NoBenchmarksFoundError(f"no benchmark executables in {build_dir}"),
        )
        print(f"Running benchmark {executable.name}...")
        return self._exec([executable, *options.args])

    def clean(self, options: CleanOptions) -> List[Path]:
        removed = self._remove_output_root()
        if options.all:
            removed += self._remove(
                str(CACHE_DIR),
                ".cache/ci",
                ".bin/ci",
                "out",
                "cmake-build-debug",
                "cmake-build-release",
            )
            removed += self._remove_matching("build-*")
            return removed

        if self.cache_root.is_dir():
            try:
                entries = sorted(self.cache_root.iterdir())
            except OSError as e:
                logger.warning(f"Cannot list {self.cache_root}: {e}")
                entries = []
            for entry in entries:
                if entry.name != self.install_root.name:
                    removed += self._remove(str(entry.relative_to(self.project_root)))
        return removed

    def list_targets(self) -> List[str]:
        build_dir = self._latest_build_dir()
        if (build_dir / "build.ninja").exists():
            result = self._run(["ninja", "-C", str(build_dir), "-t", "targets", "all"], mode=CAPTURE)
            self._check(result, "ninja target listing", phase="query")
            return _parse_ninja_targets(result.output)

        result = self._run(["cmake", "--build", str(build_dir), "--target", "help"], mode=CAPTURE)
        self._check(result, "CMake target listing", phase="query")
        targets = []
        for line in result.output.splitlines():
            if not line.startswith("... "):
                continue
            target = line[4:].split(" ")[0]
            if target in _MAKE_HELP_IGNORED or target.endswith((".o", ".i", ".s")):
                continue
            targets.append(target)
        return targets

    def _latest_build_dir(self) -> Path:
        configured = [
            d
            for d in self.cache_root.glob("*")
            if (d / "CMakeCache.txt").exists()
        ] if self.cache_root.is_dir() else []
        if not configured:
            raise ConfigurationError("No configured CMake build tree", "run a build first")
        return max(configured, key=lambda d: (d / "CMakeCache.txt").stat().st_mtime)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def list_dependencies(self) -> List[Dependency]:
        return [Dependency(name=n, version=v) for n, v in self.manifest.dependencies()]

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
        added = self.manifest.add(name, version)
        logger.info(f"{'Added' if added else 'Updated'} {name} {version} in vcpkg.json")

        if not self.manifest.has_baseline():
            logger.warning(
                "vcpkg.json has no builtin-baseline; version constraints need one. "
                "Run: vcpkg x-update-baseline --add-initial-baseline"
            )

        usage = self.vcpkg.usage(name)
        if usage:
            print(usage.rstrip())
        return Dependency(name=name, version=version)

    def remove_dependency(self, name: str) -> None:
        self.manifest.remove(name)
        logger.info(f"Removed {name} from vcpkg.json")

    # ------------------------------------------------------------------
    # Project generation
    # ------------------------------------------------------------------

    def generate_build_src(self, project_path: Path, config: InitConfig) -> None:
        project_path = Path(project_path)
        self._write_new(project_path / "vcpkg.json", templates.vcpkg_manifest(config))
        self._write_new(project_path / "CMakeLists.txt", templates.cmake_lists(config))

    def generate_build_test(self, project_path: Path, config: InitConfig) -> None:
        if config.has_tests:
            path = Path(project_path) / "tests" / "CMakeLists.txt"
            self._write_new(path, templates.cmake_tests(config))

    def generate_build_bench(self, project_path: Path, config: InitConfig) -> None:
        if config.has_benchmarks:
            path = Path(project_path) / "bench" / "CMakeLists.txt"
            self._write_new(path, templates.cmake_bench(config))


def _parse_ninja_targets(output: str) -> List[str]:
    """Keep linked executables and libraries from ``ninja -t targets all``."""
    kinds = (
        ("_EXECUTABLE_LINKER", "executable"),
        ("_STATIC_LIBRARY_LINKER", "static_library"),
        ("_SHARED_LIBRARY_LINKER", "shared_library"),
    )
    targets = []
    for line in output.splitlines():
        match = _NINJA_TARGET_PATTERN.match(line.strip())
        if not match:
            continue
        target, rule = match.groups()
        for marker, kind in kinds:
            if marker in rule:
                targets.append(f"{target} ({kind})")
                break
    return targets


__all__ = ["CMakeBackend", "build_type"]
