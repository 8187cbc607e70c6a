"""
Artifact normalization.

Every backend leaves its outputs somewhere different: CMake in a hidden
cache tree, Bazel behind read-only symlinked sandboxes, Meson in builddir.
After a successful build the ArtifactNormalizer replaces the contents of
the canonical output directory

    <project>/.bin/native/<configuration>/

with copies of the final executables and libraries. Copy failures are
logged and skipped; the backend's own tree stays authoritative.
"""

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from cxxkit.backends.optimization import OptimizationProfile
from cxxkit.core.exceptions import ToolNotFoundError
from cxxkit.core.filesystem import (
    IS_WINDOWS,
    FilesystemError,
    make_writable,
    safe_rmtree,
)
from cxxkit.core.process import CAPTURE, ProcessRunner

logger = logging.getLogger(__name__)

BIN_DIR = ".bin"
PLATFORM_DIR = "native"

LIBRARY_SUFFIXES = (".a", ".so", ".dylib", ".lib", ".dll")

INTERMEDIATE_SUFFIXES = (
    ".o",
    ".obj",
    ".d",
    ".params",
    ".sh",
    ".cppmap",
    ".repo_mapping",
    ".cmake",
    ".ninja",
    ".make",
    ".txt",
    ".json",
    ".log",
    ".pdb",
    ".ilk",
    ".exp",
    ".manifest",
)

# Build-system bookkeeping directories that never hold final artifacts.
SKIP_DIRS = (
    "CMakeFiles",
    "_deps",
    "vcpkg_installed",
    "Testing",
    "_objs",
    "external",
    "meson-info",
    "meson-logs",
    "meson-private",
)


# ============================================================================
# Classification
# ============================================================================


def canonical_output_dir(project_root: Path, profile: OptimizationProfile) -> Path:
    """Canonical artifact directory for a configuration."""
    return Path(project_root) / BIN_DIR / PLATFORM_DIR / profile.dir_name


def is_library(path: Path) -> bool:
    name = path.name
    return path.suffix in LIBRARY_SUFFIXES or ".so." in name


def is_intermediate(path: Path) -> bool:
    return path.suffix in INTERMEDIATE_SUFFIXES or "runfiles" in path.name


def is_test_executable(path: Path) -> bool:
    return "_test" in path.name


def is_bench_executable(path: Path) -> bool:
    return "_bench" in path.name


def is_executable(path: Path) -> bool:
    """True for a final executable program (not a library or build byproduct)."""
    if not path.is_file() or is_library(path) or is_intermediate(path):
        return False
    if IS_WINDOWS:
        return path.suffix.lower() == ".exe"
    return os.access(path, os.X_OK)


def runnable(paths: Iterable[Path]) -> List[Path]:
    """Filter out tests, benchmarks and libraries."""
    return [
        p
        for p in paths
        if not is_test_executable(p) and not is_bench_executable(p) and not is_library(p)
    ]


def _skip_dir(name: str) -> bool:
    return (
        name in SKIP_DIRS
        or name.startswith(".")
        or name.endswith(".p")
        or "runfiles" in name
    )


def _walk_files(root: Path, max_depth: int) -> Iterator[Path]:
    """Yield files under root down to max_depth levels (1 = root only)."""
    root = Path(root)
    if not root.is_dir():
        return
    base_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        depth = len(Path(dirpath).parts) - base_depth + 1
        if depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames[:] = sorted(d for d in dirnames if not _skip_dir(d))
        for filename in sorted(filenames):
            yield Path(dirpath) / filename


def find_executables(root: Path, max_depth: int = 1) -> List[Path]:
    """
    Find final executables under a build tree.

    Args:
        root: Directory to scan (missing directories yield nothing)
        max_depth: How many directory levels to descend (1 = root only)

    Returns:
        Sorted list of executable paths
    """
    return sorted(p for p in _walk_files(root, max_depth) if is_executable(p))


def find_libraries(root: Path, max_depth: int = 1) -> List[Path]:
    return sorted(
        p for p in _walk_files(root, max_depth) if p.is_file() and is_library(p)
    )


# ============================================================================
# Normalizer
# ============================================================================


class ArtifactNormalizer:
    """
    Populates the canonical output directory of one configuration.

    Example:
        normalizer = ArtifactNormalizer(canonical_output_dir(root, profile))
        normalizer.reset()
        normalizer.collect(root / "builddir", max_depth=2)
    """

    def __init__(self, output_dir: Path, runner: Optional[ProcessRunner] = None):
        self.output_dir = Path(output_dir)
        self.runner = runner or ProcessRunner()
        self.copied: List[Path] = []

    def reset(self) -> None:
        """Delete and recreate the output directory."""
        try:
            safe_rmtree(self.output_dir)
        except FilesystemError as e:
            logger.warning(f"Could not clear {self.output_dir}: {e}")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.copied = []

    def collect(
        self,
        root: Path,
        max_depth: int = 1,
        executables: bool = True,
        libraries: bool = True,
    ) -> List[Path]:
        """Copy executables and/or libraries found under root."""
        found: List[Path] = []
        if executables:
            found.extend(find_executables(root, max_depth))
        if libraries:
            found.extend(find_libraries(root, max_depth))
        return self.copy(found)

    def copy(self, paths: Iterable[Path]) -> List[Path]:
        """Copy the given files; failures are logged and skipped."""
        copied = []
        for src in paths:
            dest = self.output_dir / src.name
            if dest in self.copied or dest in copied:
                logger.debug(f"Skipping duplicate artifact name: {src}")
                continue
            try:
                shutil.copy2(src, dest)
                make_writable(dest)
            except OSError as e:
                logger.warning(f"Failed to copy {src} to {self.output_dir}: {e}")
                continue
            if sys.platform == "darwin" and not is_library(dest):
                self._codesign(dest)
            copied.append(dest)

        self.copied.extend(copied)
        logger.info(f"Copied {len(copied)} artifact(s) to {self.output_dir}")
        return copied

    def _codesign(self, path: Path) -> None:
        """Ad-hoc re-sign a copied macOS binary so it still launches."""
        try:
            result = self.runner.run(
                ["codesign", "-s", "-", "--force", str(path)], mode=CAPTURE
            )
        except ToolNotFoundError:
            logger.debug("codesign not available, skipping re-signing")
            return
        if not result.ok:
            logger.warning(f"Failed to re-sign {path}: {result.stderr.strip()}")


__all__ = [
    "BIN_DIR",
    "PLATFORM_DIR",
    "ArtifactNormalizer",
    "canonical_output_dir",
    "find_executables",
    "find_libraries",
    "is_executable",
    "is_library",
    "is_test_executable",
    "is_bench_executable",
    "runnable",
]
