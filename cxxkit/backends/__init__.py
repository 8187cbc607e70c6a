"""
Build backends for cxxkit.

A backend is chosen either explicitly by name or from the project's marker
file, checked in this order:

    vcpkg.json   -> CMakeBackend ("vcpkg", alias "cmake")
    MODULE.bazel -> BazelBackend ("bazel")
    meson.build  -> MesonBackend ("meson")

Registry locations come from the global configuration and are handed to
the backend constructor.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Type

from cxxkit.backends.base import BuildBackend
from cxxkit.backends.bazel import BazelBackend
from cxxkit.backends.cmake import CMakeBackend
from cxxkit.backends.meson import MesonBackend
from cxxkit.core.config import GlobalConfig, load_global_config
from cxxkit.core.exceptions import ConfigurationError, ProjectNotFoundError
from cxxkit.core.process import ProcessRunner
from cxxkit.packages.bcr import BazelCentralRegistry
from cxxkit.packages.vcpkg import VcpkgPortRegistry

logger = logging.getLogger(__name__)

BACKENDS: Dict[str, Type[BuildBackend]] = {
    "vcpkg": CMakeBackend,
    "bazel": BazelBackend,
    "meson": MesonBackend,
}

ALIASES = {"cmake": "vcpkg"}


def detect_backend_name(project_root: Path) -> Optional[str]:
    """Name of the backend whose marker file exists, or None."""
    for name, backend_class in BACKENDS.items():
        if backend_class.detect(project_root):
            return name
    return None


def create_backend(
    name: str,
    project_root: Path,
    runner: Optional[ProcessRunner] = None,
    config: Optional[GlobalConfig] = None,
) -> BuildBackend:
    """
    Create a backend by name.

    Args:
        name: "vcpkg" (or "cmake"), "bazel" or "meson"
        project_root: Project root directory
        runner: Process runner to use (a real one by default)
        config: Global configuration (loaded from disk by default)

    Raises:
        ConfigurationError: If the name is unknown
    """
    key = ALIASES.get(name.lower(), name.lower())
    if key not in BACKENDS:
        raise ConfigurationError(
            f"Unknown build backend: {name}",
            f"choose one of: {', '.join(BACKENDS)}",
        )

    config = config if config is not None else load_global_config()
    logger.debug(f"Using {key} backend for {project_root}")

    if key == "vcpkg":
        vcpkg_root = config.resolve_vcpkg_root()
        return CMakeBackend(
            project_root,
            runner,
            vcpkg_root=vcpkg_root,
            registry=VcpkgPortRegistry(vcpkg_root),
        )
    if key == "bazel":
        return BazelBackend(
            project_root, runner, registry=BazelCentralRegistry(config.resolve_bcr_root())
        )
    return MesonBackend(project_root, runner)


def detect_backend(
    project_root: Path,
    runner: Optional[ProcessRunner] = None,
    config: Optional[GlobalConfig] = None,
) -> BuildBackend:
    """
    Create the backend matching the project's marker file.

    Raises:
        ProjectNotFoundError: If no marker file is present
    """
    name = detect_backend_name(project_root)
    if name is None:
        markers = ", ".join(b.marker_file for b in BACKENDS.values())
        raise ProjectNotFoundError(
            f"No supported project found in {project_root}",
            f"expected one of: {markers}",
        )
    return create_backend(name, project_root, runner, config)


__all__ = [
    "BuildBackend",
    "CMakeBackend",
    "BazelBackend",
    "MesonBackend",
    "BACKENDS",
    "create_backend",
    "detect_backend",
    "detect_backend_name",
]
