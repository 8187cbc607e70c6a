"""
vcpkg package manager integration for cxxkit.

Three pieces:

    VcpkgPortRegistry: metadata lookups in a vcpkg checkout
        (ports/<name>/vcpkg.json and versions/<x>-/<name>.json)
    VcpkgManifest: structured edits of a project's vcpkg.json
    VcpkgIntegration: the vcpkg executable, its environment, manifest-mode
        installs and post-install usage notes

Example:
    from pathlib import Path
    from cxxkit.packages.vcpkg import VcpkgIntegration, VcpkgManifest

    vcpkg = VcpkgIntegration(Path('/path/to/project'), vcpkg_root=Path('/opt/vcpkg'))
    if vcpkg.detect():
        vcpkg.install_dependencies(Path('/path/to/project/.cache/native/vcpkg_installed'))
        print(VcpkgManifest(vcpkg.manifest_file).dependencies())
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from cxxkit.core.exceptions import (
    BuildFailure,
    ConfigurationError,
    DependencyNotFoundError,
    ManifestError,
)
from cxxkit.core.filesystem import IS_WINDOWS, atomic_write
from cxxkit.core.process import STREAM, ProcessRunner
from cxxkit.packages.registry import LocalRegistry, RegistryPackage

logger = logging.getLogger(__name__)

USAGE_URL = "https://raw.githubusercontent.com/microsoft/vcpkg/master/ports/{name}/usage"
USAGE_TIMEOUT = 10

SET_ROOT_COMMAND = "cxxkit config set-vcpkg-root <path>"

# Version fields of a port manifest, in lookup order.
_VERSION_KEYS = ("version", "version-semver", "version-date", "version-string")


def _port_version(data: Mapping[str, Any]) -> str:
    for key in _VERSION_KEYS:
        if data.get(key):
            return str(data[key])
    return ""


def _dependency_name(entry: Any) -> str:
    """Dependencies are either "name" or {"name": ..., ...}."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        return str(entry.get("name", ""))
    return ""


# =============================================================================
# Port Registry
# =============================================================================


class VcpkgPortRegistry(LocalRegistry):
    """Port metadata from a vcpkg checkout."""

    display_name = "vcpkg"
    configure_command = SET_ROOT_COMMAND

    def packages_dir(self) -> Path:
        return self.root / "ports"

    def load_package(self, name: str) -> RegistryPackage:
        with open(self.packages_dir() / name / "vcpkg.json", "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("port manifest is not an object")

        description = data.get("description", "")
        if isinstance(description, list):
            description = " ".join(str(line) for line in description)

        license_ = data.get("license") or ""
        return RegistryPackage(
            name=name,
            versions=self._versions(name, _port_version(data)),
            description=str(description),
            homepage=data.get("homepage", ""),
            license=str(license_),
            dependencies=[
                n for n in map(_dependency_name, data.get("dependencies", [])) if n
            ],
        )

    def _versions(self, name: str, current: str) -> List[str]:
        """
        Known versions, oldest first.

        The version database lists newest first; without it only the
        version of the checked-out port is known.
        """
        db_file = self.root / "versions" / f"{name[0]}-" / f"{name}.json"
        if db_file.is_file():
            try:
                with open(db_file, "r", encoding="utf-8") as f:
                    entries = json.load(f).get("versions", [])
                versions = [_port_version(e) for e in reversed(entries)]
                versions = [v for v in versions if v]
                if versions:
                    return versions
            except (OSError, ValueError, AttributeError) as e:
                logger.debug(f"Ignoring unreadable version database {db_file}: {e}")
        return [current] if current else []


# =============================================================================
# vcpkg.json
# =============================================================================


class VcpkgManifest:
    """
    A project's vcpkg.json.

    Dependencies are written as {"name": ..., "version>=": ...}; other keys
    and the order of existing entries are preserved.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ManifestError(
                f"{self.path.name} not found in {self.path.parent}",
                "run this command from a vcpkg project root",
            )
        except ValueError as e:
            raise ManifestError(
                f"Invalid JSON in {self.path}: {e}", f"fix the syntax of {self.path.name}"
            )
        if not isinstance(data, dict):
            raise ManifestError(
                f"Invalid manifest {self.path}: expected an object",
                f"fix the syntax of {self.path.name}",
            )
        return data

    def save(self, data: Dict[str, Any]) -> None:
        atomic_write(self.path, json.dumps(data, indent=2) + "\n")

    def has_baseline(self) -> bool:
        return bool(self.load().get("builtin-baseline"))

    def dependencies(self) -> List[Tuple[str, str]]:
        """(name, version) for every declared dependency, in manifest order."""
        data = self.load()
        overrides = {
            o.get("name"): _port_version(o)
            for o in data.get("overrides", [])
            if isinstance(o, dict)
        }
        result = []
        for entry in data.get("dependencies", []):
            name = _dependency_name(entry)
            if not name:
                continue
            version = ""
            if isinstance(entry, dict):
                version = str(entry.get("version>=", ""))
            result.append((name, version or overrides.get(name, "")))
        return result

    def add(self, name: str, version: str) -> bool:
        """
        Declare a dependency with a minimum version.

        Returns:
            True if a new entry was added, False if an existing one was updated
        """
        data = self.load()
        deps = data.setdefault("dependencies", [])
        for index, entry in enumerate(deps):
            if _dependency_name(entry) != name:
                continue
            updated = dict(entry) if isinstance(entry, dict) else {"name": name}
            if version:
                updated["version>="] = version
            deps[index] = updated
            self.save(data)
            return False

        entry: Dict[str, Any] = {"name": name}
        if version:
            entry["version>="] = version
        deps.append(entry)
        self.save(data)
        return True

    def remove(self, name: str) -> None:
        """
        Remove a dependency and any version override for it.

        Raises:
            DependencyNotFoundError: If the dependency is not declared
        """
        data = self.load()
        deps = data.get("dependencies", [])
        kept = [e for e in deps if _dependency_name(e) != name]
        if len(kept) == len(deps):
            raise DependencyNotFoundError(
                name, f"{name} is not declared in {self.path.name}"
            )
        data["dependencies"] = kept
        if "overrides" in data:
            data["overrides"] = [
                o for o in data["overrides"] if _dependency_name(o) != name
            ]
        self.save(data)


# =============================================================================
# vcpkg executable
# =============================================================================


class VcpkgIntegration:
    """
    vcpkg package manager integration.

    Attributes:
        project_root: Root directory of the project
        manifest_file: Path to vcpkg.json manifest
        vcpkg_root: Path to the vcpkg checkout, or None when not configured

    Example:
        vcpkg = VcpkgIntegration(Path('/project'), Path('/opt/vcpkg'))
        env = vcpkg.environment()
    """

    def __init__(
        self,
        project_root: Path,
        vcpkg_root: Optional[Path] = None,
        runner: Optional[ProcessRunner] = None,
    ):
        self.project_root = Path(project_root)
        self.manifest_file = self.project_root / "vcpkg.json"
        self.vcpkg_root = Path(vcpkg_root) if vcpkg_root else None
        self.runner = runner or ProcessRunner()

    def get_name(self) -> str:
        return "vcpkg"

    def detect(self) -> bool:
        """True if the project has a vcpkg.json manifest."""
        return self.manifest_file.exists()

    def require_root(self) -> Path:
        """
        Return the vcpkg root.

        Raises:
            ConfigurationError: If no vcpkg root is configured
        """
        if not self.vcpkg_root:
            raise ConfigurationError(
                "vcpkg_root not set in config",
                f"run '{SET_ROOT_COMMAND}' or set VCPKG_ROOT",
            )
        return self.vcpkg_root

    @property
    def executable(self) -> Path:
        return self.require_root() / ("vcpkg.exe" if IS_WINDOWS else "vcpkg")

    @property
    def toolchain_file(self) -> Path:
        return self.require_root() / "scripts" / "buildsystems" / "vcpkg.cmake"

    def environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Child-process environment for vcpkg and CMake.

        Starts from base (the current environment by default) and never
        modifies os.environ.
        """
        env = dict(os.environ if base is None else base)
        env["VCPKG_ROOT"] = str(self.require_root())
        env.setdefault("VCPKG_FEATURE_FLAGS", "manifests")
        env.setdefault("VCPKG_DISABLE_REGISTRY_UPDATE", "1")
        return env

    def install_dependencies(self, install_root: Path, triplet: str = "") -> None:
        """
        Install manifest dependencies into install_root.

        Raises:
            ConfigurationError: If vcpkg is not configured or missing
            BuildFailure: If vcpkg install fails
        """
        vcpkg_exe = self.executable
        if not vcpkg_exe.exists():
            raise ConfigurationError(
                f"vcpkg executable not found at {vcpkg_exe}",
                f"bootstrap vcpkg: {self.vcpkg_root}/bootstrap-vcpkg.sh",
            )

        cmd = [
            str(vcpkg_exe),
            "install",
            f"--x-manifest-root={self.project_root}",
            f"--x-install-root={install_root}",
        ]
        if triplet:
            cmd.append(f"--triplet={triplet}")

        logger.info("Installing vcpkg dependencies")
        result = self.runner.run(
            cmd, cwd=self.project_root, env=self.environment(), mode=STREAM
        )
        if not result.ok:
            raise BuildFailure(
                f"vcpkg install failed with exit code {result.returncode}\n"
                f"Command: {' '.join(cmd)}\n\n"
                f"Troubleshooting:\n"
                f"  1. Verify vcpkg.json syntax is correct\n"
                f"  2. Check network connection for downloads\n"
                f"  3. Ensure vcpkg is up to date: git pull (in vcpkg directory)",
                output=result.output,
                returncode=result.returncode,
                phase="dependencies",
            )

    def usage(self, name: str) -> Optional[str]:
        """
        Usage notes of a port (find_package / target_link_libraries lines).

        Read from the local port tree when present, else fetched from the
        upstream repository. Lookup failures return None.
        """
        if self.vcpkg_root:
            local = self.vcpkg_root / "ports" / name / "usage"
            if local.is_file():
                try:
                    return local.read_text(encoding="utf-8")
                except OSError as e:
                    logger.debug(f"Cannot read {local}: {e}")

        url = USAGE_URL.format(name=name)
        try:
            response = requests.get(url, timeout=USAGE_TIMEOUT)
        except requests.RequestException as e:
            logger.debug(f"Usage lookup for {name} failed: {e}")
            return None
        if response.status_code != 200:
            logger.debug(f"No usage notes for {name} (HTTP {response.status_code})")
            return None
        return response.text


__all__ = ["VcpkgPortRegistry", "VcpkgManifest", "VcpkgIntegration"]
