"""
Bazel Central Registry support.

BazelCentralRegistry reads a local clone of the registry:

    <root>/modules/<name>/metadata.json         homepage, maintainers, versions
    <root>/modules/<name>/<version>/MODULE.bazel dependencies of that version

ModuleFile edits ``bazel_dep`` declarations in a project's MODULE.bazel.
Only the targeted declaration is touched; the rest of the file is kept
byte for byte.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

from cxxkit.core.exceptions import DependencyNotFoundError, ManifestError
from cxxkit.core.filesystem import atomic_write
from cxxkit.packages.registry import LocalRegistry, RegistryPackage

logger = logging.getLogger(__name__)

_DEP_PATTERN = re.compile(
    r'bazel_dep\s*\(\s*name\s*=\s*"([^"]+)"\s*,\s*version\s*=\s*"([^"]*)"[^)]*\)'
)
_DEP_NAME_PATTERN = re.compile(r'bazel_dep\s*\(\s*name\s*=\s*"([^"]+)"([^)]*)\)')
_MODULE_NAME_PATTERN = re.compile(r'module\s*\(\s*name\s*=\s*"([^"]+)"')


# =============================================================================
# Registry
# =============================================================================


class BazelCentralRegistry(LocalRegistry):
    """
    Local mirror of the Bazel Central Registry.

    Example:
        bcr = BazelCentralRegistry(Path("~/src/bazel-central-registry").expanduser())
        bcr.latest_version("fmt")  # e.g. "11.0.2"
    """

    display_name = "Bazel Central Registry"
    configure_command = "cxxkit config set-bcr-root <path>"

    def packages_dir(self) -> Path:
        return self.root / "modules"

    def load_package(self, name: str) -> RegistryPackage:
        module_dir = self.packages_dir() / name
        with open(module_dir / "metadata.json", "r", encoding="utf-8") as f:
            metadata = json.load(f)
        if not isinstance(metadata, dict):
            raise ValueError("metadata.json is not an object")

        versions = [str(v) for v in metadata.get("versions") or []]
        homepage = metadata.get("homepage") or ""
        package = RegistryPackage(
            name=name,
            versions=versions,
            description=homepage,
            homepage=homepage,
        )
        if package.latest_version:
            package.dependencies = self._module_dependencies(
                module_dir / package.latest_version / "MODULE.bazel"
            )
        return package

    def _module_dependencies(self, module_file: Path) -> List[str]:
        """Non-dev bazel_dep names declared by one published version."""
        if not module_file.is_file():
            return []
        try:
            content = module_file.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug(f"Cannot read {module_file}: {e}")
            return []
        return [
            name
            for name, rest in _DEP_NAME_PATTERN.findall(content)
            if "dev_dependency = True" not in rest
        ]


# =============================================================================
# MODULE.bazel
# =============================================================================


class ModuleFile:
    """bazel_dep declarations of a project's MODULE.bazel."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ManifestError(
                f"{self.path.name} not found in {self.path.parent}",
                "run this command from a Bazel project root",
            )

    def module_name(self) -> Optional[str]:
        match = _MODULE_NAME_PATTERN.search(self._read())
        return match.group(1) if match else None

    def dependencies(self) -> List[Tuple[str, str]]:
        """(name, version) of every versioned bazel_dep, in file order."""
        return _DEP_PATTERN.findall(self._read())

    def has(self, name: str) -> bool:
        return _dep_regex(name).search(self._read()) is not None

    def add(self, name: str, version: str) -> bool:
        """
        Declare a dependency, or update the version of an existing one.

        Returns:
            True if a new declaration was appended, False if updated
        """
        content = self._read()
        pattern = re.compile(
            r'(bazel_dep\s*\(\s*name\s*=\s*"'
            + re.escape(name)
            + r'"\s*,\s*version\s*=\s*")[^"]*(")'
        )
        if _dep_regex(name).search(content):
            if pattern.search(content):
                content = pattern.sub(
                    lambda m: m.group(1) + version + m.group(2), content, count=1
                )
            else:
                logger.warning(
                    f"{name} is declared without a version in {self.path.name}; left unchanged"
                )
            atomic_write(self.path, content)
            return False

        if content and not content.endswith("\n"):
            content += "\n"
        content += f'bazel_dep(name = "{name}", version = "{version}")\n'
        atomic_write(self.path, content)
        return True

    def remove(self, name: str) -> None:
        """
        Remove a dependency declaration.

        Raises:
            DependencyNotFoundError: If the dependency is not declared
        """
        content = self._read()
        pattern = re.compile(
            r'\n?[ \t]*bazel_dep\s*\(\s*name\s*=\s*"' + re.escape(name) + r'"[^)]*\)[ \t]*'
        )
        if not pattern.search(content):
            raise DependencyNotFoundError(
                name, f"{name} is not declared in {self.path.name}"
            )
        atomic_write(self.path, pattern.sub("", content, count=1))


def _dep_regex(name: str):
    return re.compile(r'bazel_dep\s*\(\s*name\s*=\s*"' + re.escape(name) + r'"')


__all__ = ["BazelCentralRegistry", "ModuleFile"]
