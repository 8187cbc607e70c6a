"""
Local package registry mirrors.

Two backends resolve dependency metadata from a local checkout of their
upstream registry instead of the network: a directory per package holding
a metadata file. This module provides the shared lookup logic:

- listing enumerates package directories (dot-directories skipped)
- search is a case-insensitive substring match on names; metadata is
  loaded lazily and unparsable entries are skipped
- the latest version is the last entry of the ordered version list

Classes:
    RegistryPackage: Metadata for one registry entry
    LocalRegistry: Abstract base class for registry mirrors
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from cxxkit.core.exceptions import (
    ConfigurationError,
    DependencyNotFoundError,
    ManifestError,
    RegistryNotConfiguredError,
)

logger = logging.getLogger(__name__)


def _is_package_name(name: str) -> bool:
    """A single directory name under the registry, never a path."""
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name


@dataclass
class RegistryPackage:
    """
    Metadata for one registry entry.

    Attributes:
        name: Package name
        versions: Known versions, oldest first
        description: Short description
        homepage: Project homepage
        license: SPDX license expression, if the registry records one
        dependencies: Names of direct dependencies of the latest version
    """

    name: str
    versions: List[str] = field(default_factory=list)
    description: str = ""
    homepage: str = ""
    license: str = ""
    dependencies: List[str] = field(default_factory=list)

    @property
    def latest_version(self) -> Optional[str]:
        return self.versions[-1] if self.versions else None


class LocalRegistry(ABC):
    """
    Abstract base class for a registry mirror rooted at a local directory.

    Subclasses define where package directories live and how one entry's
    metadata is parsed.

    Attributes:
        root: Registry checkout, or None when not configured
    """

    display_name = "registry"
    configure_command = ""

    def __init__(self, root: Optional[Path]):
        self.root = Path(root) if root else None

    @property
    def configured(self) -> bool:
        return self.root is not None and self.root.is_dir()

    def ensure_configured(self) -> Path:
        """
        Return the registry root.

        Raises:
            RegistryNotConfiguredError: If no root was configured
            ConfigurationError: If the configured root does not exist
        """
        if self.root is None:
            raise RegistryNotConfiguredError(self.display_name, self.configure_command)
        if not self.root.is_dir():
            raise ConfigurationError(
                f"{self.display_name} not found at {self.root}",
                f"run '{self.configure_command}'",
            )
        return self.root

    @abstractmethod
    def packages_dir(self) -> Path:
        """Directory holding one subdirectory per package."""
        pass

    @abstractmethod
    def load_package(self, name: str) -> RegistryPackage:
        """
        Parse the metadata of one package.

        Raises:
            OSError: If the metadata file cannot be read
            ValueError: If the metadata cannot be parsed
        """
        pass

    def list_names(self) -> List[str]:
        self.ensure_configured()
        directory = self.packages_dir()
        if not directory.is_dir():
            return []
        return sorted(
            entry.name
            for entry in directory.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def search(self, query: str) -> List[RegistryPackage]:
        """Packages whose name contains query, ignoring case."""
        needle = query.lower()
        results = []
        for name in self.list_names():
            if needle not in name.lower():
                continue
            try:
                results.append(self.load_package(name))
            except (OSError, ValueError) as e:
                logger.debug(f"Skipping {name}: unreadable metadata ({e})")
        return results

    def get(self, name: str) -> RegistryPackage:
        """
        Load one package.

        Raises:
            DependencyNotFoundError: If the registry has no such package
            ManifestError: If its metadata is corrupt
        """
        self.ensure_configured()
        if not _is_package_name(name) or not (self.packages_dir() / name).is_dir():
            raise DependencyNotFoundError(
                name, f"{name} not found in {self.display_name}"
            )
        try:
            return self.load_package(name)
        except (OSError, ValueError) as e:
            raise ManifestError(
                f"Failed to read {self.display_name} metadata for {name}: {e}",
                f"update your {self.display_name} checkout",
            )

    def latest_version(self, name: str) -> str:
        """
        Latest known version of a package.

        Raises:
            DependencyNotFoundError: If the package is unknown or has no versions
        """
        package = self.get(name)
        if not package.latest_version:
            raise DependencyNotFoundError(
                name, f"no versions of {name} found in {self.display_name}"
            )
        return package.latest_version


__all__ = ["RegistryPackage", "LocalRegistry"]
