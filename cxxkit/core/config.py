"""
Global cxxkit configuration.

The configuration file lives in the user's config directory and only
records where local registry mirrors are installed:

    vcpkg_root: /opt/vcpkg
    bcr_root: /home/me/src/bazel-central-registry

Empty keys fall back to the VCPKG_ROOT and CXXKIT_BCR_ROOT environment
variables. The loaded object is passed into backends explicitly; nothing
in this module keeps process-wide state.
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from cxxkit.core.exceptions import ConfigurationError
from cxxkit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"
VCPKG_ROOT_ENV = "VCPKG_ROOT"
BCR_ROOT_ENV = "CXXKIT_BCR_ROOT"


# ============================================================================
# Paths
# ============================================================================


def get_config_dir() -> Path:
    """
    Get the platform-specific configuration directory.

    Returns:
        Path: %APPDATA%\\cxxkit on Windows, ~/.config/cxxkit elsewhere
    """
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "cxxkit"
    return Path.home() / ".config" / "cxxkit"


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILE_NAME


# ============================================================================
# Loading
# ============================================================================


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        FileNotFoundError: If required=True and file doesn't exist
        ConfigurationError: If YAML parsing fails or the top level is not a mapping
    """
    if not config_file.exists():
        if required:
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ConfigurationError(
            f"Invalid YAML in {config_file}: {e}",
            f"fix or delete {config_file}",
        )

    config = config or {}
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Invalid configuration in {config_file}: expected a mapping",
            f"fix or delete {config_file}",
        )
    return config


@dataclass
class GlobalConfig:
    """
    User-level settings shared by every project.

    Attributes:
        vcpkg_root: vcpkg checkout (port tree and executable)
        bcr_root: Local clone of the Bazel Central Registry
    """

    vcpkg_root: str = ""
    bcr_root: str = ""

    def resolve_vcpkg_root(
        self, environ: Optional[Mapping[str, str]] = None
    ) -> Optional[Path]:
        """Configured vcpkg root, else $VCPKG_ROOT, else None."""
        environ = os.environ if environ is None else environ
        value = self.vcpkg_root or environ.get(VCPKG_ROOT_ENV, "")
        return Path(value).expanduser() if value else None

    def resolve_bcr_root(
        self, environ: Optional[Mapping[str, str]] = None
    ) -> Optional[Path]:
        """Configured registry root, else $CXXKIT_BCR_ROOT, else None."""
        environ = os.environ if environ is None else environ
        value = self.bcr_root or environ.get(BCR_ROOT_ENV, "")
        return Path(value).expanduser() if value else None


def load_global_config(path: Optional[Path] = None) -> GlobalConfig:
    """
    Read the global configuration file.

    Unknown keys are ignored so newer files keep working with older code.

    Args:
        path: Override for the configuration file location

    Returns:
        GlobalConfig with defaults for missing keys
    """
    data = load_yaml_config(path or get_config_path())
    return GlobalConfig(
        vcpkg_root=str(data.get("vcpkg_root") or ""),
        bcr_root=str(data.get("bcr_root") or ""),
    )


def save_global_config(config: GlobalConfig, path: Optional[Path] = None) -> Path:
    """Write the configuration file and return its path."""
    path = path or get_config_path()
    content = yaml.safe_dump(asdict(config), default_flow_style=False, sort_keys=True)
    atomic_write(path, content)
    logger.info(f"Saved configuration to {path}")
    return path


__all__ = [
    "GlobalConfig",
    "get_config_dir",
    "get_config_path",
    "load_yaml_config",
    "load_global_config",
    "save_global_config",
]
