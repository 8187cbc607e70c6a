"""
Core functionality for cxxkit.

This package contains the foundational modules that the backends and
package registries depend on.
"""

from .exceptions import (
    CxxKitError,
    ConfigurationError,
    RegistryNotConfiguredError,
    ToolNotFoundError,
    ProjectNotFoundError,
    ManifestError,
    BuildFailure,
    TestFailure,
    TargetNotFoundError,
    NoBenchmarksFoundError,
    DependencyNotFoundError,
    NotSupportedError,
)

from .process import (
    ProcessResult,
    ProcessRunner,
)

from .config import (
    GlobalConfig,
    load_global_config,
    save_global_config,
)

__all__ = [
    # Exceptions
    "CxxKitError",
    "ConfigurationError",
    "RegistryNotConfiguredError",
    "ToolNotFoundError",
    "ProjectNotFoundError",
    "ManifestError",
    "BuildFailure",
    "TestFailure",
    "TargetNotFoundError",
    "NoBenchmarksFoundError",
    "DependencyNotFoundError",
    "NotSupportedError",
    # Processes
    "ProcessResult",
    "ProcessRunner",
    # Configuration
    "GlobalConfig",
    "load_global_config",
    "save_global_config",
]
