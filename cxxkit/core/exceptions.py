"""
Centralized exception hierarchy for cxxkit.

Every error raised by the backend layer derives from CxxKitError so callers
can catch one type at the command boundary. Configuration problems always
carry a remediation hint; process failures carry the child's output verbatim.
"""

from typing import List, Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class CxxKitError(Exception):
    """Base exception for all cxxkit errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(CxxKitError):
    """Raised when a registry, toolchain or project is not set up."""

    def __init__(self, message: str, hint: str = ""):
        self.message = message
        self.hint = hint
        text = message
        if hint:
            text += f"\n  hint: {hint}"
        super().__init__(text)


class RegistryNotConfiguredError(ConfigurationError):
    """Raised when a local registry mirror root is not configured."""

    def __init__(self, registry: str, command: str):
        self.registry = registry
        super().__init__(f"{registry} not configured", f"run '{command}'")


class ToolNotFoundError(ConfigurationError):
    """Raised when an external executable is missing from PATH."""

    def __init__(self, tool: str, install_hint: str = ""):
        self.tool = tool
        super().__init__(
            f"{tool} not found in PATH",
            install_hint or f"install {tool} and make sure it is on PATH",
        )


class ProjectNotFoundError(ConfigurationError):
    """Raised when no supported project marker file is present."""

    pass


class ManifestError(ConfigurationError):
    """Raised when a dependency manifest cannot be read or parsed."""

    pass


# ============================================================================
# Process Failures
# ============================================================================


class BuildFailure(CxxKitError):
    """Raised when the build toolchain exits non-zero."""

    def __init__(
        self, message: str, output: str = "", returncode: int = 1, phase: str = "build"
    ):
        self.output = output
        self.returncode = returncode
        self.phase = phase
        super().__init__(message)


class TestFailure(CxxKitError):
    """Raised when the project's test suite fails."""

    __test__ = False

    def __init__(self, message: str, output: str = "", returncode: int = 1):
        self.output = output
        self.returncode = returncode
        super().__init__(message)


# ============================================================================
# Resolution Exceptions
# ============================================================================


class TargetNotFoundError(CxxKitError):
    """Raised when no single executable can be resolved for run."""

    def __init__(self, message: str, candidates: Optional[List[str]] = None):
        self.candidates = list(candidates or [])
        if self.candidates:
            message += "\n  candidates: " + ", ".join(self.candidates)
        super().__init__(message)


class NoBenchmarksFoundError(CxxKitError):
    """Raised when the project has no benchmark executables."""

    pass


class DependencyNotFoundError(CxxKitError):
    """Raised when a dependency is absent from the manifest or registry."""

    def __init__(self, name: str, message: str = ""):
        self.name = name
        super().__init__(message or f"dependency not found: {name}")


class NotSupportedError(CxxKitError):
    """Raised when an operation has no meaning for a backend."""

    def __init__(self, backend: str, operation: str, hint: str = ""):
        self.backend = backend
        self.operation = operation
        message = f"{operation} is not supported by the {backend} backend"
        if hint:
            message += f"\n  hint: {hint}"
        super().__init__(message)
