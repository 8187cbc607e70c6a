"""
File system utilities for cxxkit.

Safe deletion of generated trees, atomic manifest writes and small path
helpers shared by the backends and package registries.
"""

import logging
import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = os.name == "nt"


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Args:
        path: Path to check
        parent: Parent directory

    Returns:
        True if path is under parent directory

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create a directory (and parents) if needed and return it."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def make_writable(path: Union[str, Path]) -> None:
    """Add the user write bit to a file copied out of a read-only tree."""
    path = Path(path)
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IWUSR)


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged, so a
    manifest is never left half written.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Example:
        >>> atomic_write('vcpkg.json', '{"name": "demo"}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding, newline="") as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree, a file or a symlink.

    Symlinks are unlinked, never followed. Read-only entries (Bazel output
    trees) are made writable before removal.

    Args:
        path: Entry to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not strictly under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/project/.bin/native', require_prefix='/project')
        >>> safe_rmtree('/usr/bin', require_prefix='/home')  # ValueError
    """
    path = Path(os.path.normpath(os.path.abspath(path)))

    if require_prefix is not None:
        prefix = Path(require_prefix).resolve()
        target = path.parent.resolve() / path.name
        if target == prefix or not is_relative_to(target, prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{prefix}'"
            )

    if not path.exists() and not path.is_symlink():
        return  # Already gone, nothing to do

    def handle_remove_readonly(func, failed_path, _exc):
        """Retry a failed removal after granting write access."""
        parent = os.path.dirname(failed_path)
        os.chmod(parent, os.stat(parent).st_mode | stat.S_IWUSR | stat.S_IXUSR)
        os.chmod(failed_path, stat.S_IWUSR | stat.S_IRUSR | stat.S_IXUSR)
        func(failed_path)

    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=handle_remove_readonly)
            else:
                shutil.rmtree(path, onerror=handle_remove_readonly)
    except OSError as e:
        raise FilesystemError(f"Failed to remove '{path}': {e}") from e


def remove_path(path: Union[str, Path], root: Union[str, Path]) -> bool:
    """
    Remove a generated entry, downgrading any failure to a warning.

    Args:
        path: Entry to remove
        root: Project root the entry must live under

    Returns:
        True if something was removed
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return False
    try:
        safe_rmtree(path, require_prefix=root)
    except (FilesystemError, ValueError) as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False
    logger.info(f"Removed {path}")
    return True


__all__ = [
    "IS_WINDOWS",
    "FilesystemError",
    "is_relative_to",
    "ensure_directory",
    "make_writable",
    "atomic_write",
    "safe_rmtree",
    "remove_path",
]
