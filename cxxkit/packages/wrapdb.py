"""
Meson WrapDB subprojects.

A Meson project declares each dependency as ``subprojects/<name>.wrap``.
Wraps from WrapDB are ``[wrap-file]`` sections recording the packaged
version in ``wrapdb_version`` (``<upstream>-<revision>``); the sources are
extracted next to the wrap file on first configure, and the downloaded
archives are kept in ``subprojects/packagecache``.
"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from cxxkit.core.exceptions import DependencyNotFoundError, ManifestError
from cxxkit.core.filesystem import FilesystemError, safe_rmtree

logger = logging.getLogger(__name__)

WRAPDB_URL = "https://wrapdb.mesonbuild.com"


def _is_plain_name(value: str) -> bool:
    """One path component inside subprojects/."""
    return bool(value) and value not in (".", "..") and "/" not in value and "\\" not in value


@dataclass
class WrapFile:
    """Parsed contents of one .wrap file."""

    name: str
    path: Path
    kind: str = ""
    version: str = ""
    directory: str = ""

    @property
    def downloaded(self) -> bool:
        """Sources come from an archive rather than a checked-in tree."""
        return self.kind == "wrap-file"


def read_wrap(path: Path) -> WrapFile:
    """
    Parse a wrap file; unreadable files yield a WrapFile without details.
    """
    path = Path(path)
    wrap = WrapFile(name=path.stem, path=path, directory=path.stem)
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError) as e:
        logger.debug(f"Cannot parse {path}: {e}")
        return wrap

    for section in parser.sections():
        if not section.startswith("wrap-"):
            continue
        wrap.kind = section
        values = parser[section]
        wrap.version = values.get("wrapdb_version", "") or values.get("revision", "")
        directory = values.get("directory", "").strip()
        if _is_plain_name(directory):
            wrap.directory = directory
        elif directory:
            logger.warning(f"Ignoring directory '{directory}' in {path}: not a plain name")
        break
    return wrap


class WrapDirectory:
    """The subprojects/ directory of a Meson project."""

    def __init__(self, subprojects_dir: Path):
        self.path = Path(subprojects_dir)

    @property
    def packagecache(self) -> Path:
        return self.path / "packagecache"

    def wraps(self) -> List[WrapFile]:
        if not self.path.is_dir():
            return []
        return [read_wrap(p) for p in sorted(self.path.glob("*.wrap"))]

    def get(self, name: str) -> Optional[WrapFile]:
        if not _is_plain_name(name):
            return None
        path = self.path / f"{name}.wrap"
        return read_wrap(path) if path.is_file() else None

    def remove(self, name: str) -> None:
        """
        Delete a wrap file and its extracted sources.

        Raises:
            DependencyNotFoundError: If no wrap with that name exists
            ManifestError: If the extracted sources cannot be deleted
        """
        wrap = self.get(name)
        if wrap is None:
            raise DependencyNotFoundError(
                name, f"{name} is not installed (no subprojects/{name}.wrap)"
            )
        wrap.path.unlink()
        extracted = self.path / wrap.directory
        if extracted.is_dir():
            try:
                safe_rmtree(extracted, require_prefix=self.path)
            except (FilesystemError, ValueError) as e:
                raise ManifestError(
                    f"Removed {wrap.path.name} but not its sources: {e}",
                    f"delete {extracted} by hand",
                ) from e
        logger.info(f"Removed wrap {name}")

    def extracted_dirs(self) -> List[Path]:
        """Source trees unpacked from downloaded wraps."""
        return [
            self.path / w.directory
            for w in self.wraps()
            if w.downloaded and (self.path / w.directory).is_dir()
        ]


__all__ = ["WRAPDB_URL", "WrapFile", "WrapDirectory", "read_wrap"]
