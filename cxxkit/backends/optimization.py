"""
Optimization and sanitizer selection shared by all backends.

Turns the (opt_level, release, sanitizer) triple of an options object into
an OptimizationProfile. The profile names the configuration (label shown to
the user, directory name under the canonical output root) and exposes the
compiler/linker flags; each backend maps it onto its own command line.

    opt_level   label          directory
    "0"         -O0 (debug)    O0
    "1".."3"    -O{n}          O{n}
    "s"         -Os (size)     Os
    "fast"      -Ofast         Ofast
    ""          release/debug  release/debug

An active sanitizer appends "+name" to the label and "-name" to the
directory. Unknown opt levels and sanitizer names are treated as unset.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

OPT_LEVELS = ("0", "1", "2", "3", "s", "fast")

_LABELS = {
    "0": "-O0 (debug)",
    "1": "-O1",
    "2": "-O2",
    "3": "-O3",
    "s": "-Os (size)",
    "fast": "-Ofast",
}


@dataclass(frozen=True)
class Sanitizer:
    """Compiler and linker flags for one sanitizer."""

    name: str
    compile_flags: Tuple[str, ...]
    link_flags: Tuple[str, ...]
    meson_name: str


SANITIZERS = {
    "asan": Sanitizer(
        "asan",
        ("-fsanitize=address", "-fno-omit-frame-pointer"),
        ("-fsanitize=address",),
        "address",
    ),
    "tsan": Sanitizer(
        "tsan", ("-fsanitize=thread",), ("-fsanitize=thread",), "thread"
    ),
    "msan": Sanitizer(
        "msan",
        ("-fsanitize=memory", "-fno-omit-frame-pointer"),
        ("-fsanitize=memory",),
        "memory",
    ),
    "ubsan": Sanitizer(
        "ubsan", ("-fsanitize=undefined",), ("-fsanitize=undefined",), "undefined"
    ),
}


@dataclass(frozen=True)
class OptimizationProfile:
    """
    A resolved build configuration.

    Attributes:
        opt_level: Validated optimization code, or "" to follow release
        release: Release flag, consulted only when opt_level is empty
        sanitizer: Active sanitizer, if any
    """

    opt_level: str = ""
    release: bool = False
    sanitizer: Optional[Sanitizer] = None

    @property
    def label(self) -> str:
        """Human readable configuration name, e.g. "-O2" or "release+asan"."""
        label = _LABELS.get(self.opt_level) or ("release" if self.release else "debug")
        if self.sanitizer:
            label += f"+{self.sanitizer.name}"
        return label

    @property
    def dir_name(self) -> str:
        """Directory name under the canonical output root, e.g. "O2"."""
        if self.opt_level:
            name = f"O{self.opt_level}"
        else:
            name = "release" if self.release else "debug"
        if self.sanitizer:
            name += f"-{self.sanitizer.name}"
        return name

    @property
    def is_debug(self) -> bool:
        if self.opt_level:
            return self.opt_level == "0"
        return not self.release

    @property
    def optimization_flag(self) -> str:
        return f"-O{self.opt_level}" if self.opt_level else ""

    @property
    def compile_flags(self) -> Tuple[str, ...]:
        flags = (self.optimization_flag,) if self.opt_level else ()
        if self.sanitizer:
            flags += self.sanitizer.compile_flags
        return flags

    @property
    def link_flags(self) -> Tuple[str, ...]:
        return self.sanitizer.link_flags if self.sanitizer else ()


def resolve_profile(
    release: bool = False, opt_level: str = "", sanitizer: str = ""
) -> OptimizationProfile:
    """
    Resolve raw option values into a profile.

    Args:
        release: Release flag
        opt_level: Optimization code; wins over release when valid
        sanitizer: Sanitizer name

    Returns:
        OptimizationProfile

    Example:
        >>> resolve_profile(release=True, sanitizer="asan").dir_name
        'release-asan'
    """
    if opt_level and opt_level not in OPT_LEVELS:
        logger.debug(f"Ignoring unknown optimization level: {opt_level!r}")
        opt_level = ""
    if sanitizer and sanitizer not in SANITIZERS:
        logger.debug(f"Ignoring unknown sanitizer: {sanitizer!r}")
    return OptimizationProfile(
        opt_level=opt_level, release=release, sanitizer=SANITIZERS.get(sanitizer)
    )


def profile_for(options) -> OptimizationProfile:
    """Resolve the profile of any options object with build fields."""
    return resolve_profile(options.release, options.opt_level, options.sanitizer)


__all__ = [
    "OPT_LEVELS",
    "SANITIZERS",
    "Sanitizer",
    "OptimizationProfile",
    "resolve_profile",
    "profile_for",
]
