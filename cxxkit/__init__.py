"""
cxxkit: one set of build verbs for CMake+vcpkg, Bazel and Meson C++ projects.
"""

__version__ = "0.1.0"
