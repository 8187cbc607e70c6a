"""
Dependency manifests and local registry mirrors for cxxkit.
"""

from cxxkit.packages.registry import LocalRegistry, RegistryPackage
from cxxkit.packages.bcr import BazelCentralRegistry, ModuleFile
from cxxkit.packages.vcpkg import VcpkgIntegration, VcpkgManifest, VcpkgPortRegistry
from cxxkit.packages.wrapdb import WrapDirectory, WrapFile

__all__ = [
    "LocalRegistry",
    "RegistryPackage",
    "BazelCentralRegistry",
    "ModuleFile",
    "VcpkgIntegration",
    "VcpkgManifest",
    "VcpkgPortRegistry",
    "WrapDirectory",
    "WrapFile",
]
