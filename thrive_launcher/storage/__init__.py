"""
Storage Layer.

This package handles all data persistence: configuration files, the install
cache of unpacked releases, and the cached version manifest.
"""

from .config_manager import ConfigManager
from .install_cache import InstallCache, InstalledRelease
from .manifest_cache import ManifestCache

__all__ = ["ConfigManager", "InstallCache", "InstalledRelease", "ManifestCache"]
