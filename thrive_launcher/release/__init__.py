"""
Release Acquisition Layer.

This package is responsible for fetching release archives, checking their
content hash, and finding the executable inside an unpacked release.
"""

from .downloader import CancelToken, Downloader
from .integrity import IntegrityVerifier
from .locator import ExecutableLocator

__all__ = ["CancelToken", "Downloader", "ExecutableLocator", "IntegrityVerifier"]
