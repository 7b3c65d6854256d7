"""
Manifest Layer.

This package retrieves the version manifest the launcher chooses releases from.
"""

from .manifest_client import ManifestClient

__all__ = ["ManifestClient"]
