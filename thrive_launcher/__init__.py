"""
thrive-launcher: discovers, downloads, verifies, installs and launches game releases.
"""

__version__ = "0.4.0"
