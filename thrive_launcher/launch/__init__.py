"""
Process Layer.

This package starts the installed game and relays its console output.
"""

from .session import LaunchSession, OutputLog

__all__ = ["LaunchSession", "OutputLog"]
