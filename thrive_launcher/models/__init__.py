"""
Data Models Layer.

This package contains the Pydantic models and event payloads that define the
core data structures used throughout the launcher: the version catalog, the
configuration, and the pipeline events.
"""

from .catalog import PlatformDownload, Version, VersionCatalog, parse_manifest
from .config import LauncherConfig
from .events import (
    DownloadProgress,
    FailureReason,
    OutputLine,
    PipelineState,
    ProcessExited,
    StateChanged,
    StreamTag,
    VerifyProgress,
)

__all__ = [
    "DownloadProgress",
    "FailureReason",
    "LauncherConfig",
    "OutputLine",
    "PipelineState",
    "PlatformDownload",
    "ProcessExited",
    "StateChanged",
    "StreamTag",
    "VerifyProgress",
    "Version",
    "VersionCatalog",
    "parse_manifest",
]
