"""
Typed events the launch pipeline publishes to its observers.

Each background step reports through one of these payloads instead of ad-hoc
callback signatures, so a front-end only needs a single subscriber.
"""

import time
from dataclasses import dataclass, field
from enum import Enum


class PipelineState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    INSTALLING = "installing"
    LOCATING = "locating"
    LAUNCHING = "launching"
    RUNNING = "running"
    FINISHED = "finished"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.FINISHED, PipelineState.ERROR)


class FailureReason(str, Enum):
    MANIFEST_UNAVAILABLE = "manifest_unavailable"
    MALFORMED_CATALOG = "malformed_catalog"
    NO_STABLE_VERSION = "no_stable_version"
    UNKNOWN_VERSION = "unknown_version"
    NO_DOWNLOAD_FOR_PLATFORM = "no_download_for_platform"
    DOWNLOAD_FAILED = "download_failed"
    UNEXPECTED_CONTENT_TYPE = "unexpected_content_type"
    HASH_MISMATCH = "hash_mismatch"
    EXTRACTION_FAILED = "extraction_failed"
    BIN_DIRECTORY_MISSING = "bin_directory_missing"
    EXECUTABLE_MISSING = "executable_missing"
    SPAWN_FAILED = "spawn_failed"
    BUSY = "busy"
    FILESYSTEM = "filesystem"
    UNEXPECTED = "unexpected"


class StreamTag(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"
    STATUS = "status"


@dataclass(frozen=True)
class StateChanged:
    previous: PipelineState
    current: PipelineState
    reason: FailureReason | None = None
    message: str = ""
    canceled: bool = False


@dataclass(frozen=True)
class DownloadProgress:
    received: int
    total: int | None

    @property
    def percentage(self) -> float | None:
        """Percentage complete, or None when the total size is unknown."""
        if not self.total:
            return None
        return min(100.0, self.received * 100 / self.total)


@dataclass(frozen=True)
class VerifyProgress:
    percentage: float


@dataclass(frozen=True)
class OutputLine:
    stream: StreamTag
    text: str
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class ProcessExited:
    exit_code: int

    @property
    def normal(self) -> bool:
        return self.exit_code == 0


PipelineEvent = StateChanged | DownloadProgress | VerifyProgress | OutputLine | ProcessExited
