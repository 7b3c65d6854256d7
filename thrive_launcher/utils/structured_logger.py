"""
JSON-lines event log for the launch pipeline.

Each pipeline event becomes one JSON object per line, tagged with the session
it belongs to, so a run can be replayed or grepped after the fact.
"""

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from thrive_launcher.models.events import (
    DownloadProgress,
    OutputLine,
    PipelineEvent,
    ProcessExited,
    StateChanged,
    StreamTag,
)

log = logging.getLogger(__name__)


class StructuredLogger:
    """
    Writes structured entries to ``<log_dir>/thrive_launcher_<timestamp>.jsonl``.

    Usage:
        with StructuredLogger(log_dir=Path("logs")) as logger:
            logger.info("download_completed", file_name="thrive_0.6.1_linux.7z")
    """

    def __init__(self, log_dir: Path | None = None, enable_json: bool = True):
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.json_log_path: Path | None = None
        self._json_file = None

        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"thrive_launcher_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    def set_session_context(self, **kwargs) -> None:
        """Adds fields that are repeated in every entry."""
        self._session_context.update(kwargs)

    def _write(self, level: int, event: str, **context) -> None:
        if not self._json_file or self._json_file.closed:
            return
        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": logging.getLevelName(level),
            "event": event,
            **self._session_context,
            **context,
        }
        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            log.warning(f"Could not write event log entry: {e}")

    def debug(self, event: str, **context) -> None:
        self._write(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._write(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._write(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._write(logging.ERROR, event, **context)

    def close(self) -> None:
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class PipelineLogger:
    """Specialized logger that records pipeline events."""

    PROGRESS_STEP = 10  # percent between two logged progress entries

    def __init__(self, logger: StructuredLogger):
        self.logger = logger
        self._last_progress_step = -1

    def __call__(self, event: PipelineEvent) -> None:
        """Event channel subscriber."""
        if isinstance(event, StateChanged):
            self.state_changed(event)
        elif isinstance(event, DownloadProgress):
            self.download_progress(event)
        elif isinstance(event, OutputLine):
            self.output_line(event)
        elif isinstance(event, ProcessExited):
            self.process_exited(event)

    def state_changed(self, event: StateChanged) -> None:
        """Log a pipeline state transition."""
        self._last_progress_step = -1
        context = {
            "previous": event.previous.value,
            "current": event.current.value,
        }
        if event.reason:
            context["reason"] = event.reason.value
        if event.message:
            context["message"] = event.message
        if event.canceled:
            context["canceled"] = True
        if event.reason:
            self.logger.error("pipeline_state_changed", **context)
        else:
            self.logger.info("pipeline_state_changed", **context)

    def download_progress(self, event: DownloadProgress) -> None:
        """Log download progress in coarse steps."""
        percentage = event.percentage
        if percentage is None:
            return
        step = int(percentage // self.PROGRESS_STEP)
        if step > self._last_progress_step:
            self._last_progress_step = step
            self.logger.debug(
                "download_progress",
                received=event.received,
                total=event.total,
                percentage=round(percentage, 1),
            )

    def output_line(self, event: OutputLine) -> None:
        """Log a line of game output."""
        if event.stream == StreamTag.STDERR:
            self.logger.warning("process_output", stream=event.stream.value, text=event.text)
        else:
            self.logger.debug("process_output", stream=event.stream.value, text=event.text)

    def process_exited(self, event: ProcessExited) -> None:
        """Log the game process exit."""
        self.logger.info("process_exited", exit_code=event.exit_code, normal=event.normal)


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, PipelineLogger]:
    """
    Create the structured loggers.

    Returns:
        Tuple of (base_logger, pipeline_logger)
    """
    base = StructuredLogger(log_dir=log_dir, enable_json=enable_json)
    return base, PipelineLogger(base)
