"""
Runs a launched game process and collects its console output as it arrives.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Iterator
from pathlib import Path

from thrive_launcher.exceptions import LaunchAlreadyInProgressError, ProcessSpawnError
from thrive_launcher.models.events import OutputLine, StreamTag

log = logging.getLogger(__name__)

OutputListener = Callable[[OutputLine], None]


class OutputLog:
    """A fixed-capacity log of output lines; the oldest line is evicted first."""

    def __init__(self, max_lines: int = 1000):
        self.max_lines = max_lines
        self._lines: deque[OutputLine] = deque(maxlen=max_lines)

    def append(self, line: OutputLine) -> None:
        self._lines.append(line)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[OutputLine]:
        return iter(list(self._lines))

    def texts(self) -> list[str]:
        return [line.text for line in self._lines]


class LaunchSession:
    """
    One run of the game executable.

    The session keeps the most recent output lines and the exit code after the
    process ended, until the owner discards it. No timeout is applied: the
    process runs until it exits on its own or the launcher itself quits.
    """

    PROCESS_STARTED = "Process Started"
    STDERR_PREFIX = "ERROR: "
    STREAM_LIMIT = 1048576  # longest line read in one go

    def __init__(
        self,
        executable: Path,
        working_directory: Path | None = None,
        arguments: list[str] | None = None,
        max_lines: int = 1000,
        on_output: OutputListener | None = None,
    ):
        self.executable = Path(executable)
        self.working_directory = (
            Path(working_directory) if working_directory else self.executable.parent
        )
        self.arguments = list(arguments or [])
        self.log = OutputLog(max_lines)
        self._on_output = on_output
        self._process: asyncio.subprocess.Process | None = None
        self._readers: list[asyncio.Task] = []
        self._exit_code: int | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def exit_code(self) -> int | None:
        """The exit code once the process ended, None while it runs."""
        return self._exit_code

    @property
    def running(self) -> bool:
        return self._process is not None and self._exit_code is None

    def _append(self, stream: StreamTag, text: str) -> None:
        line = OutputLine(stream, text)
        self.log.append(line)
        if self._on_output:
            self._on_output(line)

    async def start(self) -> "LaunchSession":
        """
        Spawns the executable and starts relaying its output.

        Raises:
            LaunchAlreadyInProgressError: If this session was already started.
            ProcessSpawnError: If the operating system refused to start it.
        """
        if self._process is not None:
            raise LaunchAlreadyInProgressError(
                f"'{self.executable.name}' has already been started."
            )

        log.info(f"Launching '{self.executable}'.")
        try:
            self._process = await asyncio.create_subprocess_exec(
                str(self.executable),
                *self.arguments,
                cwd=str(self.working_directory),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self.STREAM_LIMIT,
            )
        except OSError as e:
            raise ProcessSpawnError(
                f"Failed to start '{self.executable.name}': {e}"
            ) from e

        self._append(StreamTag.STATUS, self.PROCESS_STARTED)
        self._readers = [
            asyncio.create_task(self._pump(self._process.stdout, StreamTag.STDOUT)),
            asyncio.create_task(self._pump(self._process.stderr, StreamTag.STDERR)),
        ]
        return self

    async def _pump(self, stream: asyncio.StreamReader, tag: StreamTag) -> None:
        prefix = self.STDERR_PREFIX if tag == StreamTag.STDERR else ""
        overrun = False
        while True:
            try:
                raw = await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                # EOF, possibly after an unterminated last line
                if e.partial:
                    self._append(tag, prefix + self._decode(e.partial))
                break
            except asyncio.LimitOverrunError as e:
                # Overlong line, logged in limit-sized pieces
                self._append(tag, prefix + self._decode(await stream.readexactly(e.consumed)))
                overrun = True
                continue
            if overrun and raw.strip(b"\r\n") == b"":
                # Terminator of an overlong line already logged
                overrun = False
                continue
            overrun = False
            self._append(tag, prefix + self._decode(raw))

    @staticmethod
    def _decode(raw: bytes) -> str:
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    async def wait(self) -> int:
        """
        Waits for the process to exit and records its exit code.

        The final log line says whether the process exited normally.
        """
        if self._process is None:
            raise ProcessSpawnError("The process has not been started.")
        if self._exit_code is not None:
            return self._exit_code

        await asyncio.gather(*self._readers)
        code = await self._process.wait()
        self._exit_code = code

        log.info(f"Child process exited with code {code}.")
        if code == 0:
            self._append(StreamTag.STATUS, f"{self.executable.name} has exited normally.")
        else:
            self._append(
                StreamTag.STATUS,
                f"{self.executable.name} exited with error code {code}.",
            )
        return code
