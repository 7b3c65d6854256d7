"""
Renders pipeline events in the terminal with Rich: a progress bar while the
archive downloads, a second one while it is verified, and the game's console
output once it runs.
"""

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from thrive_launcher.models.events import (
    DownloadProgress,
    OutputLine,
    PipelineEvent,
    PipelineState,
    ProcessExited,
    StateChanged,
    StreamTag,
    VerifyProgress,
)
from thrive_launcher.utils.formatting import format_download_progress

STATE_MESSAGES = {
    PipelineState.RESOLVING: "[cyan]Retrieving version information...[/cyan]",
    PipelineState.DOWNLOADING: "[cyan]Downloading release archive...[/cyan]",
    PipelineState.VERIFYING: "[cyan]Verifying archive...[/cyan]",
    PipelineState.INSTALLING: "[cyan]Unpacking archive...[/cyan]",
    PipelineState.LOCATING: "[cyan]Preparing to launch...[/cyan]",
    PipelineState.LAUNCHING: "[cyan]Launching...[/cyan]",
    PipelineState.RUNNING: "[bold green]Game is running. Log output:[/bold green]",
}


class ProgressManager:
    """Subscribes to an EventChannel and draws what it receives."""

    def __init__(self, console: Console, show_output: bool = True):
        self.console = console
        self.show_output = show_output
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
        self.verify_progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>5.1f}%",
            console=console,
            transient=True,
        )
        self._download_task: TaskID | None = None
        self._verify_task: TaskID | None = None
        self._last_state: StateChanged | None = None
        self._downloaded: DownloadProgress | None = None

    @property
    def last_state(self) -> StateChanged | None:
        return self._last_state

    def __call__(self, event: PipelineEvent) -> None:
        if isinstance(event, StateChanged):
            self._on_state_changed(event)
        elif isinstance(event, DownloadProgress):
            self._on_download_progress(event)
        elif isinstance(event, VerifyProgress):
            self._on_verify_progress(event)
        elif isinstance(event, OutputLine):
            self._on_output(event)
        elif isinstance(event, ProcessExited):
            style = "green" if event.normal else "yellow"
            self.console.print(
                f"[{style}]Child process exited with code {event.exit_code}[/{style}]"
            )

    def _on_state_changed(self, event: StateChanged) -> None:
        self._last_state = event
        if event.previous == PipelineState.DOWNLOADING:
            self._stop_download()
            if not event.canceled and self._downloaded:
                summary = format_download_progress(
                    self._downloaded.received, self._downloaded.total
                )
                self.console.print(f"[dim]Downloaded {summary}[/dim]")
            self._downloaded = None
        if event.previous == PipelineState.VERIFYING:
            self._stop_verify()

        if event.current == PipelineState.DOWNLOADING:
            self.progress.start()
            self._download_task = self.progress.add_task("Downloading", total=None)
        elif event.current == PipelineState.VERIFYING:
            self.verify_progress.start()
            self._verify_task = self.verify_progress.add_task("Verifying", total=100)

        if message := STATE_MESSAGES.get(event.current):
            self.console.print(message)
        elif event.canceled:
            self.console.print("[yellow]Download canceled.[/yellow]")

    def _on_download_progress(self, event: DownloadProgress) -> None:
        self._downloaded = event
        if self._download_task is None:
            return
        self.progress.update(
            self._download_task, completed=event.received, total=event.total
        )

    def _on_verify_progress(self, event: VerifyProgress) -> None:
        if self._verify_task is None:
            return
        self.verify_progress.update(self._verify_task, completed=event.percentage)

    def _on_output(self, event: OutputLine) -> None:
        if not self.show_output:
            return
        text = escape(event.text)
        if event.stream == StreamTag.STDERR:
            self.console.print(f"[red]{text}[/red]", highlight=False)
        elif event.stream == StreamTag.STATUS:
            self.console.print(f"[dim]{text}[/dim]", highlight=False)
        else:
            self.console.print(text, highlight=False)

    def _stop_download(self) -> None:
        if self._download_task is not None:
            self.progress.remove_task(self._download_task)
            self._download_task = None
        self.progress.stop()

    def _stop_verify(self) -> None:
        if self._verify_task is not None:
            self.verify_progress.remove_task(self._verify_task)
            self._verify_task = None
        self.verify_progress.stop()

    def close(self) -> None:
        """Stops any progress display that is still on screen."""
        self._stop_download()
        self._stop_verify()
