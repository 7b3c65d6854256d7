"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from thrive_launcher.core.orchestrator import PlayOutcome
from thrive_launcher.exceptions import NoStableVersionError
from thrive_launcher.models.catalog import VersionCatalog
from thrive_launcher.models.config import LauncherConfig
from thrive_launcher.models.events import PipelineState
from thrive_launcher.storage.install_cache import InstalledRelease
from thrive_launcher.utils.formatting import format_duration, format_size
from thrive_launcher.utils.platform import Platform


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `thrive-launcher validate` to see what is wrong.",
            "• Run `thrive-launcher init --force` to start from the defaults.",
        ],
        "ManifestUnavailableError": [
            "• Check your internet connection.",
            "• The version server might be temporarily unavailable.",
            "• Point `manifest_source` to a local file to play offline.",
        ],
        "MalformedCatalogError": [
            "• The version manifest could not be understood.",
            "• Update the launcher, the manifest format may have changed.",
        ],
        "NoStableVersionError": [
            "• Pick a version explicitly: `thrive-launcher play <VERSION_ID>`.",
            "• List the available versions with `thrive-launcher versions`.",
        ],
        "UnknownVersionError": [
            "• List the available versions with `thrive-launcher versions`.",
        ],
        "NoDownloadForPlatformError": [
            "• This release was not built for your operating system.",
            "• Try another version from `thrive-launcher versions`.",
        ],
        "PipelineBusyError": [
            "• Wait for the current download or game session to finish.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• A request timed out, which may indicate network problems.",
            "• Check your internet speed.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -v for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        if isinstance(value, list):
            value = ", ".join(value)
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            escape(content.strip()),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: LauncherConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Manifest:", escape(config.manifest_source))
    table.add_row("Data Folder:", escape(config.data_dir))
    table.add_row("Executable:", f"{config.bin_dir_name}/{config.executable_name}")
    table.add_row("Download Attempts:", str(config.download_attempts))
    table.add_row("Chunk Size:", format_size(config.chunk_size))
    table.add_row("Output Log Lines:", str(config.output_log_limit))
    table.add_row(
        "Keep Downloads:",
        "[green]Yes[/green]" if config.keep_downloads else "[yellow]No[/yellow]",
    )
    if config.selected_version:
        table.add_row("Selected Version:", config.selected_version)

    console.print(
        Panel(
            table,
            title="[bold green]✓ Configuration is valid[/bold green]",
            border_style="green",
            expand=False,
        )
    )


def print_versions_table(
    catalog: VersionCatalog,
    platform: Platform,
    installed_folders: set[str],
):
    """Lists every version in the catalog with its availability."""
    console = Console()
    try:
        recommended_id = catalog.recommended().id
    except NoStableVersionError:
        recommended_id = None

    table = Table(title="Available Versions", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Release")
    table.add_column("Channel")
    table.add_column(f"Download ({platform})")
    table.add_column("Installed", justify="center")

    for version in catalog.versions:
        download = version.download_for(platform)
        release = escape(version.release_num)
        if version.id == recommended_id:
            release += " [bold green]★ recommended[/bold green]"
        channel = "[green]stable[/green]" if version.stable else "[yellow]unstable[/yellow]"
        file_name = escape(download.file_name) if download else "[dim]not available[/dim]"
        installed = (
            "[green]✓[/green]"
            if download and download.folder_name in installed_folders
            else ""
        )
        table.add_row(escape(version.id), release, channel, file_name, installed)

    console.print(table)


def print_installed_table(releases: list[InstalledRelease]):
    """Lists the releases present in the install folder."""
    console = Console()
    if not releases:
        console.print("[yellow]No releases are installed.[/yellow]")
        return
    table = Table(title="Installed Releases", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Folder", no_wrap=True)
    table.add_column("Path", style="dim")
    for release in releases:
        table.add_row(escape(release.folder_name), escape(str(release.path)))
    console.print(table)


def print_outcome_panel(outcome: PlayOutcome, duration: float):
    """Prints how a play attempt ended."""
    console = Console()
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    if outcome.version:
        table.add_row("Version:", escape(outcome.version.label))
    if outcome.executable:
        table.add_row("Executable:", escape(str(outcome.executable)))
    table.add_row("Duration:", format_duration(duration))

    if outcome.state == PipelineState.FINISHED:
        if outcome.exit_code == 0:
            title, style = "[bold green]✓ Game exited normally[/bold green]", "green"
        else:
            title, style = "[bold yellow]Game exited with an error[/bold yellow]", "yellow"
        table.add_row("Exit Code:", str(outcome.exit_code))
    elif outcome.canceled:
        title, style = "[bold yellow]Canceled[/bold yellow]", "yellow"
    else:
        title, style = "[bold red]✗ Play failed[/bold red]", "red"
        if outcome.reason:
            table.add_row("Reason:", outcome.reason.value.replace("_", " "))
        table.add_row("Details:", f"[red]{escape(outcome.message)}[/red]")

    console.print(Panel(table, title=title, border_style=style, expand=False))
