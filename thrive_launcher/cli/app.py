"""
Defines the command-line interface for the launcher using Typer.
"""

import asyncio
import logging
import os
import shutil
import signal
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from thrive_launcher import __version__
from thrive_launcher.api.manifest_client import ManifestClient, is_remote_source
from thrive_launcher.core.event_channel import EventChannel
from thrive_launcher.core.orchestrator import PipelineOrchestrator
from thrive_launcher.exceptions import LauncherError
from thrive_launcher.models.catalog import VersionCatalog
from thrive_launcher.models.config import LauncherConfig
from thrive_launcher.models.events import PipelineState
from thrive_launcher.release.downloader import close_connection_pool
from thrive_launcher.storage.config_manager import ConfigManager
from thrive_launcher.storage.install_cache import InstallCache
from thrive_launcher.storage.manifest_cache import ManifestCache
from thrive_launcher.utils.platform import current_platform
from thrive_launcher.utils.structured_logger import create_structured_logger

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_installed_table,
    print_outcome_panel,
    print_validation_table,
    print_versions_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("thrive_launcher")

app = typer.Typer(
    name="thrive-launcher",
    help=(
        "Downloads, verifies and launches releases of Thrive. Use"
        " 'thrive-launcher <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "thrive-launcher"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict | None = None) -> LauncherConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except LauncherError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _manifest_client(config: LauncherConfig) -> ManifestClient:
    return ManifestClient(ManifestCache(Path(config.data_dir), config.manifest_cache_days))


async def _fetch_catalog(config: LauncherConfig) -> VersionCatalog:
    text = await _manifest_client(config).fetch(config.manifest_source)
    return VersionCatalog.from_manifest(text)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Show debug logging.",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    clear_downloads: bool = typer.Option(
        False,
        "--clear-downloads",
        help="Delete downloaded archives from the staging folder and exit.",
    ),
):
    """Thrive Launcher CLI"""
    if version:
        console.print(
            f"[bold]thrive-launcher[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    log_level = "DEBUG" if verbose else "INFO"
    logging.getLogger("thrive_launcher").setLevel(log_level)

    if clear_downloads:
        config = _load_config()
        staging_dir = config.staging_dir
        console.print("[cyan]Clearing downloaded archives...[/cyan]")
        if not staging_dir.is_dir():
            console.print("[green]✓ Nothing to clear.[/green]")
            raise typer.Exit()

        entries = list(staging_dir.iterdir())
        try:
            for entry in entries:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
        except OSError as e:
            console.print(f"[red]✗ Failed to clear downloads: {e}[/red]")
            raise typer.Exit(code=1) from e
        console.print(
            f"[green]✓ Downloads cleared successfully ({len(entries)} entries"
            " removed).[/green]"
        )
        raise typer.Exit()

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]thrive-launcher init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        print_config(CONFIG_FILE, config_manager.get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    manifest: str | None = typer.Option(
        None, "--manifest", "-m", help="URL or file path of the version manifest."
    ),
    data_dir: str | None = typer.Option(
        None, "--data-dir", "-d", help="Folder for downloads and installed releases."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Create a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {}
    if manifest:
        settings["manifest_source"] = manifest
    if data_dir:
        settings["data_dir"] = str(Path(data_dir).expanduser())

    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_new_config(settings)
    try:
        config = config_manager.load_config()
    except LauncherError as e:
        console.print(f"[red]✗ The new configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print(f"Releases will be stored in [dim]{config.data_dir}[/dim]")
    console.print("Ready to play! Try: [cyan]thrive-launcher play[/cyan]")


@app.command()
def versions(
    show_all: bool = typer.Option(
        False, "--all", "-a", help="Also list versions not built for this platform."
    ),
):
    """List the versions offered by the manifest."""
    config = _load_config()
    platform = current_platform()

    catalog = asyncio.run(_fetch_catalog(config))
    if not show_all:
        catalog = VersionCatalog(catalog.valid_versions(platform))
        if not len(catalog):
            console.print(f"[yellow]No versions are available for {platform}.[/yellow]")
            raise typer.Exit()

    installed = {
        release.folder_name for release in InstallCache(config.install_dir).installed()
    }
    print_versions_table(catalog, platform, installed)


@app.command()
def installed():
    """List the releases that are unpacked and ready to play."""
    config = _load_config()
    print_installed_table(InstallCache(config.install_dir).installed())


@app.command()
def play(
    version_id: str | None = typer.Argument(
        None, help="Version to play. Defaults to the recommended stable version."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Do not echo the game's console output."
    ),
    json_logs: bool | None = typer.Option(
        None,
        "--json-logs/--no-json-logs",
        help="Write every pipeline event to a JSON lines log file.",
    ),
    keep_downloads: bool | None = typer.Option(
        None,
        "--keep-downloads/--delete-downloads",
        help="Keep the downloaded archive after it has been unpacked.",
    ),
):
    """Download the chosen version if needed, then launch it."""
    cli_options = {
        key: value
        for key, value in {
            "json_logs": json_logs,
            "keep_downloads": keep_downloads,
        }.items()
        if value is not None
    }
    config = _load_config(cli_options)

    async def _play_async():
        events = EventChannel()
        orchestrator = PipelineOrchestrator(config, events=events)
        progress_manager = ProgressManager(console, show_output=not quiet)
        events.subscribe(progress_manager)

        structured_logger = None
        if config.json_logs:
            structured_logger, pipeline_logger = create_structured_logger(
                config.log_dir, enable_json=True
            )
            structured_logger.set_session_context(
                launcher_version=__version__, platform=str(orchestrator.platform)
            )
            events.subscribe(pipeline_logger)

        loop = asyncio.get_running_loop()
        main_task = asyncio.current_task()

        def _on_interrupt():
            if not orchestrator.cancel() and main_task is not None:
                main_task.cancel()

        try:
            loop.add_signal_handler(signal.SIGINT, _on_interrupt)
        except (NotImplementedError, RuntimeError):
            log.debug("Signal handlers are not supported, Ctrl+C will abort.")

        start_time = time.monotonic()
        try:
            return await orchestrator.play(version_id), time.monotonic() - start_time
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass
            progress_manager.close()
            await close_connection_pool()
            if structured_logger:
                structured_logger.close()

    outcome, duration = asyncio.run(_play_async())
    print_outcome_panel(outcome, duration)
    if outcome.state == PipelineState.ERROR:
        raise typer.Exit(code=1)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_validation_table(config)
    except LauncherError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[red]✗ Config file not found.[/] Run [cyan]thrive-launcher init[/cyan]."
        )
        raise typer.Exit(code=1)
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration file is valid and can be loaded.")
    except LauncherError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    data_dir = Path(config.data_dir)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        console.print(f"[green]✓[/] Data folder is usable: [dim]{data_dir}[/dim]")
    except OSError as e:
        console.print(f"[red]✗ Data folder cannot be created: {e}[/red]")
        issues_found = True

    source = config.manifest_source
    kind = "server" if is_remote_source(source) else "file"
    console.print(f"\n[dim]Testing access to the version {kind}...[/dim]")

    async def check_manifest() -> bool:
        try:
            text = await ManifestClient(timeout_s=10).fetch(source)
            catalog = VersionCatalog.from_manifest(text)
        except LauncherError as e:
            console.print(f"[red]✗ {e}[/red]")
            return False
        console.print(f"[green]✓[/] Manifest lists {len(catalog)} versions.")
        platform = current_platform()
        if catalog.valid_versions(platform):
            console.print(f"[green]✓[/] Releases are available for {platform}.")
            return True
        console.print(f"[red]✗ No release is available for {platform}.[/red]")
        return False

    if not asyncio.run(check_manifest()):
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
