"""
The main orchestrator that turns a single "play" request into a running game.

It resolves the version, downloads and verifies the archive when the release
is not installed yet, unpacks it, locates the executable and launches it,
reporting every step through the EventChannel.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from thrive_launcher.api.manifest_client import ManifestClient
from thrive_launcher.exceptions import (
    BinDirectoryMissingError,
    DownloadAlreadyInProgressError,
    DownloadFailedError,
    ExecutableMissingError,
    ExtractionFailedError,
    HashMismatchError,
    LaunchAlreadyInProgressError,
    LauncherError,
    MalformedCatalogError,
    ManifestUnavailableError,
    NoDownloadForPlatformError,
    NoStableVersionError,
    OperationCanceled,
    PipelineBusyError,
    ProcessSpawnError,
    UnexpectedContentTypeError,
    UnknownVersionError,
)
from thrive_launcher.launch.session import LaunchSession
from thrive_launcher.models.catalog import PlatformDownload, Version, VersionCatalog
from thrive_launcher.models.config import LauncherConfig
from thrive_launcher.models.events import (
    DownloadProgress,
    FailureReason,
    PipelineState,
    ProcessExited,
    StateChanged,
    VerifyProgress,
)
from thrive_launcher.release.downloader import (
    CancelToken,
    Downloader,
    ensure_archive_content_type,
)
from thrive_launcher.release.integrity import IntegrityVerifier
from thrive_launcher.release.locator import ExecutableLocator
from thrive_launcher.storage.install_cache import InstallCache, InstalledRelease
from thrive_launcher.storage.manifest_cache import ManifestCache
from thrive_launcher.utils.platform import Platform, current_platform

from .event_channel import EventChannel

log = logging.getLogger(__name__)

S = PipelineState

_TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    S.IDLE: {S.RESOLVING},
    S.RESOLVING: {S.DOWNLOADING, S.VERIFYING, S.LOCATING},
    S.DOWNLOADING: {S.VERIFYING},
    S.VERIFYING: {S.INSTALLING},
    S.INSTALLING: {S.LOCATING},
    S.LOCATING: {S.LAUNCHING},
    S.LAUNCHING: {S.RUNNING},
    S.RUNNING: {S.FINISHED},
    S.FINISHED: {S.RESOLVING, S.IDLE},
    S.ERROR: {S.RESOLVING, S.IDLE},
}

_FAILURE_REASONS: dict[type[LauncherError], FailureReason] = {
    ManifestUnavailableError: FailureReason.MANIFEST_UNAVAILABLE,
    MalformedCatalogError: FailureReason.MALFORMED_CATALOG,
    NoStableVersionError: FailureReason.NO_STABLE_VERSION,
    UnknownVersionError: FailureReason.UNKNOWN_VERSION,
    NoDownloadForPlatformError: FailureReason.NO_DOWNLOAD_FOR_PLATFORM,
    DownloadFailedError: FailureReason.DOWNLOAD_FAILED,
    UnexpectedContentTypeError: FailureReason.UNEXPECTED_CONTENT_TYPE,
    HashMismatchError: FailureReason.HASH_MISMATCH,
    ExtractionFailedError: FailureReason.EXTRACTION_FAILED,
    BinDirectoryMissingError: FailureReason.BIN_DIRECTORY_MISSING,
    ExecutableMissingError: FailureReason.EXECUTABLE_MISSING,
    ProcessSpawnError: FailureReason.SPAWN_FAILED,
    PipelineBusyError: FailureReason.BUSY,
}


def failure_reason_for(error: Exception) -> FailureReason:
    """Maps an exception onto the reason reported with the Error state."""
    for cls in type(error).__mro__:
        if cls in _FAILURE_REASONS:
            return _FAILURE_REASONS[cls]
    if isinstance(error, OSError):
        return FailureReason.FILESYSTEM
    return FailureReason.UNEXPECTED


@dataclass
class PlayOutcome:
    """How one play attempt ended."""

    state: PipelineState
    version: Version | None = None
    download: PlatformDownload | None = None
    executable: Path | None = None
    exit_code: int | None = None
    reason: FailureReason | None = None
    message: str = ""
    canceled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.FINISHED


@dataclass
class _Attempt:
    """Mutable state of the play attempt occupying the operation slot."""

    version: Version | None = None
    download: PlatformDownload | None = None
    executable: Path | None = None
    cancel_token: CancelToken | None = None


class PipelineOrchestrator:
    """
    Runs the acquisition and launch pipeline, one play attempt at a time.

    All public methods must be called from the thread running the event loop.
    """

    def __init__(
        self,
        config: LauncherConfig,
        *,
        manifest_client: ManifestClient | None = None,
        downloader: Downloader | None = None,
        install_cache: InstallCache | None = None,
        locator: ExecutableLocator | None = None,
        platform: Platform | None = None,
        events: EventChannel | None = None,
    ):
        self.config = config
        self.platform = platform or current_platform()
        self.manifest_client = manifest_client or ManifestClient(
            ManifestCache(Path(config.data_dir), config.manifest_cache_days)
        )
        self.downloader = downloader or Downloader(
            chunk_size=config.chunk_size, max_attempts=config.download_attempts
        )
        self.install_cache = install_cache or InstallCache(config.install_dir)
        self.locator = locator or ExecutableLocator(
            config.executable_name, config.bin_dir_name, self.platform
        )
        self.events = events or EventChannel()

        self._state = PipelineState.IDLE
        self._attempt: _Attempt | None = None
        self._catalog: VersionCatalog | None = None
        self._session: LaunchSession | None = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def busy(self) -> bool:
        """True while a play attempt occupies the operation slot."""
        return self._attempt is not None

    @property
    def session(self) -> LaunchSession | None:
        """The most recent launch session, kept until dismissed or replaced."""
        return self._session

    @property
    def catalog(self) -> VersionCatalog | None:
        return self._catalog

    async def load_catalog(self, refresh: bool = False) -> VersionCatalog:
        """
        Fetches and parses the version manifest, reusing the last result
        unless ``refresh`` is set.
        """
        if self._catalog is None or refresh:
            text = await self.manifest_client.fetch(self.config.manifest_source)
            self._catalog = VersionCatalog.from_manifest(text)
            log.debug(f"Loaded {len(self._catalog)} versions.")
        return self._catalog

    def _transition(
        self,
        new_state: PipelineState,
        reason: FailureReason | None = None,
        message: str = "",
        canceled: bool = False,
    ) -> None:
        previous = self._state
        active = previous not in (S.IDLE, S.FINISHED, S.ERROR)
        if new_state == S.ERROR or (new_state == S.IDLE and canceled):
            valid = active
        else:
            valid = new_state in _TRANSITIONS[previous]
        if not valid:
            raise RuntimeError(
                f"Invalid pipeline transition {previous.value} -> {new_state.value}"
            )

        self._state = new_state
        log.debug(f"Pipeline state: {previous.value} -> {new_state.value}")
        self.events.publish(
            StateChanged(previous, new_state, reason=reason, message=message, canceled=canceled)
        )

    def _claim(self) -> _Attempt:
        """Checks and sets the operation slot in one step."""
        if self._attempt is not None:
            if self._state == PipelineState.DOWNLOADING:
                raise DownloadAlreadyInProgressError("A download is already in progress.")
            if self._state in (PipelineState.LAUNCHING, PipelineState.RUNNING):
                raise LaunchAlreadyInProgressError("The game is already running.")
            raise PipelineBusyError(f"The launcher is busy ({self._state.value}).")
        self._attempt = _Attempt()
        return self._attempt

    async def play(self, version_id: str | None = None) -> PlayOutcome:
        """
        Runs one play attempt and waits until the game exits.

        Step failures never propagate: they end the attempt in the Error state
        and are described by the returned PlayOutcome.

        Args:
            version_id: Version to play; defaults to the configured selection,
                then to the recommended version.

        Raises:
            DownloadAlreadyInProgressError: If an attempt is downloading.
            LaunchAlreadyInProgressError: If an attempt is launching or running.
            PipelineBusyError: If an attempt is in any other active state.
        """
        attempt = self._claim()
        self.events.bind(asyncio.get_running_loop())
        self._session = None
        version_id = version_id or self.config.selected_version or None

        try:
            self._transition(PipelineState.RESOLVING)
            catalog = await self.load_catalog()
            version = catalog.get(version_id) if version_id else catalog.recommended()
            attempt.version = version
            attempt.download = catalog.download_for(version, self.platform)
            log.info(f"Playing Thrive version: {version.release_num}")

            release = self.install_cache.get(attempt.download)
            if release is None:
                archive = await self._acquire(attempt)
                release = await self._install(attempt.download, archive)
            else:
                log.info(f"'{release.folder_name}' is already installed.")

            self._transition(PipelineState.LOCATING)
            attempt.executable = self.locator.locate(release.path)

            self._transition(PipelineState.LAUNCHING)
            session = LaunchSession(
                attempt.executable,
                arguments=self.config.launch_arguments,
                max_lines=self.config.output_log_limit,
                on_output=self.events.publish,
            )
            await session.start()
            self._session = session

            self._transition(PipelineState.RUNNING)
            exit_code = await session.wait()
            self.events.publish(ProcessExited(exit_code))
            self._transition(PipelineState.FINISHED)
            return self._outcome(attempt, PipelineState.FINISHED, exit_code=exit_code)

        except OperationCanceled as e:
            self._transition(PipelineState.IDLE, message=str(e), canceled=True)
            return self._outcome(attempt, PipelineState.IDLE, message=str(e), canceled=True)
        except asyncio.CancelledError:
            self._transition(PipelineState.IDLE, message="Interrupted.", canceled=True)
            raise
        except Exception as e:
            reason = failure_reason_for(e)
            if not isinstance(e, LauncherError):
                log.error(
                    f"Unexpected error during play: {e}",
                    exc_info=log.getEffectiveLevel() == logging.DEBUG,
                )
            self._transition(PipelineState.ERROR, reason=reason, message=str(e))
            return self._outcome(attempt, PipelineState.ERROR, reason=reason, message=str(e))
        finally:
            self._attempt = None

    async def _acquire(self, attempt: _Attempt) -> Path:
        """Makes sure a verified archive for the attempt sits in the staging folder."""
        download = attempt.download
        archive = self.config.staging_dir / download.file_name

        if archive.is_file():
            log.info(f"'{download.file_name}' was already downloaded.")
        else:
            self._transition(PipelineState.DOWNLOADING)
            log.info(f"Downloading: {download.url}")
            attempt.cancel_token = CancelToken()
            try:
                content_type = await self.downloader.fetch(
                    download.url, archive, self._on_download_progress, attempt.cancel_token
                )
            finally:
                attempt.cancel_token = None
            try:
                ensure_archive_content_type(content_type, self.config.allowed_content_types)
            except UnexpectedContentTypeError:
                archive.unlink(missing_ok=True)
                raise
            log.info(f"Successfully downloaded '{download.file_name}'.")

        self._transition(PipelineState.VERIFYING)
        log.info(f"Verifying archive '{download.file_name}'.")
        if not await IntegrityVerifier.verify_async(
            archive, download.hash, self._on_verify_progress
        ):
            archive.unlink(missing_ok=True)
            raise HashMismatchError(
                f"Hash for file '{download.file_name}' is invalid (download "
                "corrupted or wrong file was downloaded), please try again."
            )
        return archive

    async def _install(self, download: PlatformDownload, archive: Path) -> InstalledRelease:
        self._transition(PipelineState.INSTALLING)
        release = await self.install_cache.install_async(download, archive)
        if not self.config.keep_downloads:
            archive.unlink(missing_ok=True)
        return release

    def _on_download_progress(self, received: int, total: int | None) -> None:
        self.events.publish(DownloadProgress(received, total))

    def _on_verify_progress(self, percentage: float) -> None:
        # Runs on the hashing worker thread
        self.events.publish_threadsafe(VerifyProgress(percentage))

    @staticmethod
    def _outcome(attempt: _Attempt, state: PipelineState, **kwargs) -> PlayOutcome:
        return PlayOutcome(
            state=state,
            version=attempt.version,
            download=attempt.download,
            executable=attempt.executable,
            **kwargs,
        )

    def cancel(self) -> bool:
        """
        Cancels the running download.

        Returns:
            True if a download was canceled, False if nothing cancelable runs.
        """
        attempt = self._attempt
        if (
            attempt is None
            or self._state != PipelineState.DOWNLOADING
            or attempt.cancel_token is None
        ):
            return False
        log.info("Canceling download.")
        attempt.cancel_token.cancel()
        return True

    def dismiss(self) -> None:
        """Discards the finished session and returns to Idle."""
        if self._attempt is not None:
            raise PipelineBusyError("Cannot dismiss while a play attempt is active.")
        self._session = None
        if self._state.is_terminal:
            self._transition(PipelineState.IDLE)
