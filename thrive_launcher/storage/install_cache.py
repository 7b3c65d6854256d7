"""
Content-addressed store of unpacked releases.

Every download record names the folder its archive unpacks into. The folder
existing under the install root is what marks a release as installed; there is
no separate index to drift out of sync with the disk.
"""

import asyncio
import logging
import lzma
import os
import shutil
import tempfile
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path

import py7zr
from py7zr.exceptions import ArchiveError

from thrive_launcher.exceptions import ExtractionFailedError
from thrive_launcher.models.catalog import PlatformDownload

log = logging.getLogger(__name__)

_PARTIAL_PREFIX = ".partial-"

_CODEC_ERRORS = (
    ArchiveError,
    zipfile.BadZipFile,
    lzma.LZMAError,
    zlib.error,
    EOFError,
    ValueError,
)


@dataclass(frozen=True)
class InstalledRelease:
    folder_name: str
    path: Path


class InstallCache:
    """Manages the ``installed/`` folder of the launcher."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, download: PlatformDownload) -> Path:
        return self.root / download.folder_name

    def has(self, download: PlatformDownload) -> bool:
        """True iff the release folder for ``download`` exists right now."""
        return self.path_for(download).is_dir()

    def get(self, download: PlatformDownload) -> InstalledRelease | None:
        if not self.has(download):
            return None
        return InstalledRelease(download.folder_name, self.path_for(download))

    def installed(self) -> list[InstalledRelease]:
        """Lists the releases currently present on disk."""
        if not self.root.is_dir():
            return []
        return [
            InstalledRelease(entry.name, entry)
            for entry in sorted(self.root.iterdir())
            if entry.is_dir() and not entry.name.startswith(_PARTIAL_PREFIX)
        ]

    def install(self, download: PlatformDownload, archive_path: Path) -> InstalledRelease:
        """
        Unpacks a verified archive into the folder named by ``download``.

        Installing a release whose folder already exists does nothing. The
        archive is unpacked into a hidden sibling folder first and only renamed
        into place once extraction succeeded.

        Raises:
            ExtractionFailedError: If the archive is unreadable or truncated.
                The archive file is deleted so the next attempt downloads it
                again.
        """
        existing = self.get(download)
        if existing is not None:
            log.info(f"'{download.folder_name}' has already been extracted.")
            return existing

        archive_path = Path(archive_path)
        target = self.path_for(download)
        self.root.mkdir(parents=True, exist_ok=True)
        partial = Path(
            tempfile.mkdtemp(prefix=f"{_PARTIAL_PREFIX}{download.folder_name}-", dir=self.root)
        )

        try:
            log.info(f"Unpacking archive '{archive_path.name}'.")
            self._extract(archive_path, partial)
            os.replace(partial, target)
        except _CODEC_ERRORS as e:
            shutil.rmtree(partial, ignore_errors=True)
            try:
                archive_path.unlink(missing_ok=True)
            except OSError as unlink_error:
                log.warning(f"Could not delete bad archive '{archive_path}': {unlink_error}")
            raise ExtractionFailedError(
                f"Unpacking failed, file '{archive_path.name}' is invalid? {e}"
            ) from e
        except BaseException:
            shutil.rmtree(partial, ignore_errors=True)
            raise

        log.info(f"Unpacking of '{archive_path.name}' completed.")
        return InstalledRelease(download.folder_name, target)

    async def install_async(
        self, download: PlatformDownload, archive_path: Path
    ) -> InstalledRelease:
        """Runs install() in a worker thread."""
        return await asyncio.to_thread(self.install, download, archive_path)

    def _extract(self, archive_path: Path, destination: Path) -> None:
        if py7zr.is_7zfile(archive_path):
            with py7zr.SevenZipFile(archive_path, mode="r") as archive:
                archive.extractall(path=destination)
        elif zipfile.is_zipfile(archive_path):
            with zipfile.ZipFile(archive_path) as archive:
                archive.extractall(destination)
        else:
            raise ValueError("unrecognized archive format")
