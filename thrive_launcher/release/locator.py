"""
Finds the game executable inside an unpacked release.

Release archives do not agree on a layout: the binaries directory may sit at
the archive root or several folders down. The locator walks the tree breadth
first so the shallowest match wins.
"""

import logging
import os
import stat
from collections import deque
from pathlib import Path

from thrive_launcher.exceptions import BinDirectoryMissingError, ExecutableMissingError
from thrive_launcher.utils.platform import Platform, current_platform

log = logging.getLogger(__name__)


class ExecutableLocator:
    """Searches an install folder for ``<bin>/<executable>``."""

    def __init__(
        self,
        executable_name: str = "Thrive",
        bin_dir_name: str = "bin",
        platform: Platform | None = None,
    ):
        self.executable_name = executable_name
        self.bin_dir_name = bin_dir_name
        self.platform = platform or current_platform()

    @property
    def executable_filename(self) -> str:
        if self.platform.is_windows:
            return f"{self.executable_name}.exe"
        return self.executable_name

    def find_bin_dirs(self, install_root: Path) -> list[Path]:
        """All binaries directories under ``install_root``, shallowest first."""
        wanted = self.bin_dir_name.lower()
        found: list[Path] = []
        queue = deque([Path(install_root)])

        while queue:
            directory = queue.popleft()
            try:
                entries = sorted(os.scandir(directory), key=lambda e: e.name)
            except OSError as e:
                log.debug(f"Skipping unreadable directory '{directory}': {e}")
                continue
            for entry in entries:
                if not entry.is_dir(follow_symlinks=False):
                    continue
                if entry.name.lower() == wanted:
                    found.append(Path(entry.path))
                queue.append(Path(entry.path))
        return found

    def locate(self, install_root: Path) -> Path:
        """
        Returns the path of the executable to launch.

        Raises:
            BinDirectoryMissingError: If no binaries directory exists.
            ExecutableMissingError: If no binaries directory holds the executable.
        """
        bin_dirs = self.find_bin_dirs(install_root)
        if not bin_dirs:
            raise BinDirectoryMissingError(
                f"Error '{self.bin_dir_name}' folder is missing in '{install_root}'!"
            )

        for bin_dir in bin_dirs:
            candidate = bin_dir / self.executable_filename
            if candidate.is_file():
                log.debug(f"Located executable at '{candidate}'.")
                self._ensure_executable(candidate)
                return candidate

        raise ExecutableMissingError(
            f"Error: {self.executable_filename} is missing from '{bin_dirs[0]}'!"
        )

    @staticmethod
    def _ensure_executable(path: Path) -> None:
        """Restores the execute bits that zip extraction does not preserve."""
        if os.name == "nt" or os.access(path, os.X_OK):
            return
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        log.debug(f"Marked '{path.name}' as executable.")
