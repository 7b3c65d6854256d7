"""
Detection of the operating system and CPU architecture the launcher runs on.
"""

import platform
import sys
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "x86-64": "x86_64",
    "i386": "x86",
    "i686": "x86",
    "aarch64": "arm64",
    "armv8": "arm64",
}


class OperatingSystem(str, Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"


def normalize_arch(arch: str) -> str:
    """Maps the many spellings of an architecture onto one canonical name."""
    value = arch.strip().lower()
    return _ARCH_ALIASES.get(value, value)


class Platform(BaseModel):
    """An operating system plus an optional CPU architecture."""

    model_config = ConfigDict(frozen=True)

    os: OperatingSystem
    arch: str | None = None

    @field_validator("os", mode="before")
    @classmethod
    def normalize_os(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v in ("win32", "win", "win64"):
                return OperatingSystem.WINDOWS
            if v in ("darwin", "mac", "osx"):
                return OperatingSystem.MACOS
        return v

    @field_validator("arch")
    @classmethod
    def normalize_arch_name(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return normalize_arch(v)

    def accepts(self, running: "Platform") -> bool:
        """
        Whether a download built for this platform runs on ``running``.

        The operating system must match exactly. The architecture is only
        compared when both sides declare one.
        """
        if self.os != running.os:
            return False
        if self.arch is None or running.arch is None:
            return True
        return self.arch == running.arch

    @property
    def is_windows(self) -> bool:
        return self.os == OperatingSystem.WINDOWS

    def __str__(self) -> str:
        return f"{self.os.value}-{self.arch}" if self.arch else self.os.value


def current_platform() -> Platform:
    """Returns the platform of the running interpreter."""
    if sys.platform.startswith("win"):
        os_name = OperatingSystem.WINDOWS
    elif sys.platform == "darwin":
        os_name = OperatingSystem.MACOS
    else:
        os_name = OperatingSystem.LINUX
    return Platform(os=os_name, arch=platform.machine() or None)
