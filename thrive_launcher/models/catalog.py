"""
Pydantic models for the version manifest and the catalog built from it.

The manifest lists every published version together with its per-platform
download records. Platforms are declared once in a lookup table and referenced
by id from each download.
"""

import json
import logging
import re
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from thrive_launcher.exceptions import (
    MalformedCatalogError,
    NoDownloadForPlatformError,
    NoStableVersionError,
    UnknownVersionError,
)
from thrive_launcher.utils.path import validate_plain_name
from thrive_launcher.utils.platform import Platform
from thrive_launcher.utils.versioning import release_sort_key

log = logging.getLogger(__name__)

_SHA3_256_HEX = re.compile(r"^[0-9a-fA-F]{64}$")


class PlatformDownload(BaseModel):
    """The download of one version for one platform."""

    model_config = ConfigDict(frozen=True)

    version_id: str
    platform: Platform
    url: str
    file_name: str
    hash: str
    folder_name: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Download URL must be http(s), got: {v}")
        return v

    @field_validator("file_name", "folder_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return validate_plain_name(v)

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        if not _SHA3_256_HEX.match(v.strip()):
            raise ValueError("Content hash must be a 64 character SHA3-256 hex digest.")
        return v.strip()


class Version(BaseModel):
    """A published release and all of its platform downloads."""

    model_config = ConfigDict(frozen=True)

    id: str
    release_num: str
    stable: bool
    downloads: tuple[PlatformDownload, ...] = ()

    def download_for(self, platform: Platform) -> PlatformDownload | None:
        for download in self.downloads:
            if download.platform.accepts(platform):
                return download
        return None

    @property
    def label(self) -> str:
        return f"{self.release_num} (Stable)" if self.stable else self.release_num


class _RawDownload(BaseModel):
    platform_id: str = Field(alias="os")
    url: str
    file_name: str = Field(alias="fileName")
    hash: str
    folder_name: str = Field(alias="folderName")

    @field_validator("platform_id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v) if isinstance(v, int) else v


class _RawVersion(BaseModel):
    id: str
    release_num: str = Field(alias="releaseNum")
    stable: bool
    downloads: list[_RawDownload] = Field(default_factory=list)

    @field_validator("id", "release_num", mode="before")
    @classmethod
    def coerce_str(cls, v):
        return str(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v


class _RawManifest(BaseModel):
    platforms: dict[str, Platform]
    versions: list[_RawVersion]


def parse_manifest(data: bytes | str) -> frozenset[Version]:
    """
    Parses raw manifest bytes into immutable Version records.

    Raises:
        MalformedCatalogError: If the document is not valid JSON, does not
        follow the manifest schema, repeats a version id, or references an
        undeclared platform.
    """
    try:
        document = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise MalformedCatalogError(f"Version manifest is not valid JSON: {e}") from e

    try:
        raw = _RawManifest.model_validate(document)
    except ValidationError as e:
        raise MalformedCatalogError(f"Version manifest has an invalid layout:\n{e}") from e

    versions: dict[str, Version] = {}
    for raw_version in raw.versions:
        if raw_version.id in versions:
            raise MalformedCatalogError(
                f"Version id '{raw_version.id}' appears more than once."
            )
        downloads = []
        for raw_download in raw_version.downloads:
            platform = raw.platforms.get(raw_download.platform_id)
            if platform is None:
                raise MalformedCatalogError(
                    f"Version '{raw_version.id}' references unknown platform "
                    f"'{raw_download.platform_id}'."
                )
            try:
                downloads.append(
                    PlatformDownload(
                        version_id=raw_version.id,
                        platform=platform,
                        url=raw_download.url,
                        file_name=raw_download.file_name,
                        hash=raw_download.hash,
                        folder_name=raw_download.folder_name,
                    )
                )
            except ValidationError as e:
                raise MalformedCatalogError(
                    f"Version '{raw_version.id}' has an invalid download:\n{e}"
                ) from e

        versions[raw_version.id] = Version(
            id=raw_version.id,
            release_num=raw_version.release_num,
            stable=raw_version.stable,
            downloads=tuple(downloads),
        )

    log.debug(f"Parsed {len(versions)} versions from manifest.")
    return frozenset(versions.values())


class VersionCatalog:
    """Queryable view over the versions of one manifest."""

    def __init__(self, versions: Iterable[Version]):
        self._versions = {version.id: version for version in versions}

    @classmethod
    def from_manifest(cls, data: bytes | str) -> "VersionCatalog":
        return cls(parse_manifest(data))

    @staticmethod
    def _sort_key(version: Version):
        return (release_sort_key(version.release_num), version.id)

    @property
    def versions(self) -> list[Version]:
        """All versions, newest first."""
        return sorted(self._versions.values(), key=self._sort_key, reverse=True)

    def __len__(self) -> int:
        return len(self._versions)

    def get(self, version_id: str) -> Version:
        try:
            return self._versions[str(version_id)]
        except KeyError:
            raise UnknownVersionError(
                f"Version '{version_id}' is not listed in the manifest."
            ) from None

    def recommended(self) -> Version:
        """Returns the newest stable version."""
        stable = [v for v in self._versions.values() if v.stable]
        if not stable:
            raise NoStableVersionError("The manifest does not list any stable version.")
        return max(stable, key=self._sort_key)

    def download_for(self, version: Version, platform: Platform) -> PlatformDownload:
        download = version.download_for(platform)
        if download is None:
            raise NoDownloadForPlatformError(
                f"Version {version.release_num} has no download for {platform}."
            )
        return download

    def valid_versions(self, platform: Platform) -> list[Version]:
        """Versions that can be installed on ``platform``, newest first."""
        return [v for v in self.versions if v.download_for(platform) is not None]
