"""
Pydantic model for the launcher configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from thrive_launcher.utils.path import validate_plain_name

DEFAULT_MANIFEST_SOURCE = "https://thrivefiles.b-cdn.net/launcher_versions.json"

# Media types a release archive may be served with
ARCHIVE_CONTENT_TYPES = [
    "application/x-7z-compressed",
    "application/zip",
    "application/octet-stream",
]


class LauncherConfig(BaseModel):
    """A validated configuration model for the launcher."""

    # Version source
    manifest_source: str = DEFAULT_MANIFEST_SOURCE
    manifest_cache_days: int = 7
    selected_version: str = ""

    # Local storage
    data_dir: str
    keep_downloads: bool = True

    # Download settings
    download_attempts: int = 3
    chunk_size: int = 131072
    allowed_content_types: list[str] = Field(
        default_factory=lambda: list(ARCHIVE_CONTENT_TYPES)
    )

    # Launch settings
    executable_name: str = "Thrive"
    bin_dir_name: str = "bin"
    launch_arguments: list[str] = Field(default_factory=list)
    output_log_limit: int = 1000

    # Logging
    json_logs: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("manifest_source")
    @classmethod
    def validate_manifest_source(cls, v: str) -> str:
        if not v:
            raise ValueError("Manifest source cannot be empty.")
        return v

    @field_validator("data_dir")
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Data directory cannot be empty.")
        return str(Path(v).expanduser())

    @field_validator("download_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError("Download attempts must be between 1 and 10.")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v < 4096 or v > 8 * 1024 * 1024:
            raise ValueError("Chunk size must be between 4 KB and 8 MB.")
        return v

    @field_validator("output_log_limit")
    @classmethod
    def validate_log_limit(cls, v: int) -> int:
        if v < 1 or v > 100000:
            raise ValueError("Output log limit must be between 1 and 100000 lines.")
        return v

    @field_validator("manifest_cache_days")
    @classmethod
    def validate_cache_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Manifest cache age cannot be negative.")
        return v

    @field_validator("executable_name", "bin_dir_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return validate_plain_name(v)

    @model_validator(mode="after")
    def validate_content_types(self) -> "LauncherConfig":
        if not self.allowed_content_types:
            raise ValueError("At least one allowed content type is required.")
        return self

    @property
    def staging_dir(self) -> Path:
        return Path(self.data_dir) / "staging" / "download"

    @property
    def install_dir(self) -> Path:
        return Path(self.data_dir) / "installed"

    @property
    def log_dir(self) -> Path:
        return Path(self.data_dir) / "logs"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
