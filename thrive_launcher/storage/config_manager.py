"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from thrive_launcher.exceptions import ConfigurationError
from thrive_launcher.models.config import LauncherConfig

log = logging.getLogger(__name__)

_LIST_KEYS = {"allowed_content_types", "launch_arguments"}


def default_data_dir() -> Path:
    """Platform specific folder for downloads and installed releases."""
    if os.name == "nt":
        base_dir = Path(os.getenv("LOCALAPPDATA", "~\\AppData\\Local"))
    else:
        base_dir = Path(os.getenv("XDG_DATA_HOME", "~/.local/share"))
    return base_dir.expanduser() / "thrive-launcher"


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class ConfigManager:
    """Handles all operations related to the launcher's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = Path(config_file_path)
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> LauncherConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing file is not an error: the defaults are used and written out.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated LauncherConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        if not self.config_file_path.is_file():
            log.info(
                f"No configuration found, creating defaults at '{self.config_file_path}'."
            )
            self.save_new_config({})

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        try:
            config_from_file = self._get_config_as_dict()
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return LauncherConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save; anything missing takes
            the model default.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = LauncherConfig.model_construct(data_dir=str(default_data_dir()))
        for key in sorted(LauncherConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config["DEFAULT"][key] = self._to_ini(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, list):
            return ",".join(map(str, value))
        if value is None:
            return ""
        return str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        return {
            "manifest_source": section.get("manifest_source", ""),
            "manifest_cache_days": section.getint("manifest_cache_days", 7),
            "selected_version": section.get("selected_version", ""),
            "data_dir": section.get("data_dir", "") or str(default_data_dir()),
            "keep_downloads": section.getboolean("keep_downloads", True),
            "download_attempts": section.getint("download_attempts", 3),
            "chunk_size": section.getint("chunk_size", 131072),
            "allowed_content_types": _split_list(
                section.get("allowed_content_types", "")
            ),
            "executable_name": section.get("executable_name", "Thrive"),
            "bin_dir_name": section.get("bin_dir_name", "bin"),
            "launch_arguments": _split_list(section.get("launch_arguments", "")),
            "output_log_limit": section.getint("output_log_limit", 1000),
            "json_logs": section.getboolean("json_logs", False),
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = LauncherConfig.model_construct(data_dir=str(default_data_dir()))
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in sorted(LauncherConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._to_ini(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving

    def get_config_as_dict(self) -> dict[str, Any]:
        """Reads the config file without validating it, for display."""
        self._parser.read(self.config_file_path, encoding="utf-8")
        return self._get_config_as_dict()
