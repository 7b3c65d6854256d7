from pathlib import Path

import pytest

from thrive_launcher.exceptions import ConfigurationError
from thrive_launcher.models.config import ARCHIVE_CONTENT_TYPES, DEFAULT_MANIFEST_SOURCE
from thrive_launcher.storage.config_manager import ConfigManager


@pytest.fixture(autouse=True)
def isolated_data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_home = tmp_path / "share"
    monkeypatch.setenv("XDG_DATA_HOME", str(data_home))
    monkeypatch.setenv("LOCALAPPDATA", str(data_home))
    return data_home


def test_missing_file_is_created_with_defaults(tmp_path: Path, isolated_data_home: Path):
    config_file = tmp_path / "config" / "config.ini"

    config = ConfigManager(config_file).load_config()

    assert config_file.is_file()
    assert config.manifest_source == DEFAULT_MANIFEST_SOURCE
    assert config.data_dir == str(isolated_data_home / "thrive-launcher")
    assert config.allowed_content_types == ARCHIVE_CONTENT_TYPES
    assert config.output_log_limit == 1000
    assert config.staging_dir == isolated_data_home / "thrive-launcher" / "staging" / "download"
    assert config.install_dir == isolated_data_home / "thrive-launcher" / "installed"


def test_missing_keys_are_migrated(tmp_path: Path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[DEFAULT]\nmanifest_source = /srv/versions.json\n")

    config = ConfigManager(config_file).load_config()

    assert config.manifest_source == "/srv/versions.json"
    assert config.download_attempts == 3
    text = config_file.read_text()
    assert "download_attempts = 3" in text
    assert "manifest_source = /srv/versions.json" in text


def test_list_values_are_split(tmp_path: Path):
    config_file = tmp_path / "config.ini"
    ConfigManager(config_file).save_new_config(
        {"launch_arguments": ["--dev", "--fullscreen"], "keep_downloads": False}
    )

    config = ConfigManager(config_file).load_config()

    assert config.launch_arguments == ["--dev", "--fullscreen"]
    assert config.keep_downloads is False


def test_cli_options_override_file_values(tmp_path: Path):
    config_file = tmp_path / "config.ini"
    ConfigManager(config_file).save_new_config({"json_logs": False})

    config = ConfigManager(config_file).load_config({"json_logs": True})

    assert config.json_logs is True


@pytest.mark.parametrize(
    "line",
    [
        "download_attempts = 0",
        "download_attempts = many",
        "chunk_size = 12",
        "bin_dir_name = ../bin",
        "executable_name = Thr:ive",
        "bin_dir_name = bin?",
        "allowed_content_types = ",
    ],
)
def test_invalid_values_raise_configuration_error(tmp_path: Path, line: str):
    config_file = tmp_path / "config.ini"
    ConfigManager(config_file).save_new_config({})
    key = line.split("=")[0].strip()
    lines = [
        existing
        for existing in config_file.read_text().splitlines()
        if not existing.startswith(f"{key} =")
    ]
    config_file.write_text("\n".join(lines + [line]) + "\n")

    with pytest.raises(ConfigurationError):
        ConfigManager(config_file).load_config()


def test_get_config_as_dict_reads_without_validating(tmp_path: Path):
    config_file = tmp_path / "config.ini"
    ConfigManager(config_file).save_new_config({"selected_version": "7"})

    data = ConfigManager(config_file).get_config_as_dict()

    assert data["selected_version"] == "7"
    assert "config_path" not in data
