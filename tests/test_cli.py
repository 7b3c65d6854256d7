import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from helpers import download_entry, manifest_text, version_entry
from thrive_launcher import __version__
from thrive_launcher.cli import app as app_module

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config" / "config.ini"
    monkeypatch.setattr(app_module, "CONFIG_FILE", path)
    monkeypatch.setattr(app_module, "CONFIG_DIR", path.parent)
    return path


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    downloads = [
        download_entry(platform_id, f"thrive_0.6.1_{name}.7z", b"0.6.1")
        for platform_id, name in (("1", "linux"), ("2", "windows"), ("3", "macos"))
    ]
    path = tmp_path / "versions.json"
    path.write_text(
        manifest_text(
            [
                version_entry("1", "0.5.0", True, []),
                version_entry("2", "0.6.1", True, downloads),
            ]
        ),
        encoding="utf-8",
    )
    return path


def _init(tmp_path: Path, manifest: Path):
    return runner.invoke(
        app_module.app,
        ["init", "--manifest", str(manifest), "--data-dir", str(tmp_path / "data"), "--force"],
    )


def test_version_flag():
    result = runner.invoke(app_module.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_configuration(tmp_path: Path, config_file: Path, manifest: Path):
    result = _init(tmp_path, manifest)

    assert result.exit_code == 0, result.output
    assert config_file.is_file()
    assert f"manifest_source = {manifest}" in config_file.read_text()


def test_validate_reports_valid_configuration(tmp_path: Path, config_file: Path, manifest: Path):
    _init(tmp_path, manifest)

    result = runner.invoke(app_module.app, ["validate"])

    assert result.exit_code == 0
    assert "Configuration is valid" in result.output


def test_validate_rejects_bad_values(tmp_path: Path, config_file: Path, manifest: Path):
    _init(tmp_path, manifest)
    config_file.write_text(config_file.read_text() + "download_attempts = 0\n")

    result = runner.invoke(app_module.app, ["validate"])

    assert result.exit_code == 1


def test_versions_lists_manifest_entries(tmp_path: Path, config_file: Path, manifest: Path):
    _init(tmp_path, manifest)

    result = runner.invoke(app_module.app, ["versions", "--all"])

    assert result.exit_code == 0, result.output
    assert "0.6.1" in result.output
    assert "0.5.0" in result.output


def test_installed_lists_unpacked_releases(tmp_path: Path, config_file: Path, manifest: Path):
    _init(tmp_path, manifest)

    empty = runner.invoke(app_module.app, ["installed"])
    (tmp_path / "data" / "installed" / "thrive_0.6.1_linux").mkdir(parents=True)
    listed = runner.invoke(app_module.app, ["installed"])

    assert "No releases are installed" in empty.output
    assert "thrive_0.6.1_linux" in listed.output


def test_clear_downloads_empties_staging(tmp_path: Path, config_file: Path, manifest: Path):
    _init(tmp_path, manifest)
    staged = tmp_path / "data" / "staging" / "download" / "thrive_0.6.1_linux.7z"
    staged.parent.mkdir(parents=True)
    staged.write_bytes(b"partial")

    result = runner.invoke(app_module.app, ["--clear-downloads"])

    assert result.exit_code == 0
    assert not staged.exists()


def test_show_config_without_file_fails(config_file: Path):
    result = runner.invoke(app_module.app, ["--show-config"])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_diagnose_passes_with_local_manifest(tmp_path: Path, config_file: Path, manifest: Path):
    _init(tmp_path, manifest)

    result = runner.invoke(app_module.app, ["diagnose"])

    assert result.exit_code == 0, result.output
    assert "All checks passed" in result.output


def test_single_verbose_flag_enables_debug_logging(
    tmp_path: Path, config_file: Path, manifest: Path
):
    _init(tmp_path, manifest)
    logger = logging.getLogger("thrive_launcher")
    original = logger.level
    try:
        result = runner.invoke(app_module.app, ["-v", "installed"])
        assert result.exit_code == 0, result.output
        assert logger.level == logging.DEBUG

        runner.invoke(app_module.app, ["installed"])
        assert logger.level == logging.INFO
    finally:
        logger.setLevel(original)
