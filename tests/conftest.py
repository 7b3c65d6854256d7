from pathlib import Path

import pytest

from thrive_launcher.models.config import LauncherConfig


@pytest.fixture
def make_config(tmp_path: Path):
    """Builds a LauncherConfig rooted in the test's temporary folder."""

    def _make(**overrides) -> LauncherConfig:
        settings = {
            "data_dir": str(tmp_path / "data"),
            "config_path": str(tmp_path / "config"),
            "manifest_cache_days": 0,
        }
        settings.update(overrides)
        return LauncherConfig(**settings)

    return _make
