import pytest

from thrive_launcher.utils.path import validate_plain_name


def test_plain_name_is_stripped():
    assert validate_plain_name("  thrive_0.6.1_linux ") == "thrive_0.6.1_linux"


@pytest.mark.parametrize("name", ["", ".", "..", "bin/Thrive", "bin\\Thrive", "Thr:ive", "bin?"])
def test_names_invalid_on_some_platform_are_rejected(name: str):
    with pytest.raises(ValueError):
        validate_plain_name(name)
