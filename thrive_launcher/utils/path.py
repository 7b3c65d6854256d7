"""
Utilities for checking the file and folder names that end up on disk.
"""

from pathvalidate import ValidationError, validate_filename


def validate_plain_name(value: str) -> str:
    """
    Returns ``value`` stripped, or raises ValueError unless it is a single
    file name that is valid on every platform.
    """
    value = value.strip()
    try:
        validate_filename(value, platform="universal")
    except ValidationError as e:
        raise ValueError(f"'{value}' is not a valid file name: {e}") from e
    if value in (".", ".."):
        raise ValueError(f"'{value}' is not a valid file name.")
    return value
