"""
Ordering of release labels such as ``0.6.1`` or ``0.5.0-rc1``.
"""

import re
from typing import Any

from packaging.version import InvalidVersion
from packaging.version import Version as PackagingVersion

_NUMBER_PATTERN = re.compile(r"\d+")


def release_sort_key(label: str) -> tuple[int, Any]:
    """
    Builds a sort key for a release label.

    PEP 440 compatible labels are compared with ``packaging``. Anything else
    falls back to the tuple of its numeric components and always sorts below
    a parseable label.
    """
    try:
        return (1, PackagingVersion(label))
    except InvalidVersion:
        numbers = tuple(int(part) for part in _NUMBER_PATTERN.findall(label))
        return (0, numbers)
