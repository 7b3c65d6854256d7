"""
Helper functions for formatting data into human-readable strings.
"""

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(bytes_size: int | float | None) -> str:
    """Formats a byte count, e.g. '145.3 MB'."""
    size = float(bytes_size or 0)
    if size <= 0:
        return "0 B"
    unit = 0
    while size >= 1024 and unit < len(_SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    return f"{size:.1f} {_SIZE_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    """Formats a duration, e.g. '2h 34m 12s'."""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    parts = [f"{value}{suffix}" for value, suffix in ((hours, "h"), (minutes, "m")) if value]
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_download_progress(received: int, total: int | None) -> str:
    """Describes download progress, e.g. '42.00% | 1.0 MB out of 2.4 MB'."""
    if not total:
        return f"{format_size(received)} received"
    percentage = received * 100 / total
    return f"{percentage:.2f}% | {format_size(received)} out of {format_size(total)}"
