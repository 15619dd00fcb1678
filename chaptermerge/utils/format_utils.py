"""
This module contains helper functions for formatting data into human-readable strings.
They are used mostly in log messages, to show elapsed times, chapter offsets and
file sizes in a consistent way.
"""

from datetime import timedelta


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta object into a "HH:MM:SS" string.

    Args:
        td_object: The timedelta object to format.

    Returns:
        A string representing the timedelta in HH:MM:SS format.
        For example, a timedelta of 7261 seconds becomes "02:01:01".
        Returns "00:00:00" if the input is not a valid timedelta object.
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00"

    total_seconds = int(td_object.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def format_milliseconds(milliseconds: int) -> str:
    """
    Formats a chapter offset in milliseconds as "HH:MM:SS.mmm".

    For example, 3_723_004 becomes "01:02:03.004".
    """
    if milliseconds < 0:
        milliseconds = 0
    total_seconds, millis = divmod(milliseconds, 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}.{millis:03}"


def formatted_size(size_bytes: int) -> str:
    """
    Converts a size in bytes to a human-readable string, used when logging the merged file.

    For example, 1536 becomes "1.50 KB" and 2097152 becomes "2 MB".
    """
    size = float(max(size_bytes, 0))
    if size < 1024:
        return f"{int(size)} B"

    for unit in ("KB", "MB", "GB", "TB"):
        size /= 1024.0
        if size < 1024 or unit == "TB":
            return f"{size:.2f} {unit}".replace(".00 ", " ")
