"""
This module contains helper functions for formatting data into human-readable strings.
They are used for the main log timeline (elapsed times, sizes), for ffmpeg
argument values and for the name of the final output file.
"""

import shlex
from datetime import datetime
from pathlib import Path
from typing import Iterable

from ..config.common import OUTPUT_EXTENSION


def format_number(value: float) -> str:
    """
    Renders a number as an ffmpeg argument.

    Integral values lose their fractional part ("10" rather than "10.0"),
    other values keep Python's shortest round-trip representation.
    """
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def show_time(seconds: float, sep: str = ":") -> str:
    """
    Formats a number of seconds as "HH:MM:SS", with fractions when present.

    Args:
        seconds: The duration to format; negative values are shown as zero.
        sep: Separator between the fields. Use "." to get a string that is
             safe inside file names.

    Returns:
        For example "00:01:05" for 65 seconds, or "00:00:02.5" for 2.5.
    """
    millis = round(max(0.0, float(seconds)) * 1000)
    whole, millis = divmod(millis, 1000)
    hours, remainder = divmod(whole, 3600)
    minutes, secs = divmod(remainder, 60)
    text = f"{hours:02}{sep}{minutes:02}{sep}{secs:02}"
    if millis:
        text += f".{millis:03}".rstrip("0")
    return text


def show_now() -> str:
    """Current wall-clock time as "HH:MM:SS", used to stamp timeline lines."""
    return datetime.now().strftime("%H:%M:%S")


def formatted_size(size_bytes: int) -> str:
    """
    Converts a size in bytes to a human-readable string (e.g., B, KB, MB, GB, TB).

    Args:
        size_bytes: The size of the file in bytes.

    Returns:
        A formatted string with the appropriate unit.
        For example, 1536 becomes "1.50 KB", and 2097152 becomes "2 MB".
    """
    if size_bytes < 0:
        size_bytes = 0
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    factor = 1024.0
    size = float(size_bytes)
    for unit in units:
        if size < factor:
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.2f} {unit}".replace(".00", "")
        size /= factor

    return f"{size:.2f} {units[-1]}".replace(".00", "")


def format_cmd(args: Iterable[str], program: str = "ffmpeg") -> str:
    """The command line as it would be typed in a shell, prefixed with "$ "."""
    return "$ " + shlex.join([program, *args])


def output_basename(source_name: str) -> str:
    """
    Strips the extension of the source name, unless it is already ours.

    Keeping ".webm" means a WebM source never ends up with the same name as
    its re-encoded output.
    """
    path = Path(source_name)
    if path.suffix and path.suffix[1:] != OUTPUT_EXTENSION:
        return path.stem
    return path.name


def output_filename(
    source_name: str, start: float, duration: float, trimmed: bool
) -> str:
    """
    Proposes a file name for the encoded output.

    Example:
        output_filename("movie.mkv", 60, 30, True) -> "movie_00.01.00-00.01.30.webm"
    """
    name = output_basename(source_name)
    if trimmed:
        name += f"_{show_time(start, sep='.')}-{show_time(start + duration, sep='.')}"
    return f"{name}.{OUTPUT_EXTENSION}"
