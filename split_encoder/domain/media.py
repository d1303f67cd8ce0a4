"""
Source media metadata and time-value parsing.

The pipeline needs two facts about the source before it can plan anything:
its duration (to resolve "encode to the end") and the frame rate of its first
video stream (to estimate how many frames the video passes will report).
`MediaInfo` gets both from `ffprobe` through the ffmpeg-python library.
"""
import re
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path
from pprint import pformat

import ffmpeg
from loguru import logger

from .exceptions import MediaProbeError

_TIMECODE_PATTERN = r"(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)"


def parse_time(value: str) -> float:
    """
    Parses an ffmpeg time value into seconds.

    Two formats are accepted:
    1. Plain seconds, e.g. "3600.5".
    2. A timecode `[HH:]MM:SS[.fff]`, e.g. "01:00:00.500".

    Raises:
        ValueError: If the value matches neither format or is negative.
    """
    if value is None:
        raise ValueError("No time value given.")
    text = str(value).strip()
    try:
        seconds = float(text)
    except ValueError:
        match = re.fullmatch(_TIMECODE_PATTERN, text)
        if not match:
            raise ValueError(f"Could not parse time value: {value!r}") from None
        hours_str, minutes_str, seconds_str = match.groups()
        hours = int(hours_str) if hours_str else 0
        seconds = hours * 3600 + int(minutes_str) * 60 + float(seconds_str)
    if seconds < 0:
        raise ValueError(f"Time value must not be negative: {value!r}")
    return seconds


def parse_time_or(value: str | None, default: float) -> float:
    """`parse_time`, but returns `default` for a missing or unparsable value."""
    if value is None:
        return default
    try:
        return parse_time(value)
    except ValueError as e:
        logger.warning(f"{e}. Falling back to {default}.")
        return default


def parse_frame_rate(rate: str | None) -> float:
    """Converts an ffprobe rate like "30000/1001" into frames per second."""
    if not rate or rate == "0/0":
        return 0.0
    try:
        return float(Fraction(str(rate)))
    except (ValueError, ZeroDivisionError):
        logger.warning(f"Could not parse frame rate '{rate}'.")
        return 0.0


@dataclass(frozen=True)
class MediaInfo:
    """
    Duration and frame rate of a source media file.

    Attributes:
        path (Path): Absolute path of the probed file.
        duration (float): Container duration in seconds.
        fps (float): Average frame rate of the first video stream.
    """

    path: Path
    duration: float
    fps: float

    @classmethod
    def from_probe(cls, path: Path) -> "MediaInfo":
        """
        Probes `path` with `ffprobe` and extracts duration and frame rate.

        Raises:
            MediaProbeError: If the file is missing, cannot be probed, has no
                             positive duration or has no video stream.
        """
        path = path.resolve()
        if not path.exists():
            raise MediaProbeError(f"Media file not found: {path}")
        try:
            probe = ffmpeg.probe(str(path))
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", "replace") if isinstance(e.stderr, bytes) else e.stderr
            raise MediaProbeError(f"Failed to probe media file {path}: {stderr}") from e
        logger.trace(f"Probe data for {path.name}:\n{pformat(probe)}")
        return cls.from_probe_data(path, probe)

    @classmethod
    def from_probe_data(cls, path: Path, probe: dict) -> "MediaInfo":
        video_streams = [
            s for s in probe.get("streams", []) if s.get("codec_type") == "video"
        ]
        if not video_streams:
            raise MediaProbeError(f"No video stream found in {path}")
        video = video_streams[0]

        duration_val = probe.get("format", {}).get("duration") or video.get("duration")
        try:
            duration = parse_time(duration_val)
        except ValueError as e:
            raise MediaProbeError(f"No duration found for {path}: {e}") from e
        if duration <= 0:
            raise MediaProbeError(f"Non-positive duration {duration} for {path}")

        fps = parse_frame_rate(video.get("avg_frame_rate")) or parse_frame_rate(
            video.get("r_frame_rate")
        )
        return cls(path=path, duration=duration, fps=fps)
