"""
Aggregates the progress of all pipeline jobs into a single percentage.

Jobs report progress very differently: ffmpeg video passes print running frame
counters, the audio job is only known to be done or not, and the muxer is a
short copy step. `ProgressModel` turns those signals into one weighted,
monotonically non-decreasing total, and `FrameParser` extracts frame deltas
from the log lines of one job.
"""
import math
import re
import threading
from typing import Callable, Optional

from loguru import logger

from ..config.video import FRAME_LINE_PATTERN
from ..domain.job import StageWeights

_FRAME_LINE = re.compile(FRAME_LINE_PATTERN)


class FrameParser:
    """
    Turns the cumulative `frame=N` counters of one ffmpeg run into deltas.

    Each job owns its own parser; the baseline is never shared.
    """

    def __init__(self):
        self.last_frame = 0

    def parse(self, line: str) -> int:
        """Returns the number of frames done since the previous counter line, or 0."""
        match = _FRAME_LINE.match(line)
        if not match:
            return 0
        frame = int(match.group(1))
        delta = frame - self.last_frame
        self.last_frame = frame
        return delta


class ProgressModel:
    """
    Weighted, bounded completion total of one pipeline run.

    The total never decreases and stays at or below `100 - mux weight` until
    the muxer completes, which forces it to exactly 100. All updates are
    serialized so job callbacks may call in from any thread.

    Attributes:
        weights: The stage weights of the plan.
        expected_frames: Estimated frame count of the whole output; the two
                         passes each see this many frames in total across
                         all partitions.
    """

    def __init__(
        self,
        weights: StageWeights,
        expected_frames: int,
        on_change: Optional[Callable[[int], None]] = None,
    ):
        self.weights = weights
        self.expected_frames = max(1, expected_frames)
        self._on_change = on_change
        self._total = 0.0
        self._percent = 0
        self._lock = threading.Lock()

    @property
    def total(self) -> float:
        with self._lock:
            return self._total

    @property
    def percent(self) -> int:
        """Integer percentage, 0-100, as shown to observers."""
        with self._lock:
            return self._percent

    def add_frames(self, frames: int, pass_number: int) -> int:
        """Credits `frames` encoded frames of the given pass (1 or 2)."""
        if frames <= 0:
            return self.percent
        weight = self.weights.pass1 if pass_number == 1 else self.weights.pass2
        return self._add(frames / self.expected_frames * weight)

    def complete_audio(self) -> int:
        return self._add(self.weights.audio)

    def complete_mux(self) -> int:
        with self._lock:
            self._total = 100.0
            changed = self._publish()
        return self._notify(changed)

    def _add(self, increment: float) -> int:
        with self._lock:
            # Late increments after the muxer finished must not pull 100 back down.
            self._total = max(self._total, min(self._total + increment, self.weights.ceiling))
            changed = self._publish()
        return self._notify(changed)

    def _publish(self) -> Optional[int]:
        percent = math.floor(self._total)
        if percent == self._percent:
            return None
        self._percent = percent
        return percent

    def _notify(self, changed: Optional[int]) -> int:
        if changed is None:
            return self.percent
        logger.debug(f"Progress: {changed}%")
        if self._on_change:
            self._on_change(changed)
        return changed
