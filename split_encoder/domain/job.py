"""
Defines the data model of a pipeline run: files, jobs, stage weights and the
materialized plan that ties them together.

Everything here is immutable once built. The plan is created once from an
encode request and handed to the executor; the executor keeps the mutable
per-job status on its side, so a plan can be inspected (or tested) without
ever being run.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, List, Optional, Tuple

from ..config.audio import AUDIO_PERCENT
from ..config.common import (
    JOB_STATUS_DONE,
    JOB_STATUS_FAILED,
    JOB_STATUS_PENDING,
    JOB_STATUS_RUNNING,
)
from ..config.video import MUXER_PERCENT, PASS1_SHARE, PASS2_SHARE
from .options import OptionSet
from .partition import Partition


class JobStage(Enum):
    PASS1 = "pass1"
    PASS2 = "pass2"
    AUDIO = "audio"
    MUX = "mux"


class JobStatus(Enum):
    PENDING = JOB_STATUS_PENDING
    RUNNING = JOB_STATUS_RUNNING
    DONE = JOB_STATUS_DONE
    FAILED = JOB_STATUS_FAILED


@dataclass(frozen=True)
class FileRef:
    """
    A file handed to or produced by a job.

    Either `path` points to a file on disk (the source media, a subtitle
    font) or `data` holds its content in memory (the concatenation list,
    intermediate partition outputs).
    """

    name: str
    path: Optional[Path] = None
    data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: Path) -> "FileRef":
        return cls(name=path.name, path=path)

    @property
    def size(self) -> int:
        if self.data is not None:
            return len(self.data)
        if self.path is not None and self.path.exists():
            return self.path.stat().st_size
        return 0


@dataclass
class JobResult:
    """What the execution substrate returns for a finished job.

    `state` is opaque to the pipeline; it is only threaded from a partition's
    first pass into its second pass.
    """

    files: List[FileRef] = field(default_factory=list)
    state: Any = None


@dataclass(frozen=True)
class Job:
    key: str
    log_key: str
    stage: JobStage
    options: OptionSet
    depends_on: FrozenSet[str] = frozenset()
    inputs: Tuple[FileRef, ...] = ()
    partition: Optional[Partition] = None
    output_name: Optional[str] = None


@dataclass(frozen=True)
class StageWeights:
    """
    Share of the 0-100 progress bar attributed to each stage.

    The weights are an approximation of how long each stage takes relative
    to the others: the muxer only copies streams, audio is cheap, and the
    first video pass is faster than the second.
    """

    pass1: float
    pass2: float
    audio: float
    mux: float

    @classmethod
    def for_plan(cls, audio: bool) -> "StageWeights":
        audio_percent = AUDIO_PERCENT if audio else 0
        video_percent = 100 - audio_percent - MUXER_PERCENT
        return cls(
            pass1=PASS1_SHARE * video_percent,
            pass2=PASS2_SHARE * video_percent,
            audio=audio_percent,
            mux=MUXER_PERCENT,
        )

    @property
    def ceiling(self) -> float:
        """Highest total reachable before the muxer finishes."""
        return 100 - self.mux


def expected_frame_count(output_duration: float, fps: float) -> int:
    return math.ceil(output_duration * fps)


@dataclass(frozen=True)
class PipelinePlan:
    """
    The fully materialized job graph of one encode.

    Attributes:
        jobs: All jobs in submission-priority order (video chains by
              partition, then audio, then the muxer).
        partitions: The time slices the video chains encode.
        concat_list: Synthetic file listing the partition outputs in order.
        mux_key: Key of the final job; its output is the pipeline artifact.
        audio: Whether an audio job is part of the plan.
        start_offset: Absolute start of the output in the source, seconds.
        output_duration: Length of the output, seconds.
        expected_frames: Estimated video frame count of the whole output.
        weights: Progress share of each stage.
        output_filename: Name proposed for the final artifact.
        base_options: The user's options the stage options were derived from.
    """

    jobs: Tuple[Job, ...]
    partitions: Tuple[Partition, ...]
    concat_list: FileRef
    mux_key: str
    audio: bool
    start_offset: float
    output_duration: float
    expected_frames: int
    weights: StageWeights
    output_filename: str
    base_options: OptionSet

    def job(self, key: str) -> Job:
        for job in self.jobs:
            if job.key == key:
                return job
        raise KeyError(key)

    @property
    def mux_job(self) -> Job:
        return self.job(self.mux_key)

    @property
    def thread_count(self) -> int:
        return len(self.partitions)
