"""
Turns an encode request into a fully materialized `PipelinePlan`.

This is where the partition planner and the parameter builder meet: the
request's options decide the output range, the number of partitions and
whether audio is encoded, and every job of the dependency graph gets its
final command line here, before anything runs.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from loguru import logger

from ..config.audio import AUDIO_OUTPUT_NAME, DISABLE_AUDIO_FLAG
from ..config.common import MUXER_OUTPUT_NAME
from ..domain.exceptions import PlanningError
from ..domain.job import (
    FileRef,
    Job,
    JobStage,
    PipelinePlan,
    StageWeights,
    expected_frame_count,
)
from ..domain.media import parse_time_or
from ..domain.options import OptionSet
from ..domain.partition import (
    base_partition_duration,
    plan_partitions,
    resolve_thread_count,
)
from ..services.parameter_builder import (
    burns_subtitles,
    get_audio_params,
    get_common_params,
    get_concat_list,
    get_muxer_params,
    get_part_params,
    get_video_params_pass1,
    get_video_params_pass2,
    partition_output_name,
)
from ..utils.format_utils import output_filename

AUDIO_KEY = "Audio"
MUXER_KEY = "Muxer"


def video_log_key(index: int) -> str:
    return f"Video {index}"


def video_job_key(index: int, pass_number: int) -> str:
    return f"{video_log_key(index)} (pass {pass_number})"


@dataclass(frozen=True)
class EncodeRequest:
    """
    Everything the pipeline needs to know about one encode.

    Attributes:
        options: The user's base ffmpeg options, including the `-i` input.
        media_duration: Duration of the source in seconds.
        fps: Frame rate of the source's video stream.
        inputs: Files the encode jobs read (source media, subtitle font).
        source_name: Original name of the source, for the output name.
        thread_count: Requested partition count; when None, the `-threads`
                      value of `options` is used.
    """

    options: OptionSet
    media_duration: float
    fps: float
    inputs: Tuple[FileRef, ...] = ()
    source_name: str = "output"
    thread_count: Optional[Any] = None

    @property
    def audio(self) -> bool:
        return not self.options.has(DISABLE_AUDIO_FLAG)

    @property
    def start_offset(self) -> float:
        return parse_time_or(self.options.get("-ss"), 0)

    @property
    def output_duration(self) -> float:
        """`-t` when given, otherwise the rest of the media after the start."""
        return parse_time_or(self.options.get("-t"), self.media_duration - self.start_offset)

    @property
    def trimmed(self) -> bool:
        return self.options.has("-ss") or self.options.has("-t")


def build_plan(request: EncodeRequest) -> PipelinePlan:
    """
    Materializes the job graph of `request`.

    For every partition `i` there is a pass-1 job and a pass-2 job depending
    on it; an audio job without dependencies is added when audio is enabled;
    the muxer depends on every pass-2 job and on the audio job.

    Raises:
        PlanningError: If the request resolves to a non-positive duration.
    """
    params = request.options
    start_offset = request.start_offset
    output_duration = request.output_duration
    if output_duration <= 0:
        raise PlanningError(
            f"Nothing to encode: start {start_offset}s, duration {output_duration}s."
        )

    requested = request.thread_count if request.thread_count is not None else params.get("-threads")
    partitions = plan_partitions(resolve_thread_count(requested), start_offset, output_duration)
    part_duration = base_partition_duration(len(partitions), output_duration)
    audio = request.audio
    burn_subs = burns_subtitles(params)

    common_params = get_common_params(params)
    video_params1 = get_video_params_pass1(common_params)
    video_params2 = get_video_params_pass2(common_params)

    jobs: List[Job] = []
    for partition in partitions:
        log_key = video_log_key(partition.index)
        pass1_key = video_job_key(partition.index, 1)
        jobs.append(
            Job(
                key=pass1_key,
                log_key=log_key,
                stage=JobStage.PASS1,
                options=get_part_params(
                    video_params1, partition, JobStage.PASS1, part_duration, burn_subs
                ),
                inputs=request.inputs,
                partition=partition,
            )
        )
        jobs.append(
            Job(
                key=video_job_key(partition.index, 2),
                log_key=log_key,
                stage=JobStage.PASS2,
                options=get_part_params(
                    video_params2, partition, JobStage.PASS2, part_duration, burn_subs
                ),
                depends_on=frozenset({pass1_key}),
                inputs=request.inputs,
                partition=partition,
                output_name=partition_output_name(partition.index),
            )
        )

    mux_deps = {video_job_key(p.index, 2) for p in partitions}
    if audio:
        audio_params = get_audio_params(common_params)
        jobs.append(
            Job(
                key=AUDIO_KEY,
                log_key=AUDIO_KEY,
                stage=JobStage.AUDIO,
                options=audio_params,
                inputs=request.inputs,
                output_name=AUDIO_OUTPUT_NAME,
            )
        )
        mux_deps.add(AUDIO_KEY)

    concat_list = get_concat_list(len(partitions))
    muxer_params = get_muxer_params(audio)
    jobs.append(
        Job(
            key=MUXER_KEY,
            log_key=MUXER_KEY,
            stage=JobStage.MUX,
            options=muxer_params,
            depends_on=frozenset(mux_deps),
            inputs=(concat_list,),
            output_name=MUXER_OUTPUT_NAME,
        )
    )

    plan = PipelinePlan(
        jobs=tuple(jobs),
        partitions=tuple(partitions),
        concat_list=concat_list,
        mux_key=MUXER_KEY,
        audio=audio,
        start_offset=start_offset,
        output_duration=output_duration,
        expected_frames=expected_frame_count(output_duration, request.fps),
        weights=StageWeights.for_plan(audio),
        output_filename=output_filename(
            request.source_name, start_offset, output_duration, request.trimmed
        ),
        base_options=params,
    )
    logger.debug(
        f"Planned {len(partitions)} partition(s) of {part_duration}s, audio={audio}, "
        f"{plan.expected_frames} expected frames."
    )
    return plan
