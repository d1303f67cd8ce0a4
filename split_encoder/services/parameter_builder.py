"""
Derives the command line of every pipeline stage from one base option set.

The user supplies a single ffmpeg option string. From it this module builds:

- the options of the first and second video pass,
- the options of the independent audio job,
- the fixed muxer command and its concatenation list,
- and, per partition, the final pass options with seek, duration, subtitle
  delay and output name filled in.

None of the functions mutate their input; `OptionSet` operations always
return new instances, so deriving twice from the same base gives identical
results.
"""
import re

from ..config.audio import AUDIO_OUTPUT_NAME
from ..config.common import CONCAT_LIST_NAME, MUXER_OUTPUT_NAME, NULL_OUTPUT
from ..config.video import (
    PARTITION_OUTPUT_TEMPLATE,
    PASS1_SPEED,
    SETPTS_DELAY_PATTERN,
    SUBTITLES_FILTER_PATTERN,
    VIDEO_ONLY_FLAGS,
)
from ..domain.job import FileRef, JobStage
from ..domain.options import OptionSet
from ..domain.partition import Partition
from ..utils.format_utils import format_number

_SETPTS_DELAY = re.compile(SETPTS_DELAY_PATTERN)


def get_common_params(params: OptionSet) -> OptionSet:
    """Thread count is handled by partitioning, not by each ffmpeg process."""
    return params.remove("-threads").prepend("-hide_banner")


def get_video_params_pass1(params: OptionSet) -> OptionSet:
    params = params.extend("-an")
    params = params.fix("-speed", PASS1_SPEED, append=True)
    return params.extend("-pass", "1", "-f", "null")


def get_video_params_pass2(params: OptionSet) -> OptionSet:
    # The output name depends on the partition and is added at materialization.
    return params.extend("-an", "-pass", "2")


def get_audio_params(params: OptionSet) -> OptionSet:
    for flag in VIDEO_ONLY_FLAGS:
        params = params.remove(flag)
    return params.extend("-vn", AUDIO_OUTPUT_NAME)


def get_muxer_params(audio: bool) -> OptionSet:
    params = OptionSet.from_args(["-hide_banner", "-f", "concat", "-i", CONCAT_LIST_NAME])
    if audio:
        params = params.extend("-i", AUDIO_OUTPUT_NAME)
    return params.extend("-c", "copy", MUXER_OUTPUT_NAME)


def get_concat_list(thread_count: int) -> FileRef:
    """The concat demuxer input listing the partition outputs in order."""
    lines = [
        f"file '{partition_output_name(index)}'" for index in range(1, thread_count + 1)
    ]
    return FileRef(name=CONCAT_LIST_NAME, data="\n".join(lines).encode("utf-8"))


def partition_output_name(index: int) -> str:
    return PARTITION_OUTPUT_TEMPLATE.format(index=index)


def burns_subtitles(params: OptionSet) -> bool:
    """True when the video filter chain renders a subtitle track into the picture."""
    return re.search(SUBTITLES_FILTER_PATTERN, params.get("-vf", "")) is not None


def shift_subtitle_delay(vfilters: str, shift: float) -> str:
    """
    Adds `shift` seconds to every `setpts=PTS+<delay>/TB` clause of a filter chain.

    Each partition is encoded from its own seek point, so a subtitle delay
    expressed relative to the output start has to grow by the time that
    precedes the partition. Clauses that do not match exactly are kept as
    they are; chains with escaped commas are not understood.
    """

    def shift_clause(clause: str) -> str:
        match = _SETPTS_DELAY.match(clause)
        if not match:
            return clause
        delay = float(match.group(1)) + shift
        return f"setpts=PTS+{format_number(delay)}/TB"

    return ",".join(shift_clause(clause) for clause in vfilters.split(","))


def get_part_params(
    params: OptionSet,
    partition: Partition,
    stage: JobStage,
    part_duration: float,
    burn_subs: bool = False,
) -> OptionSet:
    """
    Materializes a stage option set for one partition.

    Args:
        params: Pass-1 or pass-2 options from `get_video_params_pass1/2`.
        partition: The slice to encode.
        stage: `JobStage.PASS1` (null output) or `JobStage.PASS2`
               (`<index>.webm` output).
        part_duration: Duration of the non-last partitions, used to shift
                       subtitle delays.
        burn_subs: Whether the filter chain burns subtitles in.
    """
    params = params.fix("-ss", format_number(partition.start), insert=True)
    # The last partition runs to the end of the range unless the user limited
    # the duration; a computed "-t" could cut the final frames on rounding.
    if not partition.is_last or params.has("-t"):
        params = params.fix("-t", format_number(partition.duration), append=True)
    if burn_subs:
        shift = part_duration * (partition.index - 1)
        params = params.fix("-vf", lambda vfilters: shift_subtitle_delay(vfilters, shift))
    if stage is JobStage.PASS1:
        return params.extend(NULL_OUTPUT)
    return params.extend(partition_output_name(partition.index))
