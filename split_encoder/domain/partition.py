"""
Partition planning: cutting the requested output range into time slices.

Each partition is encoded by its own two-pass chain, so the number of
partitions is the degree of video parallelism. Partitions have an integral
number of seconds, except the last one, which absorbs the remainder so that
the slices cover the output range exactly.
"""
import math
from dataclasses import dataclass
from typing import Any, List

from loguru import logger

from ..config.video import DEFAULT_VTHREADS, MAX_VTHREADS, MIN_VTHREADS
from .exceptions import PlanningError


@dataclass(frozen=True)
class Partition:
    """One contiguous slice of the output, 1-based `index`, times in seconds."""

    index: int
    start: float
    duration: float
    is_last: bool


def resolve_thread_count(requested: Any) -> int:
    """
    Validates a requested video thread count.

    Accepts ints and integer strings (as found in the `-threads` option).
    Anything that is not an integer in `[MIN_VTHREADS, MAX_VTHREADS]` falls
    back to `DEFAULT_VTHREADS`.
    """
    try:
        value = float(requested)
    except (TypeError, ValueError):
        return DEFAULT_VTHREADS
    if not value.is_integer() or not MIN_VTHREADS <= value <= MAX_VTHREADS:
        logger.debug(
            f"Thread count {requested!r} is not an integer in "
            f"[{MIN_VTHREADS}, {MAX_VTHREADS}]; using {DEFAULT_VTHREADS}."
        )
        return DEFAULT_VTHREADS
    return int(value)


def clamp_thread_count(thread_count: int, output_duration: float) -> int:
    """Limits the partition count so every partition lasts at least a second."""
    if thread_count > output_duration:
        return max(1, math.floor(output_duration))
    return max(1, thread_count)


def base_partition_duration(thread_count: int, output_duration: float) -> int:
    return math.floor(output_duration / thread_count)


def plan_partitions(
    thread_count: int, start_offset: float, output_duration: float
) -> List[Partition]:
    """
    Splits `[start_offset, start_offset + output_duration)` into partitions.

    Args:
        thread_count: Requested number of partitions, already validated with
                      `resolve_thread_count`. It is clamped to
                      `floor(output_duration)` here.
        start_offset: Absolute start of the output in the source, >= 0.
        output_duration: Length of the output in seconds, > 0.

    Returns:
        The partitions in order. Partitions `1..N-1` last
        `floor(output_duration / N)` seconds; the last one gets the rest.

    Raises:
        PlanningError: If `output_duration` is not positive.
    """
    if output_duration <= 0:
        raise PlanningError(f"Output duration must be positive, got {output_duration}.")
    start_offset = max(0, start_offset)
    count = clamp_thread_count(thread_count, output_duration)
    part_duration = base_partition_duration(count, output_duration)
    partitions = []
    for index in range(1, count + 1):
        is_last = index == count
        duration = output_duration - part_duration * (count - 1) if is_last else part_duration
        partitions.append(
            Partition(
                index=index,
                start=start_offset + part_duration * (index - 1),
                duration=duration,
                is_last=is_last,
            )
        )
    return partitions
