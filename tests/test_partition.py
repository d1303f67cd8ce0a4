import pytest

from split_encoder.domain.exceptions import PlanningError
from split_encoder.domain.partition import (
    Partition,
    clamp_thread_count,
    plan_partitions,
    resolve_thread_count,
)


def test_short_output_clamps_thread_count_and_folds_remainder():
    partitions = plan_partitions(3, 0, 2.5)
    assert partitions == [
        Partition(index=1, start=0, duration=1, is_last=False),
        Partition(index=2, start=1, duration=1.5, is_last=True),
    ]


def test_partitions_are_offset_by_start():
    partitions = plan_partitions(4, 5, 10)
    assert [p.start for p in partitions] == [5, 7, 9, 11]
    assert [p.duration for p in partitions] == [2, 2, 2, 4]
    assert [p.is_last for p in partitions] == [False, False, False, True]


def test_single_partition_covers_everything():
    (partition,) = plan_partitions(1, 0, 10)
    assert partition == Partition(index=1, start=0, duration=10, is_last=True)


def test_sub_second_output_gets_one_partition():
    (partition,) = plan_partitions(4, 0, 0.5)
    assert partition.duration == 0.5
    assert partition.is_last


def test_partitions_cover_the_range_exactly():
    partitions = plan_partitions(3, 12, 10.7)
    assert sum(p.duration for p in partitions) == pytest.approx(10.7)
    last = partitions[-1]
    assert last.start + last.duration == pytest.approx(22.7)


@pytest.mark.parametrize("duration", [0, -3])
def test_non_positive_duration_is_rejected(duration):
    with pytest.raises(PlanningError):
        plan_partitions(4, 0, duration)


@pytest.mark.parametrize(
    "requested, expected",
    [(1, 1), ("3", 3), (8, 8), (0, 4), (9, 4), ("abc", 4), (2.5, 4), (None, 4)],
)
def test_resolve_thread_count(requested, expected):
    assert resolve_thread_count(requested) == expected


def test_clamp_thread_count():
    assert clamp_thread_count(4, 100) == 4
    assert clamp_thread_count(4, 2.9) == 2
    assert clamp_thread_count(4, 0.2) == 1
