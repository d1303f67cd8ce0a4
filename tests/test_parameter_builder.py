from split_encoder.domain.job import JobStage
from split_encoder.domain.options import OptionSet
from split_encoder.domain.partition import Partition
from split_encoder.services.parameter_builder import (
    burns_subtitles,
    get_audio_params,
    get_common_params,
    get_concat_list,
    get_muxer_params,
    get_part_params,
    get_video_params_pass1,
    get_video_params_pass2,
    shift_subtitle_delay,
)

BASE = OptionSet.from_string(
    "-i in.mkv -c:v libvpx-vp9 -b:v 1M -threads 4 -c:a libopus -b:a 96k"
)
COMMON_ARGS = [
    "-hide_banner", "-i", "in.mkv", "-c:v", "libvpx-vp9", "-b:v", "1M",
    "-c:a", "libopus", "-b:a", "96k",
]


def test_common_params_drop_threads_and_hide_banner():
    assert get_common_params(BASE).to_args() == COMMON_ARGS


def test_pass1_params():
    params = get_video_params_pass1(get_common_params(BASE))
    assert params.to_args() == COMMON_ARGS + [
        "-an", "-speed", "4", "-pass", "1", "-f", "null"
    ]


def test_pass1_overrides_user_speed_in_place():
    params = get_video_params_pass1(OptionSet.from_string("-i in.mkv -speed 1 -b:v 1M"))
    assert params.to_args()[:6] == ["-i", "in.mkv", "-speed", "4", "-b:v", "1M"]


def test_pass2_params():
    params = get_video_params_pass2(get_common_params(BASE))
    assert params.to_args() == COMMON_ARGS + ["-an", "-pass", "2"]


def test_audio_params_strip_video_only_flags():
    base = OptionSet.from_string("-i in.mkv -speed 1 -auto-alt-ref 1 -lag-in-frames 25 -b:a 96k")
    params = get_audio_params(base)
    assert params.to_args() == ["-i", "in.mkv", "-b:a", "96k", "-vn", "audio.webm"]


def test_muxer_params():
    assert get_muxer_params(True).to_args() == [
        "-hide_banner", "-f", "concat", "-i", "list.txt",
        "-i", "audio.webm", "-c", "copy", "out.webm",
    ]
    assert get_muxer_params(False).to_args() == [
        "-hide_banner", "-f", "concat", "-i", "list.txt", "-c", "copy", "out.webm",
    ]


def test_concat_list_lists_partitions_in_order():
    ref = get_concat_list(3)
    assert ref.name == "list.txt"
    assert ref.data == b"file '1.webm'\nfile '2.webm'\nfile '3.webm'"


def test_part_params_for_middle_partition():
    pass1 = get_video_params_pass1(get_common_params(BASE))
    partition = Partition(index=2, start=12, duration=10, is_last=False)
    args = get_part_params(pass1, partition, JobStage.PASS1, 10).to_args()
    assert args[:2] == ["-ss", "12"]
    assert args[-3:] == ["-t", "10", "-"]


def test_last_partition_runs_to_the_end_without_user_duration():
    pass2 = get_video_params_pass2(get_common_params(BASE))
    partition = Partition(index=3, start=20, duration=10.5, is_last=True)
    params = get_part_params(pass2, partition, JobStage.PASS2, 10)
    assert not params.has("-t")
    assert params.to_args()[-1] == "3.webm"


def test_last_partition_keeps_a_user_duration():
    base = OptionSet.from_string("-i in.mkv -t 30 -b:v 1M")
    pass2 = get_video_params_pass2(get_common_params(base))
    partition = Partition(index=3, start=20, duration=10, is_last=True)
    params = get_part_params(pass2, partition, JobStage.PASS2, 10)
    assert params.get("-t") == "10"
    assert params.to_args().count("-t") == 1


def test_user_seek_is_replaced_in_place():
    base = OptionSet.from_string("-ss 60 -i in.mkv -t 30")
    pass1 = get_video_params_pass1(get_common_params(base))
    partition = Partition(index=2, start=75, duration=15, is_last=True)
    args = get_part_params(pass1, partition, JobStage.PASS1, 15).to_args()
    assert args[:5] == ["-hide_banner", "-ss", "75", "-i", "in.mkv"]
    assert args.count("-ss") == 1


def test_subtitle_delay_is_shifted_per_partition():
    base = OptionSet.from_string("-i in.mkv -vf setpts=PTS+2/TB,subtitles=in.mkv,setpts=PTS-STARTPTS")
    assert burns_subtitles(base)
    partition = Partition(index=3, start=8, duration=4, is_last=False)
    params = get_part_params(base, partition, JobStage.PASS2, 4, burn_subs=True)
    assert params.get("-vf") == "setpts=PTS+10/TB,subtitles=in.mkv,setpts=PTS-STARTPTS"


def test_subtitle_delay_untouched_without_burned_subtitles():
    base = OptionSet.from_string("-i in.mkv -vf setpts=PTS+2/TB")
    assert not burns_subtitles(base)
    partition = Partition(index=3, start=8, duration=4, is_last=False)
    params = get_part_params(base, partition, JobStage.PASS2, 4, burn_subs=False)
    assert params.get("-vf") == "setpts=PTS+2/TB"


def test_shift_subtitle_delay_keeps_fractions():
    assert shift_subtitle_delay("setpts=PTS+0.5/TB", 4) == "setpts=PTS+4.5/TB"
    assert shift_subtitle_delay("scale=640:-1", 4) == "scale=640:-1"


def test_derivation_is_repeatable():
    pass1 = get_video_params_pass1(get_common_params(BASE))
    partition = Partition(index=1, start=0, duration=5, is_last=False)
    first = get_part_params(pass1, partition, JobStage.PASS1, 5)
    second = get_part_params(pass1, partition, JobStage.PASS1, 5)
    assert first == second
    assert not pass1.has("-ss")
