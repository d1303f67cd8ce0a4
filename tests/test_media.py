from pathlib import Path

import ffmpeg
import pytest

from split_encoder.domain.exceptions import MediaProbeError
from split_encoder.domain.media import MediaInfo, parse_frame_rate, parse_time, parse_time_or

PROBE = {
    "streams": [
        {"codec_type": "audio", "duration": "9.9"},
        {"codec_type": "video", "avg_frame_rate": "30000/1001", "r_frame_rate": "30/1"},
    ],
    "format": {"duration": "10.010000"},
}


@pytest.mark.parametrize(
    "value, expected",
    [("90", 90), ("1.5", 1.5), ("01:30", 90), ("01:00:02.5", 3602.5)],
)
def test_parse_time(value, expected):
    assert parse_time(value) == expected


@pytest.mark.parametrize("value", ["abc", "-5", "1:2:3:4"])
def test_parse_time_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_parse_time_or_falls_back():
    assert parse_time_or(None, 7) == 7
    assert parse_time_or("nonsense", 7) == 7
    assert parse_time_or("3", 7) == 3


def test_parse_frame_rate():
    assert parse_frame_rate("30000/1001") == pytest.approx(29.97, abs=0.01)
    assert parse_frame_rate("0/0") == 0.0
    assert parse_frame_rate(None) == 0.0


def test_from_probe_data():
    info = MediaInfo.from_probe_data(Path("in.mkv"), PROBE)
    assert info.duration == pytest.approx(10.01)
    assert info.fps == pytest.approx(29.97, abs=0.01)


def test_from_probe_data_falls_back_to_r_frame_rate():
    probe = {
        "streams": [{"codec_type": "video", "avg_frame_rate": "0/0", "r_frame_rate": "25/1"}],
        "format": {"duration": "4"},
    }
    assert MediaInfo.from_probe_data(Path("in.mkv"), probe).fps == 25


def test_from_probe_data_requires_video():
    with pytest.raises(MediaProbeError):
        MediaInfo.from_probe_data(Path("in.mka"), {"streams": [{"codec_type": "audio"}]})


def test_from_probe_uses_ffprobe(tmp_path, monkeypatch):
    source = tmp_path / "in.mkv"
    source.write_bytes(b"\x00")
    monkeypatch.setattr(ffmpeg, "probe", lambda filename: PROBE)
    info = MediaInfo.from_probe(source)
    assert info.path == source.resolve()
    assert info.duration == pytest.approx(10.01)


def test_from_probe_missing_file(tmp_path):
    with pytest.raises(MediaProbeError):
        MediaInfo.from_probe(tmp_path / "missing.mkv")
