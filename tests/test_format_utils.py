import pytest

from split_encoder.utils.format_utils import (
    format_cmd,
    format_number,
    formatted_size,
    output_filename,
    show_time,
)


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "00:00:00"), (65, "00:01:05"), (2.5, "00:00:02.5"), (3661.25, "01:01:01.25"), (-3, "00:00:00")],
)
def test_show_time(seconds, expected):
    assert show_time(seconds) == expected


def test_format_number():
    assert format_number(10.0) == "10"
    assert format_number(1.5) == "1.5"


def test_formatted_size():
    assert formatted_size(0) == "0 B"
    assert formatted_size(512) == "512 B"
    assert formatted_size(1536) == "1.50 KB"
    assert formatted_size(2097152) == "2 MB"


def test_format_cmd_quotes_arguments():
    assert format_cmd(["-i", "my movie.mkv"]) == "$ ffmpeg -i 'my movie.mkv'"


def test_output_filename():
    assert output_filename("movie.mkv", 60, 30, True) == "movie_00.01.00-00.01.30.webm"
    assert output_filename("movie.mkv", 0, 100, False) == "movie.webm"
    assert output_filename("clip.webm", 0, 10, False) == "clip.webm.webm"
