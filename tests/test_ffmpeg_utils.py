import io

import pytest

from split_encoder.domain.exceptions import SubstrateError
from split_encoder.utils import ffmpeg_utils
from split_encoder.utils.ffmpeg_utils import iter_output_lines, resolve_ffmpeg


def test_iter_output_lines_splits_on_carriage_returns():
    stream = io.BytesIO(b"Input #0\nframe=  10 fps=1\rframe=  20 fps=2\r\nlast")
    assert list(iter_output_lines(stream, chunk_size=7)) == [
        "Input #0",
        "frame=  10 fps=1",
        "frame=  20 fps=2",
        "last",
    ]


def test_iter_output_lines_empty_stream():
    assert list(iter_output_lines(io.BytesIO(b""))) == []


def test_resolve_ffmpeg_raises_when_missing(monkeypatch):
    monkeypatch.setattr(ffmpeg_utils.shutil, "which", lambda *args, **kwargs: None)
    with pytest.raises(SubstrateError):
        resolve_ffmpeg(None)
