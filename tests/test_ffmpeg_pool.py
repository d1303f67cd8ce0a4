import os
import sys

import pytest

from split_encoder.domain.exceptions import SubstrateError
from split_encoder.domain.job import FileRef
from split_encoder.domain.options import OptionSet
from split_encoder.services.ffmpeg_pool import FFmpegPool

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")


def fake_ffmpeg(tmp_path, body):
    script = tmp_path / "ffmpeg"
    script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    os.chmod(script, 0o755)
    return str(script)


def test_job_returns_new_files_and_streams_log(tmp_path):
    ffmpeg_path = fake_ffmpeg(
        tmp_path,
        "printf 'frame=    1\\rframe=    2\\n' >&2\n"
        "cat list.txt stats.log > out.webm\n",
    )
    pool = FFmpegPool(1, ffmpeg_path=ffmpeg_path, work_root=tmp_path / "work")
    lines = []
    future = pool.submit_job(
        OptionSet.from_args(["-i", "list.txt", "out.webm"]),
        lines.append,
        [FileRef(name="list.txt", data=b"list-")],
        {"stats.log": b"stats"},
    )
    result = future.result(timeout=30)
    pool.teardown()

    assert [ref.name for ref in result.files] == ["out.webm"]
    assert result.files[0].data == b"list-stats"
    assert result.state == {"out.webm": b"list-stats"}
    assert lines == ["frame=    1", "frame=    2"]
    assert list((tmp_path / "work").iterdir()) == []


def test_non_zero_exit_is_a_substrate_error(tmp_path):
    pool = FFmpegPool(1, ffmpeg_path=fake_ffmpeg(tmp_path, "exit 3\n"))
    future = pool.submit_job(OptionSet.from_args(["-"]), lambda line: None)
    with pytest.raises(SubstrateError, match="code 3"):
        future.result(timeout=30)
    pool.teardown()


def test_teardown_is_idempotent_and_blocks_new_jobs(tmp_path):
    pool = FFmpegPool(1, ffmpeg_path=fake_ffmpeg(tmp_path, "exit 0\n"))
    pool.teardown()
    pool.teardown()
    with pytest.raises(SubstrateError):
        pool.submit_job(OptionSet.from_args(["-"]), lambda line: None)
