import argparse
from concurrent.futures import Future

import ffmpeg

import main
from main import build_base_options
from split_encoder.domain.job import FileRef, JobResult


def test_user_seek_moves_in_front_of_the_input(tmp_path):
    source = tmp_path / "in.mkv"
    options = build_base_options(source, "-b:v 1M -ss 30 -t 10")
    assert options.to_args() == ["-ss", "30", "-i", str(source), "-b:v", "1M", "-t", "10"]


def test_options_without_seek(tmp_path):
    source = tmp_path / "in.mkv"
    options = build_base_options(source, "-an -b:v 1M")
    assert options.to_args() == ["-i", str(source), "-an", "-b:v", "1M"]


class InlinePool:
    """Completes every job on submission with a file named after its output."""

    def __init__(self, max_workers, work_root=None):
        self.teardowns = 0

    def submit_job(self, options, on_log, input_files=(), prior_state=None):
        future = Future()
        output = options.to_args()[-1]
        files = [] if output == "-" else [FileRef(name=output, data=output.encode())]
        future.set_result(JobResult(files=files, state={}))
        return future

    def teardown(self):
        self.teardowns += 1


def test_successful_run_releases_the_pool(tmp_path, monkeypatch):
    source = tmp_path / "in.mkv"
    source.write_bytes(b"\x00")
    pools = []

    def make_pool(**kwargs):
        pools.append(InlinePool(**kwargs))
        return pools[-1]

    monkeypatch.setattr(
        ffmpeg,
        "probe",
        lambda filename: {
            "streams": [{"codec_type": "video", "avg_frame_rate": "30/1"}],
            "format": {"duration": "10"},
        },
    )
    monkeypatch.setattr(main, "FFmpegPool", make_pool)
    monkeypatch.setattr(
        main,
        "get_args",
        lambda: argparse.Namespace(
            source=source,
            params="-b:v 1M",
            threads=2,
            sub_font=None,
            output_dir=tmp_path / "out",
            work_dir=None,
            max_workers=None,
            logs_dir=None,
            log_level="INFO",
        ),
    )

    assert main.main() == 0
    assert (tmp_path / "out" / "in.webm").read_bytes() == b"out.webm"
    assert [pool.teardowns for pool in pools] == [1]
