import threading

import pytest
import yaml

from split_encoder.domain.exceptions import LogStreamNotOpenError
from split_encoder.services.logging_service import LogMultiplexer, RunLog


def test_append_to_unopened_stream_raises():
    logs = LogMultiplexer()
    with pytest.raises(LogStreamNotOpenError):
        logs.append("Video 1", "frame=1")
    with pytest.raises(ReferenceError):
        logs.mark_done("Video 1")


def test_open_is_idempotent_and_keeps_lines():
    logs = LogMultiplexer()
    logs.open("Audio")
    logs.append("Audio", "size=10kB")
    logs.open("Audio")
    assert logs.stream("Audio").lines == ("size=10kB",)
    assert logs.stream("Audio").contents == "size=10kB\n"


def test_snapshot_keeps_open_order_and_done_flags():
    logs = LogMultiplexer()
    for key in ("Main log", "Video 1", "Audio"):
        logs.open(key)
    logs.mark_done("Audio")
    snapshot = logs.snapshot()
    assert [s.key for s in snapshot] == ["Main log", "Video 1", "Audio"]
    assert [s.done for s in snapshot] == [False, False, True]


def test_log_main_stamps_lines():
    logs = LogMultiplexer()
    logs.open(logs.main_key)
    logs.log_main("Video 1 started first pass")
    (line,) = logs.stream(logs.main_key).lines
    assert line.startswith("[")
    assert line.endswith("] Video 1 started first pass")


def test_run_log_appends_entries(tmp_path):
    logs = LogMultiplexer()
    logs.open("Muxer")
    logs.append("Muxer", "$ ffmpeg -f concat")
    run_log = RunLog(tmp_path / "logs")

    path = run_log.write({"state": "complete"}, logs.snapshot())
    run_log.write({"state": "failed"}, logs.snapshot())

    entries = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert [e["index"] for e in entries] == [1, 2]
    assert [e["state"] for e in entries] == ["complete", "failed"]
    assert entries[0]["logs"] == [
        {"key": "Muxer", "done": False, "lines": ["$ ffmpeg -f concat"]}
    ]


def test_run_log_ignores_unreadable_report(tmp_path):
    (tmp_path / "run_log.yaml").write_text("just a string", encoding="utf-8")
    assert RunLog(tmp_path).load() == []


def test_parallel_appends_are_all_kept():
    logs = LogMultiplexer()
    logs.open("Video 1")
    barrier = threading.Barrier(8)

    def worker(n):
        barrier.wait()
        for i in range(500):
            logs.append("Video 1", f"{n}:{i}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = logs.stream("Video 1").lines
    assert len(lines) == 4000
    for n in range(8):
        own = [line for line in lines if line.startswith(f"{n}:")]
        assert own == [f"{n}:{i}" for i in range(500)]
