"""
This module provides classes for collecting and persisting the logs of a run.

`LogMultiplexer` keeps one append-only stream of lines per job (plus the
synthesized "Main log" timeline) while the pipeline runs, and hands out
read-only snapshots to whoever displays them. `RunLog` writes the final
snapshot together with a summary of the run to a YAML report, so that a run
can be inspected after the process has exited.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from loguru import logger

from ..config.common import MAIN_LOG_KEY, RUN_LOG_FILE_NAME
from ..domain.exceptions import LogStreamNotOpenError
from ..utils.format_utils import show_now


@dataclass
class LogStream:
    key: str
    lines: List[str] = field(default_factory=list)
    done: bool = False


@dataclass(frozen=True)
class LogStreamSnapshot:
    """Immutable copy of one stream at the time `snapshot()` was called."""

    key: str
    lines: Tuple[str, ...]
    done: bool

    @property
    def contents(self) -> str:
        return "".join(line + "\n" for line in self.lines)


class LogMultiplexer:
    """
    Named, append-only log buffers shared by all jobs of a run.

    Streams are opened lazily when a job starts and are never removed. Every
    mutation takes the same lock, so callbacks of concurrently running jobs
    can append in any interleaving without corrupting a stream.
    """

    def __init__(self, main_key: str = MAIN_LOG_KEY):
        self.main_key = main_key
        self._streams: Dict[str, LogStream] = {}
        self._lock = threading.Lock()

    def open(self, key: str) -> None:
        """Creates an empty stream for `key`; a no-op if it already exists."""
        with self._lock:
            if key not in self._streams:
                self._streams[key] = LogStream(key)

    def append(self, key: str, line: str) -> None:
        """
        Appends one line to the stream `key`.

        Raises:
            LogStreamNotOpenError: If `open(key)` was never called.
        """
        with self._lock:
            stream = self._streams.get(key)
            if stream is None:
                raise LogStreamNotOpenError(f"Log stream '{key}' was never opened.")
            stream.lines.append(line)
        if key != self.main_key:
            logger.trace(f"[{key}] {line}")

    def mark_done(self, key: str) -> None:
        with self._lock:
            stream = self._streams.get(key)
            if stream is None:
                raise LogStreamNotOpenError(f"Log stream '{key}' was never opened.")
            stream.done = True

    def log_main(self, line: str) -> None:
        """Appends a wall-clock stamped milestone to the main timeline."""
        self.append(self.main_key, f"[{show_now()}] {line}")
        logger.info(line)

    def is_open(self, key: str) -> bool:
        with self._lock:
            return key in self._streams

    def snapshot(self) -> Tuple[LogStreamSnapshot, ...]:
        """All streams in the order they were opened."""
        with self._lock:
            return tuple(
                LogStreamSnapshot(s.key, tuple(s.lines), s.done)
                for s in self._streams.values()
            )

    def stream(self, key: str) -> LogStreamSnapshot:
        with self._lock:
            s = self._streams.get(key)
            if s is None:
                raise LogStreamNotOpenError(f"Log stream '{key}' was never opened.")
            return LogStreamSnapshot(s.key, tuple(s.lines), s.done)


class RunLog:
    """
    Writes run reports in YAML format.

    Each call to `write` appends one entry (summary plus all log streams) to
    the report file in `log_dir`, so repeated runs into the same directory
    accumulate a history.
    """

    def __init__(self, log_dir: Path, filename: str = RUN_LOG_FILE_NAME):
        self.log_dir = log_dir.resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file_path = self.log_dir / filename

    def load(self) -> List[Dict[str, Any]]:
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                entries = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(
                f"Error reading/parsing run log {self.log_file_path}: {e}. Starting a new log."
            )
            return []
        if entries is None:
            return []
        if not isinstance(entries, list):
            logger.warning(
                f"Run log {self.log_file_path} contained unexpected data. Starting a new log."
            )
            return []
        return entries

    def write(
        self,
        summary: Dict[str, Any],
        streams: Tuple[LogStreamSnapshot, ...],
        ended: Optional[datetime] = None,
    ) -> Path:
        """
        Appends one run to the report.

        Args:
            summary: Plain values describing the run (state, source, output...).
            streams: The log snapshot of the run.
            ended: Completion time; defaults to now.

        Returns:
            The path of the report file.
        """
        entries = self.load()
        entry: Dict[str, Any] = {
            "index": max((e.get("index", 0) for e in entries if isinstance(e, dict)), default=0) + 1,
            "ended_datetime": (ended or datetime.now()).isoformat(timespec="seconds"),
        }
        entry.update(summary)
        entry["logs"] = [
            {"key": s.key, "done": s.done, "lines": list(s.lines)} for s in streams
        ]
        entries.append(entry)
        with self.log_file_path.open("w", encoding="utf-8") as f:
            yaml.dump(
                entries,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
                indent=4,
                width=220,
            )
        logger.info(f"Run log written to {self.log_file_path}")
        return self.log_file_path
