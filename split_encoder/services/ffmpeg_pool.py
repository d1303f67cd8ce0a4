"""
The execution substrate: runs encode jobs and hands back what they produced.

`ExecutionSubstrate` is the contract the pipeline executor depends on.
`FFmpegPool` implements it with a bounded thread pool where every job runs
the ffmpeg executable in its own scratch directory. In-memory inputs and the
opaque state of a previous job are written into that directory before the
run; everything the run leaves behind is read back into memory and returned.
"""
import os
import shutil
import subprocess
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from loguru import logger

from ..domain.exceptions import SubstrateError, TeardownError
from ..domain.job import FileRef, JobResult
from ..domain.options import OptionSet
from ..utils.ffmpeg_utils import iter_output_lines, resolve_ffmpeg

LogCallback = Callable[[str], None]


class ExecutionSubstrate:
    """Interface of the pool that actually runs jobs."""

    def submit_job(
        self,
        options: OptionSet,
        on_log: LogCallback,
        input_files: Iterable[FileRef] = (),
        prior_state: Optional[Dict[str, bytes]] = None,
    ) -> "Future[JobResult]":
        raise NotImplementedError

    def teardown(self) -> None:
        """Aborts in-flight jobs. Must be idempotent and safe at any time."""
        pass


class FFmpegPool(ExecutionSubstrate):
    """
    Runs ffmpeg jobs on a bounded thread pool.

    Attributes:
        max_workers: Number of ffmpeg processes allowed to run at once.
        ffmpeg_path: The executable to run; resolved from the user config or
                     PATH when not given.
        work_root: Parent of the per-job scratch directories; the system
                   temporary directory when None.
    """

    def __init__(
        self,
        max_workers: int,
        ffmpeg_path: Optional[str] = None,
        work_root: Optional[Path] = None,
    ):
        self.max_workers = max(1, max_workers)
        self.ffmpeg_path = ffmpeg_path or resolve_ffmpeg()
        self.work_root = work_root
        self._pool = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="ffmpeg"
        )
        self._processes: Set[subprocess.Popen] = set()
        self._lock = threading.Lock()
        self._torn_down = False

    def submit_job(
        self,
        options: OptionSet,
        on_log: LogCallback,
        input_files: Iterable[FileRef] = (),
        prior_state: Optional[Dict[str, bytes]] = None,
    ) -> "Future[JobResult]":
        with self._lock:
            if self._torn_down:
                raise SubstrateError("Cannot submit a job after teardown.")
            return self._pool.submit(
                self._run_job, options, on_log, tuple(input_files), prior_state or {}
            )

    def teardown(self) -> None:
        with self._lock:
            if self._torn_down:
                return
            self._torn_down = True
            processes = list(self._processes)
        logger.debug(f"Tearing down ffmpeg pool, killing {len(processes)} process(es).")
        errors = []
        for process in processes:
            if process.poll() is None:
                try:
                    process.kill()
                except OSError as e:
                    errors.append(f"pid {process.pid}: {e}")
        self._pool.shutdown(wait=False, cancel_futures=True)
        if errors:
            raise TeardownError(f"Could not kill ffmpeg process(es): {'; '.join(errors)}")

    def _run_job(
        self,
        options: OptionSet,
        on_log: LogCallback,
        input_files: tuple,
        prior_state: Dict[str, bytes],
    ) -> JobResult:
        if self.work_root:
            self.work_root.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix="job_", dir=self.work_root))
        try:
            self._stage_inputs(work_dir, input_files, prior_state)
            before = set(os.listdir(work_dir))
            self._run_ffmpeg(options, on_log, work_dir)
            produced = self._collect_outputs(work_dir, before)
            return JobResult(
                files=produced, state={ref.name: ref.data for ref in produced}
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    @staticmethod
    def _stage_inputs(
        work_dir: Path, input_files: tuple, prior_state: Dict[str, bytes]
    ) -> None:
        for ref in input_files:
            if ref.data is not None:
                (work_dir / ref.name).write_bytes(ref.data)
            elif ref.path is not None and not ref.path.exists():
                raise SubstrateError(f"Input file does not exist: {ref.path}")
        for name, data in prior_state.items():
            (work_dir / name).write_bytes(data)

    def _run_ffmpeg(self, options: OptionSet, on_log: LogCallback, work_dir: Path) -> None:
        cmd_list = [self.ffmpeg_path, *options.to_args()]
        logger.debug(f"Executing command list: {cmd_list} in {work_dir}")
        try:
            process = subprocess.Popen(
                cmd_list,
                cwd=work_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise SubstrateError(f"Command not found: '{self.ffmpeg_path}'") from e

        with self._lock:
            if self._torn_down:
                process.kill()
            self._processes.add(process)
        try:
            for line in iter_output_lines(process.stderr):
                on_log(line)
            returncode = process.wait()
        finally:
            process.stderr.close()
            with self._lock:
                self._processes.discard(process)

        if returncode != 0:
            raise SubstrateError(f"ffmpeg exited with code {returncode}")

    @staticmethod
    def _collect_outputs(work_dir: Path, before: Set[str]) -> List[FileRef]:
        produced = []
        for name in sorted(set(os.listdir(work_dir)) - before):
            path = work_dir / name
            if path.is_file():
                produced.append(FileRef(name=name, data=path.read_bytes()))
        return produced
