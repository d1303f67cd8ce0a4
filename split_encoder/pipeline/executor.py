"""
Runs a `PipelinePlan` against an execution substrate.

The executor walks the plan's dependency graph: every job whose dependencies
are done is submitted, and each completion callback submits whatever became
ready. A partition's second pass therefore starts as soon as its own first
pass is done, independently of the other partitions and of the audio job,
while the muxer waits for all of them.

Any job failure is fatal: nothing new is submitted, the substrate is torn
down and the failure is reported with the key of the job that caused it.
"""
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from ..config.common import (
    PIPELINE_STATE_CANCELLED,
    PIPELINE_STATE_COMPLETE,
    PIPELINE_STATE_FAILED,
    PIPELINE_STATE_PLANNING,
    PIPELINE_STATE_RUNNING,
    SUMMARY_SEPARATOR,
)
from ..domain.exceptions import JobFailure
from ..domain.job import FileRef, Job, JobResult, JobStage, JobStatus, PipelinePlan
from ..services.ffmpeg_pool import ExecutionSubstrate
from ..services.logging_service import LogMultiplexer
from ..services.progress import FrameParser, ProgressModel
from ..utils.format_utils import format_cmd, formatted_size, show_time


class PipelineState(Enum):
    PLANNING = PIPELINE_STATE_PLANNING
    RUNNING = PIPELINE_STATE_RUNNING
    COMPLETE = PIPELINE_STATE_COMPLETE
    FAILED = PIPELINE_STATE_FAILED
    CANCELLED = PIPELINE_STATE_CANCELLED


TERMINAL_STATES = (PipelineState.COMPLETE, PipelineState.FAILED, PipelineState.CANCELLED)

_STARTED = {
    JobStage.PASS1: "{} started first pass",
    JobStage.PASS2: "{} started second pass",
    JobStage.AUDIO: "{} started",
    JobStage.MUX: "{} started",
}
_FINISHED = {
    JobStage.PASS1: "{} finished first pass ({})",
    JobStage.PASS2: "{} finished second pass ({})",
    JobStage.AUDIO: "{} finished ({})",
    JobStage.MUX: "{} finished ({})",
}


@dataclass(frozen=True)
class PipelineOutput:
    """The final artifact: the muxer output and the name proposed for it."""

    data: bytes
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PipelineOutcome:
    state: PipelineState
    output: Optional[PipelineOutput] = None
    failure: Optional[JobFailure] = None


def _timer() -> Callable[[], str]:
    start = time.monotonic()
    return lambda: show_time(time.monotonic() - start)


class PipelineExecutor:
    """
    Executes the job graph of one plan; one executor per run.

    The executor never blocks on a job: `start()` submits the first wave and
    returns, and the rest is driven by the substrate's completion callbacks.
    `wait()` is a convenience for callers that want to block until the run
    reaches a terminal state.

    Attributes:
        plan: The plan being executed.
        substrate: Pool that runs the jobs.
        progress: Aggregated completion percentage of the run.
        logs: Per-job log streams plus the main timeline.
    """

    def __init__(
        self,
        plan: PipelinePlan,
        substrate: ExecutionSubstrate,
        logs: Optional[LogMultiplexer] = None,
        progress: Optional[ProgressModel] = None,
        on_finish: Optional[Callable[[PipelineOutcome], None]] = None,
    ):
        self.plan = plan
        self.substrate = substrate
        self.logs = logs or LogMultiplexer()
        self.progress = progress or ProgressModel(plan.weights, plan.expected_frames)
        self._on_finish = on_finish

        self._lock = threading.RLock()
        self._depth = 0
        self._finished = threading.Event()
        self._state = PipelineState.PLANNING
        self._status: Dict[str, JobStatus] = {job.key: JobStatus.PENDING for job in plan.jobs}
        self._results: Dict[str, JobResult] = {}
        self._timers: Dict[str, Callable[[], str]] = {}
        self._overall_timer: Optional[Callable[[], str]] = None
        self._torn_down = False
        self._output: Optional[PipelineOutput] = None
        self._failure: Optional[JobFailure] = None

    # --- Read-only views ---

    @property
    def state(self) -> PipelineState:
        with self._lock:
            return self._state

    @property
    def output(self) -> Optional[PipelineOutput]:
        with self._lock:
            return self._output

    @property
    def failure(self) -> Optional[JobFailure]:
        with self._lock:
            return self._failure

    def job_status(self, key: str) -> JobStatus:
        with self._lock:
            return self._status[key]

    @property
    def outcome(self) -> PipelineOutcome:
        with self._lock:
            return PipelineOutcome(self._state, self._output, self._failure)

    # --- Control ---

    def start(self) -> None:
        """Submits every job without dependencies; returns immediately."""
        with self._transition():
            if self._state is not PipelineState.PLANNING:
                raise RuntimeError(f"Pipeline already started (state: {self._state.value}).")
            self._state = PipelineState.RUNNING
            self._overall_timer = _timer()
            self.logs.open(self.logs.main_key)
            self._log_spawn_summary()
            self._schedule()

    def wait(self, timeout: Optional[float] = None) -> PipelineOutcome:
        """Blocks until the run is complete, failed or cancelled."""
        self._finished.wait(timeout)
        return self.outcome

    def cancel(self) -> None:
        """
        Abandons the run: the substrate is torn down without waiting for
        in-flight jobs, and their late completions are ignored.
        """
        with self._transition():
            if self._state in TERMINAL_STATES:
                self._teardown()
                return
            self._state = PipelineState.CANCELLED
            self.logs.open(self.logs.main_key)
            self.logs.log_main("Cancelled")
            self._teardown()

    # --- Scheduling ---

    def _ready_jobs(self) -> List[Job]:
        return [
            job
            for job in self.plan.jobs
            if self._status[job.key] is JobStatus.PENDING
            and all(self._status[dep] is JobStatus.DONE for dep in job.depends_on)
        ]

    def _schedule(self) -> None:
        for job in self._ready_jobs():
            if self._state is not PipelineState.RUNNING:
                return
            # A synchronous completion inside _submit may already have
            # scheduled this job through a nested call.
            if self._status[job.key] is JobStatus.PENDING:
                self._submit(job)

    def _submit(self, job: Job) -> None:
        self._status[job.key] = JobStatus.RUNNING
        self._timers[job.key] = _timer()
        self.logs.open(job.log_key)
        self.logs.log_main(_STARTED[job.stage].format(job.log_key))
        self.logs.append(job.log_key, format_cmd(job.options.to_args()))

        try:
            input_files, prior_state = self._job_inputs(job)
            future = self.substrate.submit_job(
                job.options, self._log_handler(job), input_files, prior_state
            )
        except Exception as e:
            self._fail(job, e)
            return
        future.add_done_callback(lambda f, job=job: self._on_job_done(job, f))

    def _job_inputs(self, job: Job):
        """Static inputs plus whatever the job's dependencies produced."""
        if job.stage is JobStage.PASS2:
            (pass1_key,) = job.depends_on
            return job.inputs, self._results[pass1_key].state
        if job.stage is JobStage.MUX:
            # Plan order: partition outputs first, then audio.
            upstream = [
                self._artifact(dep.key) for dep in self.plan.jobs if dep.key in job.depends_on
            ]
            return tuple(upstream) + job.inputs, None
        return job.inputs, None

    def _artifact(self, key: str) -> FileRef:
        """The file a finished job produced under its expected output name."""
        files = self._results[key].files
        expected = self.plan.job(key).output_name
        for ref in files:
            if ref.name == expected:
                return ref
        if not files:
            raise JobFailure(key, "Job produced no output file.")
        return files[0]

    def _log_handler(self, job: Job) -> Callable[[str], None]:
        parser = FrameParser() if job.stage in (JobStage.PASS1, JobStage.PASS2) else None
        pass_number = 1 if job.stage is JobStage.PASS1 else 2

        def on_log(line: str) -> None:
            self.logs.append(job.log_key, line)
            if parser is not None:
                frames = parser.parse(line)
                if frames > 0 and self.state is PipelineState.RUNNING:
                    self.progress.add_frames(frames, pass_number)

        return on_log

    # --- Completion ---

    def _on_job_done(self, job: Job, future) -> None:
        try:
            result = future.result()
        except Exception as e:
            with self._transition():
                self._status[job.key] = JobStatus.FAILED
                if self._state is PipelineState.RUNNING:
                    self._fail(job, e)
            return

        with self._transition():
            self._status[job.key] = JobStatus.DONE
            self._results[job.key] = result
            if self._state is not PipelineState.RUNNING:
                return
            elapsed = self._timers[job.key]()
            if job.stage is not JobStage.PASS1:
                self.logs.mark_done(job.log_key)
            self.logs.log_main(_FINISHED[job.stage].format(job.log_key, elapsed))
            if job.stage is JobStage.AUDIO:
                self.progress.complete_audio()
            if job.key == self.plan.mux_key:
                try:
                    self._complete(job)
                except JobFailure as failure:
                    self._fail(job, failure)
            else:
                self._schedule()

    def _complete(self, job: Job) -> None:
        artifact = self._artifact(job.key)
        self._output = PipelineOutput(data=artifact.data or b"", filename=self.plan.output_filename)
        self.progress.complete_mux()
        self._state = PipelineState.COMPLETE
        self.logs.mark_done(self.logs.main_key)
        self._log_final_summary()

    def _fail(self, job: Job, error: BaseException) -> None:
        message = error.message if isinstance(error, JobFailure) else str(error)
        self._status[job.key] = JobStatus.FAILED
        self._failure = JobFailure(job.key, message or type(error).__name__)
        self._state = PipelineState.FAILED
        logger.error(f"Job '{job.key}' failed: {self._failure.message}")
        self.logs.log_main(f"Fatal error at {job.key}: {self._failure.message}")
        self._teardown()

    def _teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        try:
            self.substrate.teardown()
        except Exception as e:
            # The failure that triggered the teardown is what gets reported.
            logger.opt(exception=e).error(f"Error during teardown of the execution substrate: {e}")

    @contextmanager
    def _transition(self):
        """
        Holds the lock for a state change. When the outermost holder leaves
        and the run has reached a terminal state, waiters are released and
        `on_finish` is called, outside the lock and exactly once.
        """
        outcome = None
        with self._lock:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
                if (
                    self._depth == 0
                    and self._state in TERMINAL_STATES
                    and not self._finished.is_set()
                ):
                    self._finished.set()
                    outcome = PipelineOutcome(self._state, self._output, self._failure)
        if outcome is not None and self._on_finish:
            self._on_finish(outcome)

    # --- Main timeline ---

    def _log_spawn_summary(self) -> None:
        threads = self.plan.thread_count
        self.logs.log_main("Spawning jobs:")
        self.logs.log_main(f"  {threads} video thread{'' if threads == 1 else 's'}")
        if self.plan.audio:
            self.logs.log_main("  1 audio thread")

    def _log_final_summary(self) -> None:
        params = self.plan.base_options
        key = self.logs.main_key
        self.logs.append(key, SUMMARY_SEPARATOR)
        self.logs.append(key, f"All is done in {self._overall_timer()}")
        self.logs.append(key, f"Output duration: {show_time(self.plan.output_duration)}")
        self.logs.append(key, f"Output file size: {formatted_size(self._output.size)}")
        self.logs.append(key, f"Output video bitrate: {params.get('-b:v', '0')}")
        self.logs.append(key, f"Output audio bitrate: {params.get('-b:a', '0')}")
        logger.success(
            f"Encoded {self._output.filename} ({formatted_size(self._output.size)}) "
            f"in {self._overall_timer()}"
        )
