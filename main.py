"""
Main entry point for the Split Encoder application.

This script parses command-line arguments, probes the source media, plans the
partitioned two-pass encode and runs it on a pool of ffmpeg processes. The
muxed result is written to the output directory, and a YAML report with all
job logs is written when a logs directory is given.
"""

import sys
from pathlib import Path

from loguru import logger

from split_encoder.cli import get_args
from split_encoder.config.common import LOGGER_FORMAT
from split_encoder.domain.exceptions import SplitEncoderException, TeardownError
from split_encoder.domain.job import FileRef
from split_encoder.domain.media import MediaInfo
from split_encoder.domain.options import OptionSet
from split_encoder.pipeline.executor import PipelineExecutor, PipelineState
from split_encoder.pipeline.plan import EncodeRequest, build_plan
from split_encoder.services.ffmpeg_pool import FFmpegPool
from split_encoder.services.logging_service import RunLog
from split_encoder.services.progress import ProgressModel
from split_encoder.utils.format_utils import formatted_size

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Configure the logger for initial setup.
# The level is overridden once the command-line arguments are parsed.
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOGGER_FORMAT)


def build_base_options(source: Path, raw_params: str) -> OptionSet:
    """
    The user's options with the source as input.

    A user "-ss" is moved in front of "-i" so every partition seeks in the
    input instead of decoding and dropping everything before its start.
    """
    params = OptionSet.from_string(raw_params)
    start = params.get("-ss")
    options = params.remove("-ss").prepend("-i", str(source))
    if start is not None:
        options = options.prepend("-ss", start)
    return options


def write_run_log(logs_dir: Path, executor: PipelineExecutor, source: Path) -> None:
    outcome = executor.outcome
    summary = {
        "source": str(source),
        "state": outcome.state.value,
        "output_filename": executor.plan.output_filename,
        "options": " ".join(executor.plan.base_options.to_args()),
        "threads": executor.plan.thread_count,
        "progress": executor.progress.percent,
    }
    if outcome.failure:
        summary["failed_job"] = outcome.failure.key
        summary["error"] = outcome.failure.message
    RunLog(logs_dir).write(summary, executor.logs.snapshot())


def release_pool(pool: FFmpegPool) -> None:
    """Stops the worker threads; a no-op if the run already tore the pool down."""
    try:
        pool.teardown()
    except TeardownError as e:
        logger.warning(f"Could not release the ffmpeg pool: {e}")


def main() -> int:
    """
    Runs one encode and returns the process exit code.

    Exit codes: 0 on success, 1 on any planning or job failure, 130 when the
    run is interrupted with Ctrl+C.
    """
    args = get_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    executor = None
    pool = None
    try:
        media = MediaInfo.from_probe(args.source)
        logger.info(
            f"Source: {media.path.name}, duration {media.duration:.3f}s, {media.fps:.3f} fps"
        )
        inputs = []
        if args.sub_font:
            # Staged into every job's directory so "fontsdir=." finds it.
            inputs.append(FileRef(name=args.sub_font.name, data=args.sub_font.read_bytes()))

        request = EncodeRequest(
            options=build_base_options(media.path, args.params),
            media_duration=media.duration,
            fps=media.fps,
            inputs=tuple(inputs),
            source_name=media.path.name,
            thread_count=args.threads,
        )
        plan = build_plan(request)

        max_workers = args.max_workers or plan.thread_count + int(plan.audio)
        pool = FFmpegPool(max_workers=max_workers, work_root=args.work_dir)
        progress = ProgressModel(
            plan.weights,
            plan.expected_frames,
            on_change=lambda percent: logger.info(f"Progress: {percent}%"),
        )
        executor = PipelineExecutor(plan, pool, progress=progress)
        executor.start()
        outcome = executor.wait()
    except KeyboardInterrupt:
        logger.warning("Interrupted by user. Cancelling all jobs.")
        if executor is not None:
            executor.cancel()
            if args.logs_dir:
                write_run_log(args.logs_dir, executor, args.source)
        return EXIT_INTERRUPTED
    except SplitEncoderException as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_FAILURE
    finally:
        if pool is not None:
            release_pool(pool)

    if args.logs_dir:
        write_run_log(args.logs_dir, executor, args.source)

    if outcome.state is not PipelineState.COMPLETE:
        logger.error(f"Encoding failed: {outcome.failure}")
        return EXIT_FAILURE

    args.output_dir.mkdir(parents=True, exist_ok=True)
    output_path = args.output_dir / outcome.output.filename
    output_path.write_bytes(outcome.output.data)
    logger.success(f"Saved {output_path} ({formatted_size(outcome.output.size)})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
