"""
Command-Line Interface (CLI) setup for the Split Encoder.

This module uses Python's `argparse` to define and parse the command-line
arguments that control the application's behavior.
"""
import argparse
from pathlib import Path
from typing import List, Optional

from .config.common import MAX_WORKERS, WORK_DIR

DEFAULT_PARAMS = "-c:v libvpx-vp9 -b:v 0 -crf 33 -c:a libopus -b:a 128k"


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the Split Encoder.

    Args:
        argv: Arguments to parse; `sys.argv[1:]` when None.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = argparse.ArgumentParser(
        description="Encode a video to WebM with parallel two-pass partitions."
    )
    parser.add_argument("source", type=Path, help="Source media file.")
    parser.add_argument(
        "-p", "--params", type=str, default=DEFAULT_PARAMS,
        help="Raw ffmpeg output options (quoted). '-ss', '-t', '-vf', '-an' and "
             "'-threads' are understood by the planner.",
    )
    parser.add_argument(
        "--threads", type=int, default=None,
        help="Number of video partitions encoded in parallel (overrides '-threads').",
    )
    parser.add_argument(
        "--sub-font", type=Path, default=None,
        help="Font file needed by a burned-in subtitles filter.",
    )
    parser.add_argument(
        "--output-dir", type=Path, default=Path.cwd(),
        help="Directory for the encoded file.",
    )
    parser.add_argument(
        "--work-dir", type=Path, default=WORK_DIR,
        help="Directory for temporary job files. Useful for pointing to a RAM disk.",
    )
    parser.add_argument(
        "--max-workers", type=int, default=MAX_WORKERS,
        help="Maximum number of ffmpeg processes running at once.",
    )
    parser.add_argument(
        "--logs-dir", type=Path, default=None,
        help="Write a YAML report with all job logs to this directory.",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level.",
    )

    args = parser.parse_args(argv)

    if args.max_workers is not None and args.max_workers < 1:
        parser.error("--max-workers must be at least 1")
    if not args.source.is_file():
        parser.error(f"Source file '{args.source}' does not exist.")
    if args.sub_font is not None and not args.sub_font.is_file():
        parser.error(f"Subtitle font '{args.sub_font}' does not exist.")
    args.source = args.source.resolve()
    args.output_dir = args.output_dir.resolve()
    return args
