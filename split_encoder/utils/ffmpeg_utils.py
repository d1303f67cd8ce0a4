"""
This module provides utility functions for running the ffmpeg executable:
locating it and reading its progress output line by line.
"""

import re
import shutil
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from loguru import logger

from ..config.common import MODULE_PATH
from ..domain.exceptions import SubstrateError

FFMPEG_NAME = "ffmpeg"

# ffmpeg rewrites its status line with "\r"; both end a logical line.
_LINE_BREAK = re.compile(rb"[\r\n]")


def resolve_ffmpeg(module_path: Optional[Path] = MODULE_PATH) -> str:
    """
    Finds the ffmpeg executable.

    The directory configured as `paths.ffmpeg_dir` in `config.user.yaml` is
    searched first, then the system's PATH.

    Returns:
        The path of the executable, as a string for `subprocess`.

    Raises:
        SubstrateError: If ffmpeg cannot be found anywhere.
    """
    if module_path:
        found = shutil.which(FFMPEG_NAME, path=str(module_path))
        if found:
            return found
        logger.warning(
            f"'{FFMPEG_NAME}' not found in configured ffmpeg_dir '{module_path}'. Trying PATH."
        )
    found = shutil.which(FFMPEG_NAME)
    if not found:
        raise SubstrateError(
            f"Command not found: '{FFMPEG_NAME}'. Ensure it's in your system's PATH "
            f"or set paths.ffmpeg_dir in config.user.yaml."
        )
    return found


def iter_output_lines(stream: BinaryIO, chunk_size: int = 4096) -> Iterator[str]:
    """
    Yields the non-empty lines of a process output stream as they arrive.

    Reads in chunks instead of `readline()` so that "\r"-terminated progress
    updates are delivered immediately rather than when the next "\n" comes.
    """
    pending = b""
    while True:
        chunk = stream.read1(chunk_size) if hasattr(stream, "read1") else stream.read(chunk_size)
        if not chunk:
            break
        pending += chunk
        *complete, pending = _LINE_BREAK.split(pending)
        for raw in complete:
            line = raw.decode("utf-8", "replace").rstrip()
            if line:
                yield line
    tail = pending.decode("utf-8", "replace").rstrip()
    if tail:
        yield tail
