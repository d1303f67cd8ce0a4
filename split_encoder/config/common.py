"""
Common configuration settings used throughout the application.

This module contains globally shared settings: the loguru format, the names of
the log streams, the job status names and the intermediate file names that the
parameter builder and the pipeline executor agree on. It also loads the
optional user configuration from a `config.user.yaml` file at the project
root, so the ffmpeg location or the scratch directory can be changed without
editing the source.
"""
from pathlib import Path
from typing import Any, Dict

import yaml
from loguru import logger

# --- User-Defined Configuration ---

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"


def load_user_config(config_path: Path) -> Dict[str, Any]:
    """
    Reads the user configuration file and returns its content as a dict.

    A missing file is not an error: an empty dict is returned and the
    application relies on the system PATH and its built-in defaults. A file
    that cannot be parsed is reported with a warning and ignored as well.

    Args:
        config_path: Location of the YAML file.

    Returns:
        The parsed mapping, or an empty dict.
    """
    if not config_path.is_file():
        logger.debug(f"User config '{config_path}' not found. Using defaults.")
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{config_path}': {e}")
        return {}
    if not isinstance(user_config, dict):
        logger.warning(f"Ignoring '{config_path}': top level must be a mapping.")
        return {}
    return user_config


_user_config = load_user_config(USER_CONFIG_PATH)
_paths_config = _user_config.get("paths") or {}
_encode_config = _user_config.get("encode") or {}

# The directory containing the ffmpeg executable. None means "use PATH".
MODULE_PATH: Path | None = (
    Path(_paths_config["ffmpeg_dir"]) if _paths_config.get("ffmpeg_dir") else None
)

# Parent directory for the per-job scratch directories of the ffmpeg pool.
# None means the system temporary directory.
WORK_DIR: Path | None = (
    Path(_paths_config["work_dir"]) if _paths_config.get("work_dir") else None
)

# Upper bound of concurrently running ffmpeg processes. None lets the CLI
# size the pool to the number of independent jobs in the plan.
MAX_WORKERS: int | None = _encode_config.get("max_workers")


# --- Logging Configuration ---

LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)

# Key of the synthesized timeline stream in the log multiplexer.
MAIN_LOG_KEY = "Main log"

# Separator written before the final summary of a successful run.
SUMMARY_SEPARATOR = "=" * 50

# Filename of the YAML run report written by `RunLog`.
RUN_LOG_FILE_NAME = "run_log.yaml"


# --- Intermediate Artifacts ---
# Names shared by the parameter builder and the pipeline executor.

OUTPUT_EXTENSION = "webm"
CONCAT_LIST_NAME = "list.txt"
MUXER_OUTPUT_NAME = f"out.{OUTPUT_EXTENSION}"
NULL_OUTPUT = "-"


# --- Job Status Constants ---

JOB_STATUS_PENDING = "pending"
JOB_STATUS_RUNNING = "running"
JOB_STATUS_DONE = "done"
JOB_STATUS_FAILED = "failed"

# --- Pipeline State Constants ---

PIPELINE_STATE_PLANNING = "planning"
PIPELINE_STATE_RUNNING = "running"
PIPELINE_STATE_COMPLETE = "complete"
PIPELINE_STATE_FAILED = "failed"
PIPELINE_STATE_CANCELLED = "cancelled"
