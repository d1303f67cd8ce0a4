"""
Configuration settings related to the video stages.

This module defines the partition thread limits, the fixed pass-1 speed, the
options that only apply to video encoders and the share of the progress bar
attributed to the two video passes.
"""
from .common import OUTPUT_EXTENSION

# --- Partition Settings ---
MIN_VTHREADS = 1
MAX_VTHREADS = 8
DEFAULT_VTHREADS = 4

# --- Pass Settings ---
# First pass only gathers statistics, so it runs at a fast speed preset.
PASS1_SPEED = "4"
PARTITION_OUTPUT_TEMPLATE = "{index}." + OUTPUT_EXTENSION

# Options rejected by audio encoders; stripped from the audio stage.
VIDEO_ONLY_FLAGS = ("-speed", "-auto-alt-ref", "-lag-in-frames")

# --- Subtitle Burn-in ---
SUBTITLES_FILTER_PATTERN = r"\bsubtitles="
SETPTS_DELAY_PATTERN = r"^setpts=PTS\+(\d+(?:\.\d+)?)/TB$"

# --- Progress Weights ---
MUXER_PERCENT = 1
PASS1_SHARE = 0.4
PASS2_SHARE = 0.6
FRAME_LINE_PATTERN = r"^frame=\s*(\d+)\b"
