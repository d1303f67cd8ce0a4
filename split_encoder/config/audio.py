"""
Configuration settings related to the audio stage.

The audio track is encoded once for the whole output by an independent job,
so it only needs a fixed artifact name for the muxer to pick up and a fixed
share of the progress bar.
"""
from .common import OUTPUT_EXTENSION

# Marker in the base options that disables the audio stage entirely.
DISABLE_AUDIO_FLAG = "-an"

# Name of the audio artifact consumed by the muxer.
AUDIO_OUTPUT_NAME = f"audio.{OUTPUT_EXTENSION}"

# Share of the progress bar credited when the audio job finishes.
AUDIO_PERCENT = 2
