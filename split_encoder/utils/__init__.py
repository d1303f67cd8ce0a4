"""
Utilities Package for the Split Encoder Application.

Modules:
    - ffmpeg_utils.py: Locating the ffmpeg executable and reading its output.
    - format_utils.py: Formatting of times, sizes, argument values, command
      lines and output file names.
"""
