"""
Services Package for the Split Encoder Application.

This package contains the service layer: classes and functions that do one
well-defined piece of the encoding work and are composed by the pipeline.

- **Parameter Builder (`parameter_builder`):**
  Derives the command line of each stage (video pass 1 and 2, audio, muxer)
  from the user's single option set, and materializes them per partition.

- **Progress (`progress`):**
  `ProgressModel` folds frame counters and completion events of all jobs
  into one monotonic percentage; `FrameParser` reads ffmpeg frame counters.

- **Logging Service (`logging_service`):**
  `LogMultiplexer` keeps one log stream per job plus the main timeline;
  `RunLog` persists a finished run as a YAML report.

- **FFmpeg Pool (`ffmpeg_pool`):**
  The execution substrate that runs ffmpeg jobs on a bounded thread pool.
"""
