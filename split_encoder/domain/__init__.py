"""
This package contains the domain models of the Split Encoder application.

The domain layer describes an encode in plain values: the ffmpeg option sets
every stage works on, the time partitions of the output, and the jobs and plan
that the pipeline executes. It does not run anything itself, which keeps it
independent of ffmpeg and easy to test.

Modules:
    exceptions.py: Custom exception types, rooted at `SplitEncoderException`.
    options.py: `OptionSet`, the immutable ordered set of ffmpeg options.
    partition.py: `Partition` and the partition planner.
    job.py: `Job`, `FileRef`, `StageWeights` and `PipelinePlan`.
    media.py: Time parsing and `MediaInfo` (duration and fps via ffprobe).
"""
