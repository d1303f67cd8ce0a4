"""
Defines custom exception types for the Split Encoder application.

These exceptions let the pipeline distinguish between the ways an encode can
go wrong: a request that cannot be planned, a job that the execution pool
reports as failed, or a problem while releasing the pool afterwards. Callers
catch the specific type they can handle and let the rest propagate.

All custom exceptions inherit from the base `SplitEncoderException`.
"""


class SplitEncoderException(Exception):
    """Base class for all custom exceptions in the Split Encoder application."""

    pass


# --- Planning ---
class PlanningError(SplitEncoderException):
    """
    Raised when an encode request cannot be turned into a pipeline plan.

    Most bad inputs (an out-of-range thread count, an unparsable start time)
    are repaired by clamping or falling back to defaults. Only a non-positive
    output duration is a hard precondition violation and raises this.
    """

    pass


class MediaProbeError(SplitEncoderException):
    """
    Raised when the source media cannot be probed for its duration or frame rate.

    Both values are needed to plan partitions and to estimate the number of
    frames the video passes will report.
    """

    pass


# --- Execution ---
class JobFailure(SplitEncoderException):
    """
    A job reported a fault; fatal to the whole pipeline.

    The failure is tagged with the key of the job that originated it, so the
    caller can tell which partition or stage broke.
    """

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key
        self.message = message


class SubstrateError(SplitEncoderException):
    """
    Raised by the ffmpeg execution pool when a job cannot complete.

    Typical causes are a non-zero ffmpeg exit code or an input file that does
    not exist. The pipeline executor converts it into a `JobFailure`.
    """

    pass


class TeardownError(SplitEncoderException):
    """
    Raised when releasing the execution pool fails.

    It is logged and never replaces the `JobFailure` that triggered teardown.
    """

    pass


# --- Logging ---
class LogStreamNotOpenError(SplitEncoderException, ReferenceError):
    """Raised when a line is appended to a log stream that was never opened."""

    pass
