"""
Exceptions raised by the stream processing core.

Only caller misuse is raised. Faults inside a stage are recorded as
``error`` events and never leave ``process()``.
"""


class StreamProcessorError(Exception):
    """Base error for the stream processor, tagged with a machine-readable code."""

    code: str = "STREAM_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class PipelineStateError(StreamProcessorError):
    """The pipeline was used in a state that does not allow the operation."""

    code = "INVALID_STATE"


class NotRunningError(PipelineStateError):
    """Data was pushed into a pipeline that has not been started."""

    code = "NOT_RUNNING"

    def __init__(self, message: str = "Pipeline is not running") -> None:
        super().__init__(message)
