class PipelineError(Exception):
    """Base class for every failure raised by the transcoding pipeline."""


class ProbeError(PipelineError):
    pass


class EncodeError(PipelineError):
    pass


class FrameExtractError(PipelineError):
    pass


class PlaylistError(PipelineError):
    pass


class StorageError(PipelineError):
    pass


class PersistenceError(PipelineError):
    pass


class JobFailed(PipelineError):
    """
    A job ended in the failed state.
    `stage` is the stage that was running when the job failed, `warnings`
    the recoverable problems collected before that point.
    """

    def __init__(self, stage: str, reason: str, warnings: list[str] | None = None):
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason
        self.warnings = list(warnings or [])
