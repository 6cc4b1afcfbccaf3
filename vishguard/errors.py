"""Failure taxonomy for the ingestion pipeline.

Every failure a caller can observe is a ``PipelineFailure`` subclass. The
``retryable`` flag separates "try again later" failures (timeouts, 5xx,
dropped connections) from "give up" failures (4xx, malformed responses,
invalid input, local I/O).
"""

from vishguard.models.enums import FailureKind, PipelineStage


class PipelineFailure(Exception):
    """Base class for all typed pipeline failures."""

    kind: FailureKind

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        stage: PipelineStage | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.stage = stage

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "stage": self.stage.value if self.stage else None,
        }


class IOFailure(PipelineFailure):
    """Local staging storage could not be read or written."""

    kind = FailureKind.IO

    def __init__(self, message: str, *, stage: PipelineStage = PipelineStage.STAGING) -> None:
        super().__init__(message, retryable=False, stage=stage)


class TimeoutFailure(PipelineFailure):
    """A remote call did not answer within its bound."""

    kind = FailureKind.TIMEOUT

    def __init__(
        self,
        message: str,
        *,
        stage: PipelineStage | None = None,
        deadline_exceeded: bool = False,
    ) -> None:
        # Once the caller's overall deadline is gone there is nothing left to retry with.
        super().__init__(message, retryable=not deadline_exceeded, stage=stage)
        self.deadline_exceeded = deadline_exceeded


class RemoteServiceFailure(PipelineFailure):
    """A remote service reported an error or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
        cause: PipelineFailure | None = None,
        attempts: int = 1,
        stage: PipelineStage | None = None,
    ) -> None:
        super().__init__(message, retryable=retryable, stage=stage)
        self.status_code = status_code
        self.cause = cause
        self.attempts = attempts

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["status_code"] = self.status_code
        data["attempts"] = self.attempts
        if self.cause is not None:
            data["cause"] = self.cause.kind.value
        return data


class TranscriptionFailure(RemoteServiceFailure):
    """The transcription service failed or retries were exhausted."""

    kind = FailureKind.TRANSCRIPTION

    def __init__(self, message: str, **kwargs) -> None:
        kwargs.setdefault("stage", PipelineStage.TRANSCRIBING)
        super().__init__(message, **kwargs)


class AnalysisFailure(RemoteServiceFailure):
    """The analysis service failed or retries were exhausted."""

    kind = FailureKind.ANALYSIS

    def __init__(self, message: str, **kwargs) -> None:
        kwargs.setdefault("stage", PipelineStage.ANALYZING)
        super().__init__(message, **kwargs)


class MalformedResponseFailure(PipelineFailure):
    """A remote response could not be parsed into the expected shape."""

    kind = FailureKind.MALFORMED_RESPONSE

    def __init__(self, message: str, *, stage: PipelineStage | None = None) -> None:
        super().__init__(message, retryable=False, stage=stage)


class InvalidInputFailure(PipelineFailure):
    """Input rejected before sending, e.g. text longer than the service limit."""

    kind = FailureKind.INVALID_INPUT

    def __init__(self, message: str, *, stage: PipelineStage | None = PipelineStage.ANALYZING) -> None:
        super().__init__(message, retryable=False, stage=stage)
