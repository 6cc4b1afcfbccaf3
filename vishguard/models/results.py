"""Models for remote transcription and analysis results."""

from pydantic import BaseModel, ConfigDict, Field


class TranscriptionResult(BaseModel):
    """Text returned by the transcription service."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Transcribed text, possibly empty")
    warnings: tuple[str, ...] = Field(default=(), description="Advisory warnings in service order")


class AnalysisLabel(BaseModel):
    """One classifier label with its confidence."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Class label as reported by the classifier")
    score: float = Field(..., ge=0.0, le=1.0, description="Confidence in [0, 1]")


class AnalysisResult(BaseModel):
    """Groups of labels, one group per classification pass."""

    model_config = ConfigDict(frozen=True)

    groups: tuple[tuple[AnalysisLabel, ...], ...] = Field(
        default=(), description="Label groups, e.g. one per sentence or chunk"
    )
    truncated: bool = Field(default=False, description="Text was cut to the length limit before sending")
    submitted_length: int = Field(default=0, ge=0, description="Characters actually sent for analysis")
    remote_timestamp: str | None = Field(None, description="Timestamp reported by the classifier")

    @property
    def labels(self) -> list[AnalysisLabel]:
        """All labels across groups, in order."""
        return [label for group in self.groups for label in group]
