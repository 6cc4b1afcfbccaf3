"""The combined risk verdict returned to callers."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import RiskLabel, VerdictSource


class Verdict(BaseModel):
    """Risk verdict for one piece of audio content."""

    model_config = ConfigDict(frozen=True)

    fingerprint: str = Field(..., description="Content fingerprint of the audio")
    transcribed_text: str = Field(..., description="Text the score was computed from")
    risk_score: float = Field(..., ge=0.0, le=1.0, description="Highest positive-class score")
    risk_label: RiskLabel = Field(..., description="Band derived from risk_score")
    warnings: tuple[str, ...] = Field(default=(), description="Transcription and pipeline warnings")
    timestamp: str = Field(..., description="ISO-8601 time of aggregation")
    source: VerdictSource = Field(default=VerdictSource.FRESH, description="Fresh or served from cache")

    def as_cached(self) -> "Verdict":
        """Copy of this verdict marked as served from cache."""
        return self.model_copy(update={"source": VerdictSource.CACHED})
