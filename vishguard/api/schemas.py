"""
Response schemas for the API.

Verdicts are returned as-is; failures carry enough typing for a client to
tell "try again later" from "give up".
"""

from typing import Optional

from pydantic import BaseModel, Field

from vishguard.models import RiskLabel, Verdict, VerdictSource


class VerdictResponse(BaseModel):
    """Verdict for an uploaded recording."""
    filename: Optional[str] = Field(None, description="Uploaded filename")
    size_bytes: int = Field(..., description="Uploaded size in bytes")
    fingerprint: str
    transcribed_text: str
    risk_score: float
    risk_label: RiskLabel
    warnings: list[str] = Field(default_factory=list)
    timestamp: str
    source: VerdictSource

    @classmethod
    def from_verdict(cls, verdict: Verdict, filename: Optional[str], size_bytes: int) -> "VerdictResponse":
        return cls(
            filename=filename,
            size_bytes=size_bytes,
            fingerprint=verdict.fingerprint,
            transcribed_text=verdict.transcribed_text,
            risk_score=verdict.risk_score,
            risk_label=verdict.risk_label,
            warnings=list(verdict.warnings),
            timestamp=verdict.timestamp,
            source=verdict.source,
        )


class ErrorResponse(BaseModel):
    """Typed pipeline failure."""
    error: str
    kind: str
    retryable: bool = False
    stage: Optional[str] = None
    status_code: Optional[int] = Field(None, description="Upstream HTTP status, if any")
    attempts: Optional[int] = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    cached_verdicts: int = 0
