"""Merges remote results into a single risk verdict.

This is the only scoring logic the system owns:

1. risk_score is the highest score of any positive-class label across all
   groups, 0.0 when there is none.
2. risk_label bands are closed-open, [0, low) LOW, [low, high) MEDIUM and
   [high, 1] HIGH.
3. warnings are the transcription warnings in order, plus one for text that
   was truncated before analysis.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable

import structlog

from vishguard.models import (
    AnalysisResult,
    RiskLabel,
    TranscriptionResult,
    Verdict,
    VerdictSource,
)

logger = structlog.get_logger(__name__)

DEFAULT_THRESHOLDS = (0.33, 0.66)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def band_for_score(score: float, thresholds: tuple[float, float] = DEFAULT_THRESHOLDS) -> RiskLabel:
    """Map a score onto its risk band."""
    low, high = thresholds
    if score >= high:
        return RiskLabel.HIGH
    if score >= low:
        return RiskLabel.MEDIUM
    return RiskLabel.LOW


class VerdictAggregator:
    """Pure merge of a transcription and its analysis into a Verdict."""

    def __init__(
        self,
        positive_labels: Iterable[str] = ("phishing",),
        thresholds: tuple[float, float] = DEFAULT_THRESHOLDS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        low, high = thresholds
        if not 0.0 <= low <= high <= 1.0:
            raise ValueError(f"Invalid risk band thresholds: {thresholds}")

        self.positive_labels = frozenset(label.strip().casefold() for label in positive_labels)
        self.thresholds = (low, high)
        self.clock = clock

    def is_positive(self, label: str) -> bool:
        return label.strip().casefold() in self.positive_labels

    def score(self, analysis: AnalysisResult) -> float:
        scores = [item.score for item in analysis.labels if self.is_positive(item.label)]
        return max(scores, default=0.0)

    def merge(
        self,
        fingerprint: str,
        transcription: TranscriptionResult,
        analysis: AnalysisResult,
    ) -> Verdict:
        """Combine one transcription and one analysis.

        Args:
            fingerprint: Content fingerprint of the audio.
            transcription: Text and warnings from the transcription service.
            analysis: Label groups from the analysis service.

        Returns:
            Verdict marked FRESH and stamped with the aggregation time.
        """
        assert fingerprint, "fingerprint must not be empty"

        risk_score = self.score(analysis)

        warnings = list(transcription.warnings)
        if analysis.truncated:
            warnings.append(
                f"transcript truncated to {analysis.submitted_length} characters before analysis"
            )

        verdict = Verdict(
            fingerprint=fingerprint,
            transcribed_text=transcription.text,
            risk_score=risk_score,
            risk_label=band_for_score(risk_score, self.thresholds),
            warnings=tuple(warnings),
            timestamp=self.clock().isoformat(),
            source=VerdictSource.FRESH,
        )
        logger.debug(
            "verdict_merged",
            fingerprint=fingerprint[:16],
            risk_score=risk_score,
            risk_label=verdict.risk_label.value,
            groups=len(analysis.groups),
        )
        return verdict
