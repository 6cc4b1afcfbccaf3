"""Pydantic data models for the pipeline."""

from .artifact import Artifact, InputHandle
from .enums import FailureKind, PipelineStage, RiskLabel, VerdictSource
from .results import AnalysisLabel, AnalysisResult, TranscriptionResult
from .verdict import Verdict

__all__ = [
    # Enums
    "RiskLabel",
    "VerdictSource",
    "PipelineStage",
    "FailureKind",
    # Staging
    "Artifact",
    "InputHandle",
    # Remote results
    "TranscriptionResult",
    "AnalysisLabel",
    "AnalysisResult",
    # Output
    "Verdict",
]
