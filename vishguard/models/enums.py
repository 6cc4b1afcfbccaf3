"""Enumeration types for the pipeline models."""

from enum import Enum


class RiskLabel(str, Enum):
    """Thresholded risk band of a verdict."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class VerdictSource(str, Enum):
    """Whether a verdict was computed for this request or served from cache."""

    FRESH = "fresh"
    CACHED = "cached"


class PipelineStage(str, Enum):
    """States of a single pipeline run."""

    STAGING = "staging"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Failure taxonomy reported to callers."""

    IO = "io_failure"
    TIMEOUT = "timeout_failure"
    TRANSCRIPTION = "transcription_failure"
    ANALYSIS = "analysis_failure"
    MALFORMED_RESPONSE = "malformed_response_failure"
    INVALID_INPUT = "invalid_input_failure"
