"""Remote service clients."""

from .analysis import AnalysisClient
from .base import Analyzer, Transcriber
from .http import create_http_client, is_retryable_status
from .transcription import TranscriptionClient

__all__ = [
    "Analyzer",
    "Transcriber",
    "AnalysisClient",
    "TranscriptionClient",
    "create_http_client",
    "is_retryable_status",
]
