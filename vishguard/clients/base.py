"""Capabilities the orchestrator needs from the remote services."""

from typing import Protocol, runtime_checkable

from vishguard.models import AnalysisResult, Artifact, TranscriptionResult


@runtime_checkable
class Transcriber(Protocol):
    """Anything that turns a staged audio artifact into text."""

    async def transcribe(self, artifact: Artifact) -> TranscriptionResult: ...


@runtime_checkable
class Analyzer(Protocol):
    """Anything that scores text with phishing labels."""

    async def analyze(self, text: str) -> AnalysisResult: ...
