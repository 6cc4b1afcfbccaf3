"""Test doubles for the remote services."""

import asyncio
from pathlib import Path

from vishguard.models import AnalysisLabel, AnalysisResult, Artifact, TranscriptionResult


class FakeTranscriber:
    """Transcriber returning scripted outcomes in order; the last one repeats."""

    def __init__(self, *outcomes, gate: asyncio.Event | None = None):
        self.outcomes = list(outcomes) or [TranscriptionResult(text="")]
        self.gate = gate
        self.calls: list[Artifact] = []
        self.seen_paths: list[Path] = []
        self.started = asyncio.Event()

    async def transcribe(self, artifact: Artifact) -> TranscriptionResult:
        self.calls.append(artifact)
        self.seen_paths.append(artifact.local_path)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeAnalyzer:
    """Analyzer returning scripted outcomes in order; the last one repeats."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [AnalysisResult()]
        self.calls: list[str] = []

    async def analyze(self, text: str) -> AnalysisResult:
        self.calls.append(text)
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def analysis_of(*groups: list[tuple[str, float]]) -> AnalysisResult:
    """Build an AnalysisResult from (label, score) groups."""
    return AnalysisResult(
        groups=tuple(
            tuple(AnalysisLabel(label=label, score=score) for label, score in group)
            for group in groups
        )
    )


async def no_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


def staged_files(staging_dir: Path) -> list[Path]:
    """Files currently present in the staging directory."""
    if not staging_dir.exists():
        return []
    return [p for p in staging_dir.iterdir() if p.is_file()]
