"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from tests.fakes import no_sleep
from vishguard.aggregation import VerdictAggregator
from vishguard.cache import VerdictCache
from vishguard.config import Settings
from vishguard.pipeline import PipelineOrchestrator
from vishguard.staging import ArtifactStager

BASE_URL = "http://speech.test"


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    return tmp_path / "staging"


@pytest.fixture
def settings(staging_dir: Path) -> Settings:
    """Settings pointing at a fake service with instant retries."""
    return Settings(
        _env_file=None,
        base_url=BASE_URL,
        staging_dir=staging_dir,
        max_retries=3,
        retry_initial_delay_seconds=0,
        retry_max_delay_seconds=0,
        retry_jitter_seconds=0,
        call_timeout_seconds=5,
        positive_class_labels={"phishing"},
    )


@pytest.fixture
def stager(staging_dir: Path) -> ArtifactStager:
    return ArtifactStager(staging_dir, chunk_size=4)


@pytest.fixture
def make_orchestrator(stager: ArtifactStager):
    """Factory building an orchestrator around fake remote services."""

    def _make(transcriber, analyzer, **kwargs) -> PipelineOrchestrator:
        kwargs.setdefault("max_retries", 3)
        kwargs.setdefault("sleep", no_sleep)
        return PipelineOrchestrator(
            stager=stager,
            transcriber=transcriber,
            analyzer=analyzer,
            aggregator=kwargs.pop("aggregator", VerdictAggregator(positive_labels={"phishing"})),
            cache=kwargs.pop("cache", VerdictCache(capacity=16)),
            **kwargs,
        )

    return _make
