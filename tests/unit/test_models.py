"""Unit tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from vishguard.models import (
    AnalysisLabel,
    AnalysisResult,
    Artifact,
    InputHandle,
    RiskLabel,
    TranscriptionResult,
    Verdict,
    VerdictSource,
)


def _verdict(**overrides) -> Verdict:
    data = {
        "fingerprint": "ab" * 32,
        "transcribed_text": "hello",
        "risk_score": 0.5,
        "risk_label": RiskLabel.MEDIUM,
        "timestamp": "2026-01-01T00:00:00+00:00",
    }
    data.update(overrides)
    return Verdict(**data)


class TestAnalysisLabel:
    """Tests for AnalysisLabel model."""

    def test_valid_label(self):
        label = AnalysisLabel(label="phishing", score=0.9)
        assert label.score == 0.9

    @pytest.mark.parametrize("score", [-0.01, 1.01])
    def test_score_out_of_range(self, score):
        with pytest.raises(ValidationError):
            AnalysisLabel(label="phishing", score=score)


class TestAnalysisResult:
    """Tests for AnalysisResult model."""

    def test_empty_by_default(self):
        result = AnalysisResult()
        assert result.groups == ()
        assert result.labels == []
        assert result.truncated is False

    def test_labels_flattens_groups_in_order(self):
        result = AnalysisResult(
            groups=[
                [{"label": "phishing", "score": 0.2}],
                [{"label": "benign", "score": 0.7}, {"label": "phishing", "score": 0.3}],
            ]
        )
        assert [(l.label, l.score) for l in result.labels] == [
            ("phishing", 0.2),
            ("benign", 0.7),
            ("phishing", 0.3),
        ]


class TestTranscriptionResult:
    """Tests for TranscriptionResult model."""

    def test_warnings_default_empty(self):
        assert TranscriptionResult(text="hi").warnings == ()

    def test_is_immutable(self):
        result = TranscriptionResult(text="hi", warnings=["low volume"])
        with pytest.raises(ValidationError):
            result.text = "changed"


class TestVerdict:
    """Tests for Verdict model."""

    def test_defaults_to_fresh(self):
        assert _verdict().source == VerdictSource.FRESH

    def test_as_cached_copies(self):
        verdict = _verdict()
        cached = verdict.as_cached()
        assert cached.source == VerdictSource.CACHED
        assert verdict.source == VerdictSource.FRESH
        assert cached.risk_score == verdict.risk_score

    def test_is_immutable(self):
        verdict = _verdict()
        with pytest.raises(ValidationError):
            verdict.risk_score = 0.9

    def test_json_dump_uses_enum_values(self):
        dumped = _verdict().model_dump(mode="json")
        assert dumped["risk_label"] == "medium"
        assert dumped["source"] == "fresh"


class TestArtifactAndHandle:
    """Tests for Artifact and InputHandle."""

    def test_artifact_requires_display_name(self, tmp_path):
        with pytest.raises(ValidationError):
            Artifact(local_path=tmp_path / "x", display_name="", size_bytes=0, fingerprint="00")

    def test_handle_from_path_uses_file_name(self, tmp_path):
        path = tmp_path / "call.m4a"
        path.write_bytes(b"abc")
        handle = InputHandle.from_path(path)
        assert handle.name == "call.m4a"
        with handle.opener() as stream:
            assert stream.read() == b"abc"

    def test_handle_from_bytes_opens_fresh_stream(self):
        handle = InputHandle.from_bytes(b"xyz")
        assert handle.name is None
        assert handle.opener().read() == b"xyz"
        assert handle.opener().read() == b"xyz"
