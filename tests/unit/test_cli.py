"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from tests.fakes import FakeAnalyzer, FakeTranscriber, analysis_of
from vishguard import cli
from vishguard.errors import TranscriptionFailure
from vishguard.models import TranscriptionResult

runner = CliRunner()


@pytest.fixture
def patched_cli(monkeypatch, settings, make_orchestrator):
    """Point the CLI at test settings and an orchestrator built from fakes."""

    def _patch(transcriber, analyzer):
        orchestrator = make_orchestrator(transcriber, analyzer)
        monkeypatch.setattr(cli, "get_settings", lambda: settings)
        monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
        monkeypatch.setattr(cli, "create_orchestrator", lambda _settings: orchestrator)
        return orchestrator

    return _patch


class TestAnalyzeCommand:
    """Tests for `vishguard analyze`."""

    def test_prints_verdict_as_json(self, patched_cli, tmp_path):
        recording = tmp_path / "call.wav"
        recording.write_bytes(b"audio bytes")
        patched_cli(
            FakeTranscriber(TranscriptionResult(text="confirm your pin")),
            FakeAnalyzer(analysis_of([("phishing", 0.95)])),
        )

        result = runner.invoke(cli.app, ["analyze", str(recording), "--json"])

        assert result.exit_code == 0
        assert '"risk_label": "high"' in result.output
        assert '"source": "fresh"' in result.output

    def test_summary_output(self, patched_cli, tmp_path):
        recording = tmp_path / "call.wav"
        recording.write_bytes(b"audio bytes")
        patched_cli(FakeTranscriber(TranscriptionResult(text="hello")), FakeAnalyzer())

        result = runner.invoke(cli.app, ["analyze", str(recording)])

        assert result.exit_code == 0
        assert "call.wav" in result.output
        assert "LOW" in result.output

    def test_failure_exits_nonzero(self, patched_cli, tmp_path):
        recording = tmp_path / "call.wav"
        recording.write_bytes(b"audio bytes")
        patched_cli(FakeTranscriber(TranscriptionFailure("unsupported", status_code=415)), FakeAnalyzer())

        result = runner.invoke(cli.app, ["analyze", str(recording), "--json"])

        assert result.exit_code == 1
        assert "transcription_failure" in result.output

    def test_missing_file_rejected(self, patched_cli, tmp_path):
        patched_cli(FakeTranscriber(), FakeAnalyzer())

        result = runner.invoke(cli.app, ["analyze", str(tmp_path / "missing.wav")])

        assert result.exit_code != 0


class TestInfoCommand:
    """Tests for `vishguard info`."""

    def test_shows_settings(self, patched_cli):
        patched_cli(FakeTranscriber(), FakeAnalyzer())

        result = runner.invoke(cli.app, ["info"])

        assert result.exit_code == 0
        assert "http://speech.test" in result.output
        assert "phishing" in result.output
