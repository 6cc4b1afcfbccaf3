"""Unit tests for the analysis client."""

import json

import httpx
import pytest
import respx

from tests.conftest import BASE_URL
from vishguard.clients import AnalysisClient, create_http_client
from vishguard.clients.analysis import normalize_groups
from vishguard.errors import (
    AnalysisFailure,
    InvalidInputFailure,
    MalformedResponseFailure,
    TimeoutFailure,
)
from vishguard.models import PipelineStage


async def _analyze(settings, text: str, **client_kwargs):
    async with create_http_client(settings) as http_client:
        client = AnalysisClient(http_client, **client_kwargs)
        return await client.analyze(text)


def _ok(analysis, timestamp="2026-01-01T00:00:00Z") -> httpx.Response:
    return httpx.Response(200, json={"success": True, "analysis": analysis, "timestamp": timestamp})


class TestNormalizeGroups:
    """Tests for response shape normalization."""

    def test_nested_groups(self):
        groups = normalize_groups([[{"label": "phishing", "score": 0.9}], [{"label": "benign", "score": 0.4}]])
        assert len(groups) == 2
        assert groups[0][0].label == "phishing"

    def test_flat_list_becomes_one_group(self):
        groups = normalize_groups([{"label": "phishing", "score": 0.9}, {"label": "benign", "score": 0.1}])
        assert len(groups) == 1
        assert [l.label for l in groups[0]] == ["phishing", "benign"]

    @pytest.mark.parametrize("raw", [None, []])
    def test_empty(self, raw):
        assert normalize_groups(raw) == ()

    def test_rejects_mixed_shapes(self):
        with pytest.raises(ValueError):
            normalize_groups([{"label": "phishing", "score": 0.9}, [{"label": "benign", "score": 0.1}]])


class TestAnalysisClient:
    """Tests for AnalysisClient against a mocked endpoint."""

    @pytest.mark.asyncio
    async def test_success(self, settings):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            route = respx_mock.post("/analyze").mock(
                return_value=_ok([[{"label": "phishing", "score": 0.9}, {"label": "benign", "score": 0.1}]])
            )
            result = await _analyze(settings, "please read me the code")

        assert json.loads(route.calls.last.request.read()) == {"text": "please read me the code"}
        assert [(l.label, l.score) for l in result.labels] == [("phishing", 0.9), ("benign", 0.1)]
        assert result.remote_timestamp == "2026-01-01T00:00:00Z"
        assert result.truncated is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n"])
    async def test_empty_text_skips_remote_call(self, settings, text):
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
            route = respx_mock.post("/analyze").mock(return_value=_ok([]))
            result = await _analyze(settings, text)

        assert route.call_count == 0
        assert result.groups == ()

    @pytest.mark.asyncio
    async def test_empty_analysis(self, settings):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.post("/analyze").mock(return_value=_ok([]))
            result = await _analyze(settings, "hello")

        assert result.groups == ()

    @pytest.mark.asyncio
    async def test_too_long_text_rejected_before_sending(self, settings):
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
            route = respx_mock.post("/analyze").mock(return_value=_ok([]))
            with pytest.raises(InvalidInputFailure) as exc_info:
                await _analyze(settings, "x" * 11, max_text_length=10)

        assert route.call_count == 0
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_too_long_text_truncated_and_flagged(self, settings):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            route = respx_mock.post("/analyze").mock(return_value=_ok([]))
            result = await _analyze(settings, "abcdefghijkl", max_text_length=10, truncate_long_text=True)

        assert json.loads(route.calls.last.request.read()) == {"text": "abcdefghij"}
        assert result.truncated is True
        assert result.submitted_length == 10

    @pytest.mark.asyncio
    async def test_success_false_is_analysis_failure(self, settings):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.post("/analyze").mock(
                return_value=httpx.Response(200, json={"success": False, "analysis": [], "timestamp": "t"})
            )
            with pytest.raises(AnalysisFailure) as exc_info:
                await _analyze(settings, "hello")

        assert exc_info.value.retryable is False
        assert exc_info.value.stage == PipelineStage.ANALYZING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,retryable", [(500, True), (429, True), (400, False), (404, False)])
    async def test_http_errors(self, settings, status, retryable):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.post("/analyze").mock(return_value=httpx.Response(status))
            with pytest.raises(AnalysisFailure) as exc_info:
                await _analyze(settings, "hello")

        assert exc_info.value.retryable is retryable
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_timeout(self, settings):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.post("/analyze").mock(side_effect=httpx.ConnectTimeout)
            with pytest.raises(TimeoutFailure) as exc_info:
                await _analyze(settings, "hello")

        assert exc_info.value.stage == PipelineStage.ANALYZING

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"success": True, "analysis": [[{"label": "phishing", "score": 1.5}]]},
            {"success": True, "analysis": [[{"label": "phishing"}]]},
            {"success": True, "analysis": ["phishing"]},
            {"success": "maybe", "analysis": []},
        ],
    )
    async def test_malformed(self, settings, body):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.post("/analyze").mock(return_value=httpx.Response(200, json=body))
            with pytest.raises(MalformedResponseFailure):
                await _analyze(settings, "hello")
