"""Client for the remote phishing-classification endpoint."""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from vishguard.clients.http import send_guarded
from vishguard.errors import AnalysisFailure, InvalidInputFailure, MalformedResponseFailure
from vishguard.models import AnalysisLabel, AnalysisResult, PipelineStage

logger = structlog.get_logger(__name__)


class _AnalysisPayload(BaseModel):
    """Wire shape of an analysis response."""

    success: bool = True
    analysis: list[Any] | None = None
    timestamp: str | None = None


def normalize_groups(raw: list[Any] | None) -> tuple[tuple[AnalysisLabel, ...], ...]:
    """Normalize the ``analysis`` field into label groups.

    Accepts the documented list-of-lists shape as well as a flat list of
    label objects, which some classifier deployments return for single-pass
    input; a flat list becomes one group.

    Raises:
        ValueError: If an entry is neither a label object nor a list of them.
    """
    if not raw:
        return ()

    if all(isinstance(item, dict) for item in raw):
        raw = [raw]

    groups = []
    for group in raw:
        if not isinstance(group, list):
            raise ValueError(f"analysis group must be a list, got {type(group).__name__}")
        groups.append(tuple(AnalysisLabel.model_validate(item) for item in group))
    return tuple(groups)


class AnalysisClient:
    """Submits text for classification and returns labeled scores."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        path: str = "/analyze",
        max_text_length: int = 5000,
        truncate_long_text: bool = False,
        call_timeout_seconds: float = 60.0,
    ):
        self.http_client = http_client
        self.path = path
        self.max_text_length = max_text_length
        self.truncate_long_text = truncate_long_text
        self.call_timeout_seconds = call_timeout_seconds

    async def analyze(self, text: str) -> AnalysisResult:
        """Classify text.

        Empty text is valid and yields an empty result without a remote call.

        Args:
            text: Transcribed text.

        Returns:
            AnalysisResult, flagged ``truncated`` if the text was cut to the limit.

        Raises:
            InvalidInputFailure: Text exceeds the limit and truncation is off.
            TimeoutFailure: No response within the call bound.
            AnalysisFailure: Transport error, non-success status or ``success: false``.
            MalformedResponseFailure: Body is not the expected JSON shape.
        """
        if not text.strip():
            return AnalysisResult()

        truncated = False
        if len(text) > self.max_text_length:
            if not self.truncate_long_text:
                raise InvalidInputFailure(
                    f"Text is {len(text)} characters, limit is {self.max_text_length}"
                )
            logger.warning(
                "analysis_text_truncated",
                original_length=len(text),
                max_text_length=self.max_text_length,
            )
            text = text[: self.max_text_length]
            truncated = True

        response = await send_guarded(
            lambda: self.http_client.post(self.path, json={"text": text}),
            stage=PipelineStage.ANALYZING,
            failure_cls=AnalysisFailure,
            timeout_seconds=self.call_timeout_seconds,
            service="analysis",
        )
        payload = self._parse_payload(response)

        if not payload.success:
            raise AnalysisFailure("analysis service reported success=false", retryable=False)

        try:
            groups = normalize_groups(payload.analysis)
        except (ValueError, ValidationError) as e:
            logger.error("analysis_labels_malformed", error=str(e))
            raise MalformedResponseFailure(
                f"Unexpected analysis labels: {e}", stage=PipelineStage.ANALYZING
            ) from e

        return AnalysisResult(
            groups=groups,
            truncated=truncated,
            submitted_length=len(text),
            remote_timestamp=payload.timestamp,
        )

    def _parse_payload(self, response: httpx.Response) -> _AnalysisPayload:
        try:
            return _AnalysisPayload.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(
                "analysis_response_malformed",
                error=str(e),
                response_preview=response.text[:200],
            )
            raise MalformedResponseFailure(
                f"Unexpected analysis response: {response.text[:150]}",
                stage=PipelineStage.ANALYZING,
            ) from e
