"""Client for the remote speech-to-text endpoint."""

import aiofiles
import httpx
import structlog
from pydantic import BaseModel, ValidationError

from vishguard.clients.http import send_guarded
from vishguard.errors import IOFailure, MalformedResponseFailure, TranscriptionFailure
from vishguard.models import Artifact, PipelineStage, TranscriptionResult

logger = structlog.get_logger(__name__)


class _TranscriptionPayload(BaseModel):
    """Wire shape of a transcription response."""

    text: str
    warnings: list[str] | None = None


class TranscriptionClient:
    """Uploads a staged artifact and returns its transcription.

    Does not retry. Failures carry ``retryable`` so the orchestrator can decide.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        path: str = "/transcribe",
        call_timeout_seconds: float = 60.0,
    ):
        self.http_client = http_client
        self.path = path
        self.call_timeout_seconds = call_timeout_seconds

    async def transcribe(self, artifact: Artifact) -> TranscriptionResult:
        """Send the artifact bytes and display name as one multipart upload.

        Args:
            artifact: Staged audio file.

        Returns:
            TranscriptionResult with text and warnings.

        Raises:
            IOFailure: The staged file cannot be read back.
            TimeoutFailure: No response within the call bound.
            TranscriptionFailure: Transport error or non-success status.
            MalformedResponseFailure: Body is not the expected JSON shape.
        """
        try:
            async with aiofiles.open(artifact.local_path, "rb") as f:
                content = await f.read()
        except OSError as e:
            raise IOFailure(
                f"Cannot read staged artifact {artifact.local_path}: {e}",
                stage=PipelineStage.TRANSCRIBING,
            ) from e

        files = {"file": (artifact.display_name, content, "application/octet-stream")}

        logger.debug(
            "transcription_request",
            display_name=artifact.display_name,
            size_bytes=artifact.size_bytes,
        )
        response = await send_guarded(
            lambda: self.http_client.post(self.path, files=files),
            stage=PipelineStage.TRANSCRIBING,
            failure_cls=TranscriptionFailure,
            timeout_seconds=self.call_timeout_seconds,
            service="transcription",
        )
        return self._parse(response)

    def _parse(self, response: httpx.Response) -> TranscriptionResult:
        try:
            payload = _TranscriptionPayload.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(
                "transcription_response_malformed",
                error=str(e),
                response_preview=response.text[:200],
            )
            raise MalformedResponseFailure(
                f"Unexpected transcription response: {response.text[:150]}",
                stage=PipelineStage.TRANSCRIBING,
            ) from e

        return TranscriptionResult(text=payload.text, warnings=tuple(payload.warnings or ()))
