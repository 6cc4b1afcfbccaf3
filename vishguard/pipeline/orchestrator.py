"""Pipeline Orchestrator - the single entry point callers use.

Run states:
    STAGING -> TRANSCRIBING -> ANALYZING -> MERGING -> DONE
    any step -> FAILED

A run stages the input, looks its fingerprint up in the cache and, on a miss,
drives transcription then analysis with per-stage retry budgets before merging
and caching the verdict. The staged artifact is released on every exit path.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    stop_any,
    wait_exponential_jitter,
)

from vishguard.aggregation import VerdictAggregator
from vishguard.cache import VerdictCache
from vishguard.clients import (
    AnalysisClient,
    Analyzer,
    Transcriber,
    TranscriptionClient,
    create_http_client,
)
from vishguard.config import Settings, get_settings
from vishguard.errors import (
    AnalysisFailure,
    PipelineFailure,
    RemoteServiceFailure,
    TimeoutFailure,
    TranscriptionFailure,
)
from vishguard.models import Artifact, InputHandle, PipelineStage, Verdict
from vishguard.staging import ArtifactStager

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class PipelineRun:
    """Mutable bookkeeping for one ``process`` call."""

    run_id: str
    deadline: float | None = None
    stage: PipelineStage = PipelineStage.STAGING
    history: list[PipelineStage] = field(default_factory=list)

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, PipelineFailure) and exc.retryable


def _is_deadline_exceeded(exc: BaseException) -> bool:
    """True for failures caused only by one caller running out of its own time."""
    return isinstance(exc, TimeoutFailure) and exc.deadline_exceeded


class PipelineOrchestrator:
    """Sequences staging, transcription, analysis and merging.

    Example:
        orchestrator = create_orchestrator()
        try:
            verdict = await orchestrator.process(InputHandle.from_path("call.m4a"))
        finally:
            await orchestrator.aclose()
    """

    def __init__(
        self,
        stager: ArtifactStager,
        transcriber: Transcriber,
        analyzer: Analyzer,
        aggregator: VerdictAggregator,
        cache: VerdictCache,
        *,
        max_retries: int = 3,
        retry_initial_delay: float = 1.0,
        retry_max_delay: float = 30.0,
        retry_jitter: float = 1.0,
        default_timeout_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ):
        self.stager = stager
        self.transcriber = transcriber
        self.analyzer = analyzer
        self.aggregator = aggregator
        self.cache = cache
        self.max_retries = max_retries
        self.retry_initial_delay = retry_initial_delay
        self.retry_max_delay = retry_max_delay
        self.retry_jitter = retry_jitter
        self.default_timeout_seconds = default_timeout_seconds
        self.sleep = sleep
        self._on_close = on_close

    async def aclose(self) -> None:
        """Release shared resources such as the HTTP client."""
        if self._on_close is not None:
            await self._on_close()

    async def __aenter__(self) -> "PipelineOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def process(self, handle: InputHandle, timeout_seconds: float | None = None) -> Verdict:
        """Produce a verdict for one audio input.

        Args:
            handle: Source stream plus optional name hint.
            timeout_seconds: Overall deadline for this call. Falls back to the
                configured default; None means no overall deadline.

        Returns:
            Verdict, with ``source=CACHED`` when no remote work was done for this call.

        Raises:
            PipelineFailure: A typed failure (IOFailure, TimeoutFailure,
                TranscriptionFailure, AnalysisFailure, MalformedResponseFailure,
                InvalidInputFailure).
        """
        timeout_seconds = timeout_seconds if timeout_seconds is not None else self.default_timeout_seconds
        run = PipelineRun(
            run_id=uuid.uuid4().hex[:12],
            deadline=time.monotonic() + timeout_seconds if timeout_seconds is not None else None,
        )
        log = logger.bind(run_id=run.run_id)
        log.info("pipeline_start", input_name=handle.name, timeout_seconds=timeout_seconds)

        artifact: Artifact | None = None
        try:
            self._transition(run, PipelineStage.STAGING)
            artifact = await self.stager.stage(handle)

            remaining = run.remaining()
            try:
                verdict, computed = await self.cache.get_or_compute(
                    artifact.fingerprint,
                    lambda: self._compute(run, artifact),
                    wait_timeout=max(remaining, 0.0) if remaining is not None else None,
                    hand_over=_is_deadline_exceeded,
                )
            except asyncio.TimeoutError as e:
                raise TimeoutFailure(
                    "Deadline exceeded waiting for an in-flight run of the same content",
                    stage=run.stage,
                    deadline_exceeded=True,
                ) from e
            if not computed:
                log.info("pipeline_cache_hit", fingerprint=artifact.fingerprint[:16])
                verdict = verdict.as_cached()

            self._transition(run, PipelineStage.DONE)
            log.info(
                "pipeline_complete",
                risk_score=verdict.risk_score,
                risk_label=verdict.risk_label.value,
                source=verdict.source.value,
            )
            return verdict

        except PipelineFailure as e:
            if e.stage is None:
                e.stage = run.stage
            self._transition(run, PipelineStage.FAILED)
            log.error(
                "pipeline_failed",
                stage=e.stage.value,
                kind=e.kind.value,
                retryable=e.retryable,
                error=e.message,
            )
            raise

        except asyncio.CancelledError:
            log.warning("pipeline_cancelled", stage=run.stage.value)
            raise

        finally:
            if artifact is not None:
                await self.stager.release(artifact)

    async def _compute(self, run: PipelineRun, artifact: Artifact) -> Verdict:
        """Remote part of a run; only executed on a cache miss."""
        self._transition(run, PipelineStage.TRANSCRIBING)
        transcription = await self._call_with_retry(
            lambda: self.transcriber.transcribe(artifact),
            run,
            PipelineStage.TRANSCRIBING,
            TranscriptionFailure,
        )

        self._transition(run, PipelineStage.ANALYZING)
        analysis = await self._call_with_retry(
            lambda: self.analyzer.analyze(transcription.text),
            run,
            PipelineStage.ANALYZING,
            AnalysisFailure,
        )

        self._transition(run, PipelineStage.MERGING)
        return self.aggregator.merge(artifact.fingerprint, transcription, analysis)

    async def _call_with_retry(
        self,
        call: Callable[[], Awaitable[T]],
        run: PipelineRun,
        stage: PipelineStage,
        failure_cls: type[RemoteServiceFailure],
    ) -> T:
        """Run one remote stage with its own retry budget.

        Retryable failures are retried with exponential backoff and jitter
        until the budget or the run's deadline runs out.
        """
        retrying = AsyncRetrying(
            stop=stop_any(
                stop_after_attempt(self.max_retries + 1),
                lambda _state: run.expired(),
            ),
            wait=self._backoff(run),
            retry=retry_if_exception(_is_retryable),
            sleep=self.sleep,
            before_sleep=self._log_retry(run, stage),
            reraise=True,
        )

        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    result = await self._attempt(call, run, stage, failure_cls)
        except PipelineFailure as e:
            if not e.retryable:
                raise

            if run.expired():
                raise TimeoutFailure(
                    f"Deadline exceeded during {stage.value} after {attempts} attempts",
                    stage=stage,
                    deadline_exceeded=True,
                ) from e

            raise failure_cls(
                f"{stage.value} failed after {attempts} attempts: {e.message}",
                status_code=getattr(e, "status_code", None),
                retryable=True,
                cause=e,
                attempts=attempts,
                stage=stage,
            ) from e

        return result

    async def _attempt(
        self,
        call: Callable[[], Awaitable[T]],
        run: PipelineRun,
        stage: PipelineStage,
        failure_cls: type[RemoteServiceFailure],
    ) -> T:
        """One attempt, bounded by whatever is left of the run's deadline."""
        remaining = run.remaining()
        if remaining is not None and remaining <= 0:
            raise TimeoutFailure(
                f"Deadline exceeded before {stage.value}", stage=stage, deadline_exceeded=True
            )

        try:
            if remaining is None:
                return await call()
            return await asyncio.wait_for(call(), timeout=remaining)
        except asyncio.TimeoutError as e:
            if run.expired():
                raise TimeoutFailure(
                    f"Deadline exceeded during {stage.value}", stage=stage, deadline_exceeded=True
                ) from e
            raise TimeoutFailure(f"{stage.value} call timed out", stage=stage) from e
        except PipelineFailure:
            raise
        except Exception as e:
            logger.exception(f"{stage.value}_unexpected_error", run_id=run.run_id)
            raise failure_cls(
                f"Unexpected error during {stage.value}: {type(e).__name__}: {e}",
                retryable=False,
                stage=stage,
            ) from e

    def _backoff(self, run: PipelineRun) -> Callable[[RetryCallState], float]:
        base = wait_exponential_jitter(
            initial=self.retry_initial_delay,
            max=self.retry_max_delay,
            jitter=self.retry_jitter,
        )

        def wait(retry_state: RetryCallState) -> float:
            delay = base(retry_state)
            remaining = run.remaining()
            if remaining is not None:
                delay = max(0.0, min(delay, remaining))
            return delay

        return wait

    def _log_retry(self, run: PipelineRun, stage: PipelineStage) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "pipeline_stage_retry",
                run_id=run.run_id,
                stage=stage.value,
                attempt=retry_state.attempt_number,
                sleep_seconds=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
                error=str(exc),
            )

        return before_sleep

    def _transition(self, run: PipelineRun, stage: PipelineStage) -> None:
        logger.debug(
            "pipeline_stage_transition",
            run_id=run.run_id,
            from_stage=run.stage.value,
            to_stage=stage.value,
        )
        run.stage = stage
        run.history.append(stage)


def create_orchestrator(settings: Settings | None = None, **http_kwargs) -> PipelineOrchestrator:
    """Create an orchestrator wired to the configured remote services.

    Args:
        settings: Optional custom settings. Uses defaults if not provided.
        **http_kwargs: Extra ``httpx.AsyncClient`` arguments (e.g. a transport).

    Returns:
        PipelineOrchestrator owning one shared HTTP client; close it with ``aclose()``.
    """
    settings = settings or get_settings()
    http_client = create_http_client(settings, **http_kwargs)

    return PipelineOrchestrator(
        stager=ArtifactStager(settings.staging_dir, chunk_size=settings.stage_chunk_bytes),
        transcriber=TranscriptionClient(
            http_client,
            path=settings.transcribe_path,
            call_timeout_seconds=settings.call_timeout_seconds,
        ),
        analyzer=AnalysisClient(
            http_client,
            path=settings.analyze_path,
            max_text_length=settings.max_text_length,
            truncate_long_text=settings.truncate_long_text,
            call_timeout_seconds=settings.call_timeout_seconds,
        ),
        aggregator=VerdictAggregator(
            positive_labels=settings.positive_class_labels,
            thresholds=settings.risk_band_thresholds,
        ),
        cache=VerdictCache(
            capacity=settings.cache_capacity,
            ttl_seconds=settings.cache_ttl_seconds,
        ),
        max_retries=settings.max_retries,
        retry_initial_delay=settings.retry_initial_delay_seconds,
        retry_max_delay=settings.retry_max_delay_seconds,
        retry_jitter=settings.retry_jitter_seconds,
        default_timeout_seconds=settings.pipeline_timeout_seconds,
        on_close=http_client.aclose,
    )
