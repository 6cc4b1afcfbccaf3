"""Shared httpx client and request error mapping."""

import asyncio
from typing import Awaitable, Callable

import httpx
import structlog

from vishguard.config import Settings
from vishguard.errors import RemoteServiceFailure, TimeoutFailure
from vishguard.models import PipelineStage

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429})


def is_retryable_status(status_code: int) -> bool:
    """5xx and a few throttling/timeout 4xx codes are worth another attempt."""
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES


async def _log_request(request: httpx.Request) -> None:
    logger.debug("http_request", method=request.method, url=str(request.url))


async def _log_response(response: httpx.Response) -> None:
    logger.debug(
        "http_response",
        method=response.request.method,
        url=str(response.request.url),
        status_code=response.status_code,
    )


def create_http_client(settings: Settings, **kwargs) -> httpx.AsyncClient:
    """Create the process-wide async HTTP client.

    Args:
        settings: Base URL and timeout configuration.
        **kwargs: Extra ``httpx.AsyncClient`` arguments (e.g. a test transport).

    Returns:
        Configured AsyncClient. The caller owns it and must ``aclose()`` it.
    """
    timeout = httpx.Timeout(
        connect=settings.connect_timeout_seconds,
        read=settings.read_timeout_seconds,
        write=settings.write_timeout_seconds,
        pool=settings.connect_timeout_seconds,
    )
    return httpx.AsyncClient(
        base_url=settings.base_url,
        timeout=timeout,
        event_hooks={"request": [_log_request], "response": [_log_response]},
        **kwargs,
    )


async def send_guarded(
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    stage: PipelineStage,
    failure_cls: type[RemoteServiceFailure],
    timeout_seconds: float,
    service: str,
) -> httpx.Response:
    """Run one request under a hard time bound and map failures to the taxonomy.

    Returns the response only for 2xx statuses.

    Raises:
        TimeoutFailure: No response within ``timeout_seconds`` or an httpx timeout.
        RemoteServiceFailure: Transport error or non-success status (as ``failure_cls``).
    """
    try:
        response = await asyncio.wait_for(send(), timeout=timeout_seconds)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.warning(f"{service}_request_timeout", timeout_seconds=timeout_seconds)
        raise TimeoutFailure(
            f"{service} service did not respond within {timeout_seconds}s", stage=stage
        ) from e
    except httpx.TransportError as e:
        logger.warning(f"{service}_transport_error", error=str(e), error_type=type(e).__name__)
        raise failure_cls(
            f"{service} service unreachable: {type(e).__name__}: {e}",
            retryable=True,
        ) from e

    if response.is_success:
        return response

    retryable = is_retryable_status(response.status_code)
    logger.warning(
        f"{service}_request_failed",
        status_code=response.status_code,
        retryable=retryable,
        body_preview=response.text[:200],
    )
    raise failure_cls(
        f"{service} service returned HTTP {response.status_code}",
        status_code=response.status_code,
        retryable=retryable,
    )
