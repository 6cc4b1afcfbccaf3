"""
Analyze Route

Accepts an audio upload and returns its phishing-risk verdict.
"""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from vishguard import __version__
from vishguard.api.schemas import ErrorResponse, HealthResponse, VerdictResponse
from vishguard.errors import (
    InvalidInputFailure,
    IOFailure,
    PipelineFailure,
    TimeoutFailure,
)
from vishguard.models import InputHandle
from vishguard.pipeline import PipelineOrchestrator

router = APIRouter()


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


def status_for_failure(failure: PipelineFailure) -> int:
    """HTTP status reported for a pipeline failure."""
    if isinstance(failure, InvalidInputFailure):
        return 400
    if isinstance(failure, IOFailure):
        return 500
    if isinstance(failure, TimeoutFailure):
        return 504
    if failure.retryable:
        return 503
    return 502


@router.post(
    "/analyze",
    response_model=VerdictResponse,
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def analyze_recording(request: Request, file: UploadFile = File(...)):
    """
    Screen an uploaded recording for phishing.

    The file is staged, transcribed and classified; repeated uploads of the
    same content are answered from cache.

    Returns:
        VerdictResponse, or an ErrorResponse with a status matching the failure
    """
    max_bytes = request.app.state.settings.max_upload_bytes

    content = await file.read()
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB",
        )
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty file")

    orchestrator = get_orchestrator(request)
    try:
        verdict = await orchestrator.process(InputHandle.from_bytes(content, file.filename))
    except PipelineFailure as e:
        body = ErrorResponse(**e.to_dict())
        return JSONResponse(status_code=status_for_failure(e), content=body.model_dump())

    return VerdictResponse.from_verdict(verdict, file.filename, len(content))


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        version=__version__,
        cached_verdicts=len(get_orchestrator(request).cache),
    )
