"""
FastAPI app exposing the screening pipeline over HTTP.

Endpoints:
- POST /api/analyze - upload a recording, receive a verdict
- GET /api/health - liveness and cache size

One orchestrator (and its HTTP client and cache) is created at startup and
shared by all requests.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from vishguard import __version__
from vishguard.api.routes import analyze
from vishguard.config import Settings, configure_logging, get_settings
from vishguard.pipeline import PipelineOrchestrator, create_orchestrator

logger = structlog.get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    orchestrator: PipelineOrchestrator | None = None,
) -> FastAPI:
    """Build the API app.

    Args:
        settings: Optional custom settings. Uses defaults if not provided.
        orchestrator: Pre-built orchestrator (tests); one is created from
            settings at startup otherwise.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = orchestrator is None
        app.state.settings = settings
        app.state.orchestrator = orchestrator or create_orchestrator(settings)
        logger.info("api_started", base_url=settings.base_url, version=__version__)
        yield
        if owned:
            await app.state.orchestrator.aclose()
        logger.info("api_stopped")

    app = FastAPI(
        title="vishguard API",
        description="Screens call recordings for voice phishing",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(analyze.router, prefix="/api", tags=["Analysis"])
    return app


def run(settings: Settings | None = None) -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)
