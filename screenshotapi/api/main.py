"""
FastAPI Application
==================

Main FastAPI application exposing screenshot capture, cache management and
health endpoints over the request coordinator.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import uvicorn

from screenshotapi.api.routes.health import router as health_router
from screenshotapi.api.routes.screenshot import router as screenshot_router
from screenshotapi.config.logging import get_logger
from screenshotapi.config.settings import get_settings
from screenshotapi.core.cache.store import CacheStore
from screenshotapi.core.coordinator import RequestCoordinator
from screenshotapi.core.rendering.browser import (
    BrowserSessionError,
    close_browser_session,
    initialize_browser_session,
)
from screenshotapi.core.rendering.capture import CaptureOrchestrator
from screenshotapi.models.schemas import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting screenshot service", environment=settings.environment)

    # The cache is optional; connect() degrades to a disabled store on failure.
    cache = CacheStore(settings)
    await cache.connect()

    try:
        browser = await initialize_browser_session()
    except BrowserSessionError as e:
        await cache.close()
        raise RuntimeError(f"Browser session initialization failed: {e}")

    app.state.browser = browser
    app.state.coordinator = RequestCoordinator(
        cache=cache,
        orchestrator=CaptureOrchestrator(browser, settings=settings),
        settings=settings,
    )
    logger.info("Screenshot service ready", cache_available=cache.available)

    try:
        yield
    finally:
        logger.info("Shutting down screenshot service")
        app.state.coordinator = None
        app.state.browser = None

        try:
            await close_browser_session()
        except Exception as e:
            logger.error("Error closing browser session", error=str(e))

        await cache.close()


def create_app() -> FastAPI:
    """
    Application factory.

    Returns:
        FastAPI application instance
    """
    settings = get_settings()
    application = FastAPI(
        title=settings.app_name,
        description="Render web pages to PNG, JPEG or WebP screenshots",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    if settings.cors_enabled:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_hosts,
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
            expose_headers=[
                "X-Request-ID",
                "X-Screenshot-Cached",
                "X-Screenshot-Size",
                "X-Screenshot-Width",
                "X-Screenshot-Height",
            ],
        )

    @application.middleware("http")
    async def add_request_id(request: Request, call_next) -> Response:  # type: ignore
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @application.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """HTTP exception handler with structured error response."""
        error_response = ErrorResponse(
            error=str(exc.detail),
            error_code=str(exc.status_code),
            request_id=getattr(request.state, "request_id", None),
        )

        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=error_response.request_id,
        )
        return JSONResponse(
            status_code=exc.status_code, content=error_response.model_dump(mode="json")
        )

    @application.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """General exception handler for unexpected errors."""
        error_response = ErrorResponse(
            error="Internal server error",
            error_code="INTERNAL_ERROR",
            details={"exception": str(exc)} if settings.debug else None,
            request_id=getattr(request.state, "request_id", None),
        )

        logger.error(
            "Unhandled exception",
            exception=str(exc),
            request_id=error_response.request_id,
            exc_info=True,
        )
        return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))

    application.include_router(health_router)
    application.include_router(screenshot_router)
    return application


app = create_app()


def run_server() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "screenshotapi.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
