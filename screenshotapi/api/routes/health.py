"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from screenshotapi.api.dependencies import get_browser
from screenshotapi.core.rendering.browser import BrowserSession
from screenshotapi.models.schemas import HealthStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(
    request: Request, browser: Optional[BrowserSession] = Depends(get_browser)
) -> HealthStatus:
    """Report cache availability and browser session state."""
    coordinator = getattr(request.app.state, "coordinator", None)
    cache_available = bool(coordinator and coordinator.cache_available)
    browser_connected = bool(browser and browser.is_connected)

    return HealthStatus(
        status="ok" if browser_connected else "degraded",
        version=request.app.version,
        cache="available" if cache_available else "unavailable",
        browser=browser_connected,
    )
