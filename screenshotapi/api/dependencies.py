"""
API Dependencies
================

FastAPI dependencies resolving the components owned by the application lifespan.
"""

from typing import Optional

from fastapi import HTTPException, Request

from screenshotapi.core.coordinator import RequestCoordinator
from screenshotapi.core.rendering.browser import BrowserSession


def get_coordinator(request: Request) -> RequestCoordinator:
    """Request coordinator created at startup."""
    coordinator: Optional[RequestCoordinator] = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Screenshot service not initialized")
    return coordinator


def get_browser(request: Request) -> Optional[BrowserSession]:
    """Shared browser session, if started."""
    return getattr(request.app.state, "browser", None)
