"""
Screenshot Routes
=================

FastAPI routes for capturing screenshots and managing the cache.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from screenshotapi.api.dependencies import get_coordinator
from screenshotapi.core.coordinator import RequestCoordinator
from screenshotapi.models.schemas import (
    CaptureRequest,
    CaptureResult,
    ErrorResponse,
    ImageFormat,
)

router = APIRouter(tags=["Screenshot"])


def result_response(result: CaptureResult, request: Request) -> Response:
    """Map a capture result onto an image or JSON error response."""
    if not result.success or result.data is None or result.dimensions is None:
        error_response = ErrorResponse(
            error=result.error or "Screenshot failed",
            error_code=result.error_code,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(
            status_code=result.status_code, content=error_response.model_dump(mode="json")
        )

    return Response(
        content=result.data,
        media_type=result.content_type,
        headers={
            "X-Screenshot-Cached": "true" if result.cached else "false",
            "X-Screenshot-Size": str(result.size),
            "X-Screenshot-Width": str(result.dimensions.width),
            "X-Screenshot-Height": str(result.dimensions.height),
        },
    )


@router.post("/screenshot")
async def capture_screenshot(
    capture_request: CaptureRequest,
    request: Request,
    coordinator: RequestCoordinator = Depends(get_coordinator),
) -> Response:
    """Capture a screenshot described by a JSON body."""
    result = await coordinator.handle(capture_request)
    return result_response(result, request)


@router.get("/screenshot")
async def capture_screenshot_query(
    request: Request,
    url: str = Query(..., description="Target URL to capture"),
    width: Optional[int] = Query(None, gt=0),
    height: Optional[int] = Query(None, gt=0),
    format: ImageFormat = Query(ImageFormat.PNG),
    quality: Optional[int] = Query(None),
    full_page: bool = Query(False, alias="fullPage"),
    selector: Optional[str] = Query(None),
    delay: int = Query(0, ge=0),
    timeout: Optional[int] = Query(None, gt=0),
    device_scale_factor: Optional[float] = Query(None, gt=0, alias="deviceScaleFactor"),
    coordinator: RequestCoordinator = Depends(get_coordinator),
) -> Response:
    """Capture a screenshot described by query parameters."""
    fields: Dict[str, Any] = {
        "url": url,
        "width": width,
        "height": height,
        "format": format,
        "quality": quality,
        "full_page": full_page,
        "selector": selector,
        "delay": delay,
    }
    if timeout is not None:
        fields["timeout"] = timeout
    if device_scale_factor is not None:
        fields["device_scale_factor"] = device_scale_factor

    try:
        capture_request = CaptureRequest(**fields)
    except PydanticValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = await coordinator.handle(capture_request)
    return result_response(result, request)


@router.delete("/cache")
async def clear_cache(coordinator: RequestCoordinator = Depends(get_coordinator)) -> Any:
    """Clear every cached screenshot."""
    outcome = await coordinator.clear_cache()
    if not outcome.cleared:
        return JSONResponse(status_code=503, content={"error": outcome.reason})
    return {"message": "Cache cleared successfully"}
