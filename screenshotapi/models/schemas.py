"""
Pydantic Models and Schemas
===========================

Core data models for capture requests, capture results and API responses.
All models include validation and type hints.
"""

from typing import Optional, Dict, Any, Literal
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_VIEWPORT_WIDTH = 1920
DEFAULT_VIEWPORT_HEIGHT = 1080
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_DEVICE_SCALE_FACTOR = 2.0
MAX_DIMENSION = 10000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageFormat(str, Enum):
    """Output image formats."""

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"


class ImageDimensions(BaseModel):
    """Pixel dimensions of an encoded image."""

    width: int = Field(..., ge=0, description="Image width in pixels")
    height: int = Field(..., ge=0, description="Image height in pixels")


class CaptureRequest(BaseModel):
    """A single screenshot request.

    ``width``/``height`` double as the viewport size and the post-processing
    target box; when omitted the viewport falls back to 1920x1080 and no
    resize target is applied.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str = Field(..., description="Target URL to capture")
    width: Optional[int] = Field(None, gt=0, le=MAX_DIMENSION, description="Viewport/target width")
    height: Optional[int] = Field(
        None, gt=0, le=MAX_DIMENSION, description="Viewport/target height"
    )
    format: ImageFormat = Field(ImageFormat.PNG, description="Output image format")
    quality: Optional[int] = Field(None, description="Encode quality (1-100), clamped")
    full_page: bool = Field(False, alias="fullPage", description="Capture the full scrollable page")
    selector: Optional[str] = Field(None, description="CSS selector restricting the capture")
    delay: int = Field(0, ge=0, description="Extra wait after load, in milliseconds")
    timeout: int = Field(
        DEFAULT_TIMEOUT_MS, gt=0, description="Navigation timeout in milliseconds"
    )
    device_scale_factor: float = Field(
        DEFAULT_DEVICE_SCALE_FACTOR,
        gt=0,
        alias="deviceScaleFactor",
        description="Reported window.devicePixelRatio",
    )

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("quality")
    @classmethod
    def clamp_quality(cls, v: Optional[int]) -> Optional[int]:
        """Clamp quality into [1, 100]."""
        if v is None:
            return None
        return max(1, min(100, v))

    @field_validator("selector")
    @classmethod
    def blank_selector_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def viewport_width(self) -> int:
        return self.width or DEFAULT_VIEWPORT_WIDTH

    @property
    def viewport_height(self) -> int:
        height = self.height or DEFAULT_VIEWPORT_HEIGHT
        # Full-page captures start from at least a 1080px viewport so short
        # initial layouts do not collapse before content loads.
        if self.full_page:
            return max(height, DEFAULT_VIEWPORT_HEIGHT)
        return height


class CaptureResult(BaseModel):
    """Outcome of handling a CaptureRequest.

    Exactly one of (data and dimensions) or error is populated.
    """

    success: bool = Field(..., description="Whether the capture succeeded")
    data: Optional[bytes] = Field(None, description="Encoded image bytes", exclude=True)
    format: Optional[ImageFormat] = Field(None, description="Resolved output format")
    size: Optional[int] = Field(None, ge=0, description="Encoded size in bytes")
    dimensions: Optional[ImageDimensions] = Field(None, description="Final pixel dimensions")
    cached: bool = Field(False, description="Whether the bytes came from the cache")
    error: Optional[str] = Field(None, description="Error message if failed")
    error_code: Optional[str] = Field(None, description="Machine-readable error code")
    status_code: int = Field(200, description="HTTP-style status classification")

    @model_validator(mode="after")
    def check_populated_fields(self) -> "CaptureResult":
        if self.success:
            if self.data is None or self.dimensions is None:
                raise ValueError("Successful result requires data and dimensions")
            if self.error is not None:
                raise ValueError("Successful result cannot carry an error")
        else:
            if not self.error:
                raise ValueError("Failed result requires an error message")
            if self.data is not None or self.dimensions is not None:
                raise ValueError("Failed result cannot carry image data")
        return self

    @classmethod
    def succeeded(
        cls,
        data: bytes,
        image_format: ImageFormat,
        dimensions: ImageDimensions,
        cached: bool = False,
    ) -> "CaptureResult":
        return cls(
            success=True,
            data=data,
            format=image_format,
            size=len(data),
            dimensions=dimensions,
            cached=cached,
        )

    @classmethod
    def failed(cls, error: str, error_code: str, status_code: int = 500) -> "CaptureResult":
        return cls(success=False, error=error, error_code=error_code, status_code=status_code)

    @property
    def content_type(self) -> Optional[str]:
        return self.format.content_type if self.format else None


class CacheClearResult(BaseModel):
    """Result of a clear-all request against the cache."""

    cleared: bool = Field(..., description="Whether the cache was cleared")
    reason: Optional[str] = Field(None, description="Why the cache was not cleared")


# Health Check Models
class HealthStatus(BaseModel):
    """Health check status."""

    status: Literal["ok", "degraded"] = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    version: str = Field(..., description="Application version")
    cache: Literal["available", "unavailable"] = Field(..., description="Cache availability")
    browser: bool = Field(..., description="Browser session status")


# Error Models
class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
