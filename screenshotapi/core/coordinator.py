"""
Request Coordinator
===================

Sequences cache lookup -> render -> cache store for a single capture request.
The cache is best-effort: an unavailable backend behaves like a permanent miss
and never fails a request.
"""

from typing import Optional, Any
from urllib.parse import urlsplit
import asyncio
import time

from screenshotapi.config.logging import get_logger
from screenshotapi.config.settings import Settings, get_settings
from screenshotapi.core.cache.store import CacheStore
from screenshotapi.core.errors import ScreenshotError, ValidationError
from screenshotapi.core.rendering.capture import CaptureOrchestrator
from screenshotapi.core.rendering.image_processor import ImageProcessor, read_dimensions
from screenshotapi.models.schemas import CacheClearResult, CaptureRequest, CaptureResult

logger = get_logger(__name__)

ALLOWED_SCHEMES = ("http", "https")


def validate_url(url: str) -> str:
    """
    Check that a URL is absolute http(s) with a host.

    Raises:
        ValidationError: If the URL is missing or malformed
    """
    if not url:
        raise ValidationError("URL is required")

    try:
        parts = urlsplit(url)
        # Accessing port validates the netloc's port component.
        parts.port
    except ValueError as e:
        raise ValidationError(f"Invalid URL format: {e}") from e

    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.hostname:
        raise ValidationError("Invalid URL format")
    return url


class RequestCoordinator:
    """Entry point of the capture-and-cache pipeline."""

    def __init__(
        self,
        cache: CacheStore,
        orchestrator: CaptureOrchestrator,
        processor: Optional[ImageProcessor] = None,
        settings: Optional[Settings] = None,
    ):
        self.cache = cache
        self.orchestrator = orchestrator
        self.processor = processor or ImageProcessor()
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="request_coordinator")

    @property
    def cache_available(self) -> bool:
        """Health probe for the cache backend."""
        return self.cache.available

    async def handle(self, request: CaptureRequest) -> CaptureResult:
        """
        Serve a capture request from cache or by rendering it.

        Args:
            request: Capture request

        Returns:
            CaptureResult carrying image bytes or an error
        """
        try:
            validate_url(request.url)
        except ValidationError as e:
            self.logger.info("Rejected capture request", url=request.url, error=str(e))
            return CaptureResult.failed(str(e), e.error_code, e.status_code)

        key = self.cache.key_for(request)
        log = self.logger.bind(url=request.url, fingerprint=key, format=request.format.value)

        lookup = await self.cache.get(key)
        if lookup.hit and lookup.data is not None:
            try:
                dimensions = await asyncio.to_thread(read_dimensions, lookup.data)
            except ScreenshotError as e:
                log.warning("Ignoring unreadable cache entry", error=str(e))
            else:
                log.info("Cache hit", size=len(lookup.data))
                return CaptureResult.succeeded(
                    lookup.data, request.format, dimensions, cached=True
                )

        started = time.perf_counter()
        try:
            raw = await self.orchestrator.capture(request)
            image = await self.processor.process(raw, request)
        except ScreenshotError as e:
            log.error("Capture request failed", error_code=e.error_code, error=str(e))
            return CaptureResult.failed(str(e), e.error_code, e.status_code)

        await self.cache.set(key, image.data, self.settings.cache_ttl)

        log.info(
            "Capture rendered",
            cache=lookup.status.value,
            size=len(image.data),
            width=image.width,
            height=image.height,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return CaptureResult.succeeded(image.data, request.format, image.dimensions)

    async def clear_cache(self) -> CacheClearResult:
        """Clear all cached screenshots if the backend is reachable."""
        if not self.cache.available:
            return CacheClearResult(cleared=False, reason="Cache service not available")

        if not await self.cache.clear():
            return CacheClearResult(cleared=False, reason="Cache clear failed")
        return CacheClearResult(cleared=True)
