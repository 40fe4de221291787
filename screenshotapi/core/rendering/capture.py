"""
Capture Orchestrator
====================

Drives a borrowed browser page through the render protocol:

    open -> configure -> navigate -> stabilize -> (full-page pre-scroll) -> capture -> close

The page is released on every exit path. Stabilization waits are heuristics
for letting lazy content and scroll-triggered animations settle; they improve
the odds of a complete capture but guarantee nothing, so they are expressed as
a replaceable StabilizationPolicy.
"""

from typing import Optional, Any, Dict, Tuple
from dataclasses import dataclass, replace
from enum import Enum
import time

from playwright.async_api import Page, Error as PlaywrightError

from screenshotapi.config.logging import get_logger
from screenshotapi.config.settings import Settings, get_settings
from screenshotapi.core.errors import CaptureError, NavigationError, ScreenshotError
from screenshotapi.core.rendering.browser import BrowserSession, BrowserSessionError
from screenshotapi.models.schemas import CaptureRequest, ImageFormat

logger = get_logger(__name__)

DEFAULT_JPEG_QUALITY = 90
FULL_PAGE_JPEG_QUALITY = 100

SCROLL_SCRIPTS = {
    "bottom": "() => window.scrollTo(0, document.body.scrollHeight)",
    "top": "() => window.scrollTo(0, 0)",
}

DEVICE_PIXEL_RATIO_SCRIPT = (
    "Object.defineProperty(window, 'devicePixelRatio', {{ get: () => {ratio} }});"
)


class ScrollAction(str, Enum):
    BOTTOM = "bottom"
    TOP = "top"


@dataclass(frozen=True)
class StabilizationStep:
    """Optionally scroll, then wait ``wait_ms`` milliseconds."""

    wait_ms: int = 0
    scroll: Optional[ScrollAction] = None


@dataclass(frozen=True)
class StabilizationPolicy:
    """Timing heuristics applied before pixels are captured."""

    full_page_steps: Tuple[StabilizationStep, ...] = (
        StabilizationStep(wait_ms=1000),
        StabilizationStep(wait_ms=500, scroll=ScrollAction.BOTTOM),
        StabilizationStep(wait_ms=500, scroll=ScrollAction.TOP),
    )
    honor_delay: bool = True

    def without_waits(self) -> "StabilizationPolicy":
        """Same actions with every wait removed."""
        return replace(
            self,
            full_page_steps=tuple(replace(step, wait_ms=0) for step in self.full_page_steps),
            honor_delay=False,
        )


DEFAULT_STABILIZATION = StabilizationPolicy()


def screenshot_options(request: CaptureRequest) -> Dict[str, Any]:
    """Encoding hint and quality handed to the engine's screenshot call."""
    options: Dict[str, Any] = {
        # The engine only emits PNG or JPEG; WebP is produced in post-processing.
        "type": "jpeg" if request.format is ImageFormat.JPEG else "png",
        "animations": "disabled",
        "caret": "hide",
    }

    if request.format is ImageFormat.JPEG:
        if request.full_page:
            options["quality"] = FULL_PAGE_JPEG_QUALITY
        else:
            options["quality"] = request.quality or DEFAULT_JPEG_QUALITY

    return options


class CaptureOrchestrator:
    """Produces raw screenshot bytes for a request from a shared browser session."""

    def __init__(
        self,
        session: BrowserSession,
        policy: StabilizationPolicy = DEFAULT_STABILIZATION,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.policy = policy
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="capture_orchestrator")

    async def capture(self, request: CaptureRequest) -> bytes:
        """
        Run the render protocol for one request.

        Args:
            request: Capture request

        Returns:
            Raw screenshot bytes

        Raises:
            NavigationError: If the page fails to load or settle
            CaptureError: If the element is missing or the engine fails
        """
        log = self.logger.bind(url=request.url, full_page=request.full_page)
        started = time.perf_counter()

        try:
            async with self.session.new_page() as page:
                await self._configure(page, request)
                await self._navigate(page, request)
                await self._stabilize(page, request)
                screenshot = await self._screenshot(page, request)
        except ScreenshotError as e:
            log.warning("Capture failed", error_code=e.error_code, error=str(e))
            raise
        except (PlaywrightError, BrowserSessionError) as e:
            log.error("Browser error during capture", error=str(e))
            raise CaptureError(f"Screenshot failed: {e}") from e
        except Exception as e:
            log.error("Unexpected error during capture", error=str(e), exc_info=True)
            raise CaptureError(f"Screenshot failed: {e}") from e

        log.info(
            "Capture completed",
            raw_size=len(screenshot),
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return screenshot

    async def _configure(self, page: Page, request: CaptureRequest) -> None:
        await page.set_viewport_size(
            {"width": request.viewport_width, "height": request.viewport_height}
        )
        await page.emulate_media(media="screen")
        await page.add_init_script(
            script=DEVICE_PIXEL_RATIO_SCRIPT.format(ratio=request.device_scale_factor)
        )
        await page.set_extra_http_headers({"User-Agent": self.settings.user_agent})
        page.set_default_timeout(request.timeout)

    async def _navigate(self, page: Page, request: CaptureRequest) -> None:
        try:
            await page.goto(request.url, wait_until="networkidle", timeout=request.timeout)
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed: {e}") from e

    async def _stabilize(self, page: Page, request: CaptureRequest) -> None:
        try:
            await page.wait_for_load_state("networkidle")
            await page.evaluate("() => document.fonts.ready")
        except PlaywrightError as e:
            raise NavigationError(f"Page did not settle: {e}") from e

        if request.delay and self.policy.honor_delay:
            await page.wait_for_timeout(request.delay)

        if request.full_page:
            for step in self.policy.full_page_steps:
                if step.scroll is not None:
                    await page.evaluate(SCROLL_SCRIPTS[step.scroll.value])
                if step.wait_ms:
                    await page.wait_for_timeout(step.wait_ms)

    async def _screenshot(self, page: Page, request: CaptureRequest) -> bytes:
        options = screenshot_options(request)

        if request.selector:
            element = page.locator(request.selector).first
            if await element.count() == 0:
                raise CaptureError(f"No element matches selector '{request.selector}'")
            return await element.screenshot(**options)

        return await page.screenshot(full_page=request.full_page, **options)
