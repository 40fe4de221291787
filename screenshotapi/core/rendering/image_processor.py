"""
Image Processor
===============

Post-processing for captured screenshots: resize to the requested box and
encode to the requested format using Pillow. Per-format encode parameters are
kept in a policy table keyed by (format, full_page).
"""

from typing import Optional, Any, Dict, Tuple
from dataclasses import dataclass
import asyncio
import io
import math

from PIL import Image, UnidentifiedImageError  # type: ignore

from screenshotapi.config.logging import get_logger
from screenshotapi.core.errors import EncodeError
from screenshotapi.models.schemas import CaptureRequest, ImageDimensions, ImageFormat

logger = get_logger(__name__)

FULL_PAGE_RESIZE_TOLERANCE = 100


@dataclass(frozen=True)
class EncodePolicy:
    """Encode parameters for one (format, full_page) combination."""

    default_quality: int
    quality_multiplier: float
    compress_level: Optional[int] = None  # PNG zlib level
    method: Optional[int] = None  # WebP effort, 0 (fast) to 6 (smallest)


ENCODE_POLICIES: Dict[Tuple[ImageFormat, bool], EncodePolicy] = {
    (ImageFormat.PNG, True): EncodePolicy(95, 1.0, compress_level=3),
    (ImageFormat.PNG, False): EncodePolicy(90, 0.9, compress_level=6),
    (ImageFormat.JPEG, True): EncodePolicy(95, 1.0),
    (ImageFormat.JPEG, False): EncodePolicy(90, 0.9),
    (ImageFormat.WEBP, True): EncodePolicy(95, 1.0, method=6),
    (ImageFormat.WEBP, False): EncodePolicy(90, 0.9, method=4),
}


@dataclass(frozen=True)
class ProcessedImage:
    """Encoded output of the pipeline."""

    data: bytes
    width: int
    height: int

    @property
    def dimensions(self) -> ImageDimensions:
        return ImageDimensions(width=self.width, height=self.height)


def effective_quality(request: CaptureRequest) -> int:
    """Base quality times the mode multiplier, rounded half up and capped at 100."""
    policy = ENCODE_POLICIES[(request.format, request.full_page)]
    base = request.quality or policy.default_quality
    return min(100, math.floor(base * policy.quality_multiplier + 0.5))


def needs_resize(
    source: Tuple[int, int],
    target_width: Optional[int],
    target_height: Optional[int],
    full_page: bool,
) -> bool:
    """
    Decide whether a capture must be resized.

    Full-page captures tolerate up to 100px of difference per axis; element and
    viewport captures resize on any exact mismatch.
    """
    source_width, source_height = source
    tolerance = FULL_PAGE_RESIZE_TOLERANCE if full_page else 0

    if target_width and abs(target_width - source_width) > tolerance:
        return True
    if target_height and abs(target_height - source_height) > tolerance:
        return True
    return False


def fit_inside(
    source: Tuple[int, int],
    target_width: Optional[int],
    target_height: Optional[int],
    allow_enlarge: bool,
) -> Tuple[int, int]:
    """Largest size preserving aspect ratio that fits inside the target box."""
    source_width, source_height = source
    scales = []
    if target_width:
        scales.append(target_width / source_width)
    if target_height:
        scales.append(target_height / source_height)
    if not scales:
        return source

    scale = min(scales)
    if not allow_enlarge:
        scale = min(scale, 1.0)

    return (
        max(1, round(source_width * scale)),
        max(1, round(source_height * scale)),
    )


def read_dimensions(data: bytes) -> ImageDimensions:
    """Read width/height from encoded image bytes without decoding pixels."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise EncodeError(f"Unreadable image data: {e}") from e
    return ImageDimensions(width=width, height=height)


class ImageProcessor:
    """Resize and encode raw screenshots per request options."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="image_processor")

    async def process(self, raw: bytes, request: CaptureRequest) -> ProcessedImage:
        """
        Resize and encode a raw capture off the event loop.

        Raises:
            EncodeError: If the source bytes are corrupt or the codec fails
        """
        result = await asyncio.to_thread(self.process_sync, raw, request)

        self.logger.debug(
            "Image processed",
            format=request.format.value,
            raw_size=len(raw),
            encoded_size=len(result.data),
            width=result.width,
            height=result.height,
        )
        return result

    def process_sync(self, raw: bytes, request: CaptureRequest) -> ProcessedImage:
        try:
            with Image.open(io.BytesIO(raw)) as source:
                image = self._resize(source, request)
                encoded = self._encode(image, request)
        except EncodeError:
            raise
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise EncodeError(f"Image processing failed: {e}") from e
        except Exception as e:
            self.logger.error("Unexpected error during image processing", error=str(e), exc_info=True)
            raise EncodeError(f"Image processing failed: {e}") from e

        dimensions = read_dimensions(encoded)
        return ProcessedImage(data=encoded, width=dimensions.width, height=dimensions.height)

    def _resize(self, image: Image.Image, request: CaptureRequest) -> Image.Image:
        if not needs_resize(image.size, request.width, request.height, request.full_page):
            image.load()
            return image

        # Never upscale a precise viewport/element capture.
        size = fit_inside(
            image.size, request.width, request.height, allow_enlarge=request.full_page
        )
        if size == image.size:
            image.load()
            return image

        self.logger.debug("Resizing capture", source=image.size, target=size)
        return image.resize(size, Image.Resampling.LANCZOS)

    def _encode(self, image: Image.Image, request: CaptureRequest) -> bytes:
        policy = ENCODE_POLICIES[(request.format, request.full_page)]
        output = io.BytesIO()

        if request.format is ImageFormat.JPEG:
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(
                output,
                format="JPEG",
                quality=effective_quality(request),
                progressive=True,
                optimize=True,
            )
        elif request.format is ImageFormat.WEBP:
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA")
            image.save(
                output,
                format="WEBP",
                quality=effective_quality(request),
                method=policy.method,
            )
        else:
            # Quality does not apply to PNG; Pillow's encoder filters adaptively.
            image.save(output, format="PNG", compress_level=policy.compress_level)

        return output.getvalue()
