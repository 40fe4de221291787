"""
Unit Tests for Image Processor
==============================

Resize policy, quality mapping and format-specific encoding.
"""

import io
from unittest.mock import patch

import pytest
from PIL import Image

from screenshotapi.core.errors import EncodeError
from screenshotapi.core.rendering.image_processor import (
    ENCODE_POLICIES,
    ImageProcessor,
    effective_quality,
    fit_inside,
    needs_resize,
    read_dimensions,
)
from screenshotapi.models.schemas import CaptureRequest, ImageFormat

from tests.utils.mocks import make_image_bytes

URL = "https://example.com"


@pytest.fixture
def processor():
    return ImageProcessor()


def _spy(method_name):
    original = getattr(Image.Image, method_name)
    return patch.object(Image.Image, method_name, autospec=True, side_effect=original)


class TestEffectiveQuality:
    """Test the quality mapping."""

    def test_jpeg_full_page_default(self):
        request = CaptureRequest(url=URL, format="jpeg", full_page=True)
        assert effective_quality(request) == 95

    def test_webp_viewport_requested(self):
        request = CaptureRequest(url=URL, format="webp", quality=80)
        assert effective_quality(request) == 72

    def test_viewport_default(self):
        assert effective_quality(CaptureRequest(url=URL, format="jpeg")) == 81

    def test_rounds_half_up(self):
        assert effective_quality(CaptureRequest(url=URL, format="jpeg", quality=85)) == 77

    def test_capped_at_100(self):
        request = CaptureRequest(url=URL, format="webp", quality=100, full_page=True)
        assert effective_quality(request) == 100

    def test_policy_table_covers_every_combination(self):
        for fmt in ImageFormat:
            for full_page in (True, False):
                assert (fmt, full_page) in ENCODE_POLICIES


class TestResizeDecision:
    """Test when a resize is required."""

    def test_viewport_exact_match(self):
        assert needs_resize((800, 600), 800, None, full_page=False) is False

    def test_viewport_any_mismatch(self):
        assert needs_resize((801, 600), 800, None, full_page=False) is True

    def test_full_page_within_tolerance(self):
        assert needs_resize((790, 4000), 800, None, full_page=True) is False

    def test_full_page_beyond_tolerance(self):
        assert needs_resize((790, 4000), 1200, None, full_page=True) is True

    def test_full_page_height_beyond_tolerance(self):
        assert needs_resize((800, 4000), 800, 1080, full_page=True) is True

    def test_no_target(self):
        assert needs_resize((123, 456), None, None, full_page=False) is False

    def test_fit_inside_preserves_aspect_ratio(self):
        assert fit_inside((1600, 1200), 800, 800, allow_enlarge=False) == (800, 600)

    def test_fit_inside_without_enlargement(self):
        assert fit_inside((1000, 500), 2000, 1000, allow_enlarge=False) == (1000, 500)

    def test_fit_inside_with_enlargement(self):
        assert fit_inside((790, 2000), 1200, None, allow_enlarge=True) == (1200, 3038)


class TestImageProcessor:
    """Test the post-processing pipeline on real image bytes."""

    def test_viewport_match_skips_resize(self, processor):
        raw = make_image_bytes(800, 600)

        with _spy("resize") as resize:
            result = processor.process_sync(raw, CaptureRequest(url=URL, width=800, height=600))

        resize.assert_not_called()
        assert (result.width, result.height) == (800, 600)

    def test_full_page_within_tolerance_skips_resize(self, processor):
        raw = make_image_bytes(790, 2000)

        with _spy("resize") as resize:
            result = processor.process_sync(raw, CaptureRequest(url=URL, width=800, full_page=True))

        resize.assert_not_called()
        assert (result.width, result.height) == (790, 2000)

    def test_full_page_beyond_tolerance_resizes_with_lanczos(self, processor):
        raw = make_image_bytes(790, 2000)

        with _spy("resize") as resize:
            result = processor.process_sync(
                raw, CaptureRequest(url=URL, width=1200, full_page=True)
            )

        resize.assert_called_once()
        assert resize.call_args.args[2] == Image.Resampling.LANCZOS
        assert (result.width, result.height) == (1200, 3038)

    def test_element_capture_is_never_upscaled(self, processor):
        raw = make_image_bytes(300, 150)

        with _spy("resize") as resize:
            result = processor.process_sync(
                raw, CaptureRequest(url=URL, width=1024, height=768, selector="#card")
            )

        resize.assert_not_called()
        assert (result.width, result.height) == (300, 150)

    def test_viewport_downscale_fits_inside(self, processor):
        raw = make_image_bytes(1600, 1200)

        result = processor.process_sync(raw, CaptureRequest(url=URL, width=800, height=800))

        assert (result.width, result.height) == (800, 600)

    def test_png_compression_by_mode(self, processor):
        raw = make_image_bytes(200, 100)

        with _spy("save") as save:
            processor.process_sync(raw, CaptureRequest(url=URL, full_page=True))
            processor.process_sync(raw, CaptureRequest(url=URL))

        levels = [c.kwargs["compress_level"] for c in save.call_args_list]
        assert levels == [3, 6]

    def test_png_ignores_quality(self, processor):
        raw = make_image_bytes(200, 100)

        with _spy("save") as save:
            processor.process_sync(raw, CaptureRequest(url=URL, quality=10))

        assert "quality" not in save.call_args.kwargs

    def test_jpeg_is_progressive(self, processor):
        raw = make_image_bytes(320, 240, mode="RGBA")

        with _spy("save") as save:
            result = processor.process_sync(raw, CaptureRequest(url=URL, format="jpeg", quality=80))

        assert save.call_args.kwargs["quality"] == 72
        assert save.call_args.kwargs["progressive"] is True
        with Image.open(io.BytesIO(result.data)) as image:
            assert image.format == "JPEG"
            assert image.info.get("progressive") or image.info.get("progression")

    @pytest.mark.parametrize("full_page,method", [(True, 6), (False, 4)])
    def test_webp_effort_by_mode(self, processor, full_page, method):
        raw = make_image_bytes(320, 240)

        with _spy("save") as save:
            result = processor.process_sync(
                raw, CaptureRequest(url=URL, format="webp", full_page=full_page)
            )

        assert save.call_args.kwargs["method"] == method
        with Image.open(io.BytesIO(result.data)) as image:
            assert image.format == "WEBP"

    def test_corrupt_source_raises_encode_error(self, processor):
        with pytest.raises(EncodeError):
            processor.process_sync(b"definitely not an image", CaptureRequest(url=URL))

    async def test_async_process(self, processor):
        raw = make_image_bytes(640, 480)

        result = await processor.process(raw, CaptureRequest(url=URL, format="webp"))

        assert result.dimensions.width == 640
        assert read_dimensions(result.data).height == 480


def test_read_dimensions_rejects_garbage():
    with pytest.raises(EncodeError):
        read_dimensions(b"\x00\x01garbage")
