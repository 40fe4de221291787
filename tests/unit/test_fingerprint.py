"""
Unit Tests for Cache Fingerprints
=================================

Determinism and sensitivity of cache keys derived from URL and options.
"""

import pytest

from screenshotapi.core.cache.fingerprint import fingerprint, normalize_options
from screenshotapi.models.schemas import CaptureRequest

URL = "https://example.com"


class TestNormalizeOptions:
    """Test canonical option sets."""

    def test_defaults_are_filled(self):
        options = normalize_options(CaptureRequest(url=URL))

        assert options["format"] == "png"
        assert options["full_page"] is False
        assert options["delay"] == 0
        assert options["timeout"] == 30000
        assert options["device_scale_factor"] == 2.0
        assert options["width"] is None
        assert "url" not in options

    def test_explicit_defaults_match_implicit(self):
        implicit = CaptureRequest(url=URL)
        explicit = CaptureRequest(
            url=URL, format="png", full_page=False, delay=0, timeout=30000, device_scale_factor=2
        )

        assert normalize_options(implicit) == normalize_options(explicit)
        assert fingerprint(URL, implicit) == fingerprint(URL, explicit)

    def test_types_are_coerced(self):
        request = CaptureRequest(url=URL, width="800", fullPage="true", quality="75")

        assert normalize_options(request) == normalize_options(
            CaptureRequest(url=URL, width=800, full_page=True, quality=75)
        )


class TestFingerprint:
    """Test cache key derivation."""

    def test_stable_across_calls(self):
        request = CaptureRequest(url=URL, width=1024, height=768, format="jpeg", quality=80)

        keys = {fingerprint(URL, request) for _ in range(5)}

        assert len(keys) == 1

    def test_key_order_is_irrelevant(self):
        forward = {"format": "png", "width": 800, "full_page": True, "quality": None}
        backward = {"quality": None, "full_page": True, "width": 800, "format": "png"}

        assert fingerprint(URL, forward) == fingerprint(URL, backward)

    def test_request_and_mapping_agree(self):
        request = CaptureRequest(url=URL, width=640)

        assert fingerprint(URL, request) == fingerprint(URL, normalize_options(request))

    @pytest.mark.parametrize(
        "changes",
        [
            {"format": "webp"},
            {"width": 801},
            {"height": 601},
            {"quality": 70},
            {"selector": "#main"},
            {"full_page": True},
            {"delay": 500},
            {"timeout": 10000},
            {"device_scale_factor": 1},
        ],
    )
    def test_any_option_change_changes_key(self, changes):
        base = CaptureRequest(url=URL, width=800, height=600)
        changed = CaptureRequest(**{**base.model_dump(), **changes})

        assert fingerprint(URL, base) != fingerprint(URL, changed)

    def test_url_change_changes_key(self):
        request = CaptureRequest(url=URL)

        assert fingerprint(URL, request) != fingerprint("https://example.org", request)

    def test_key_is_prefixed_ascii(self):
        key = fingerprint(URL, CaptureRequest(url=URL), prefix="shots")

        assert key.startswith("shots:")
        assert key.isascii()
        assert len(key) == len("shots:") + 64
