"""
Cache Fingerprints
==================

Deterministic cache keys derived from a URL and its normalized capture options.
"""

from typing import Any, Dict, Mapping, Union
import hashlib
import json

from screenshotapi.models.schemas import CaptureRequest


def normalize_options(request: CaptureRequest) -> Dict[str, Any]:
    """Canonical option set for a request: every field, defaults filled, URL excluded."""
    return request.model_dump(mode="json", exclude={"url"})


def fingerprint(
    url: str,
    options: Union[CaptureRequest, Mapping[str, Any]],
    prefix: str = "screenshot",
) -> str:
    """
    Derive the cache key for a URL and option set.

    Keys are sorted before serializing so insertion order never changes the
    result. The serialized options are concatenated with the URL and hashed
    into an opaque ASCII key under ``prefix``.

    Args:
        url: Target URL
        options: A CaptureRequest or an already-normalized option mapping
        prefix: Key namespace

    Returns:
        Cache key of the form ``<prefix>:<sha256 hex>``
    """
    if isinstance(options, CaptureRequest):
        options = normalize_options(options)

    serialized = json.dumps(options, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256((url + serialized).encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"
