"""
Capture Errors
==============

Error taxonomy for the capture-and-cache pipeline. Every stage raises one of
these; the request coordinator turns them into failed results.
"""


class ScreenshotError(Exception):
    """Base exception for screenshot failures."""

    error_code = "SCREENSHOT_ERROR"
    status_code = 500


class ValidationError(ScreenshotError):
    """Missing or malformed request input. Never reaches orchestration."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class NavigationError(ScreenshotError):
    """Navigation timed out or the target could not be reached."""

    error_code = "NAVIGATION_ERROR"


class CaptureError(ScreenshotError):
    """Selector not found or the engine failed while taking the screenshot."""

    error_code = "CAPTURE_ERROR"


class EncodeError(ScreenshotError):
    """Codec failure on malformed or unsupported image bytes."""

    error_code = "ENCODE_ERROR"
