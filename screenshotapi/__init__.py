"""
Screenshot API
==============

Renders web pages to raster images on demand and serves the result,
reusing previously captured images for identical requests.

This package provides:
- Playwright-driven capture with a stabilization sequence before pixels are read
- Pillow post-processing that normalizes dimensions and encodes PNG/JPEG/WebP
- A Redis-backed cache that degrades to a no-op when the backend is unreachable
- A FastAPI HTTP adapter exposing capture, cache clearing and health endpoints
"""

__version__ = "1.0.0"
