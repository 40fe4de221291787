"""
API Routes
==========

Routers for screenshot capture, cache management and health checks.
"""
