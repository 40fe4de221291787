"""
HTTP API
========

FastAPI adapter over the request coordinator.
"""
