"""
Data Models
===========

Pydantic models for capture requests, results and API responses.
"""
