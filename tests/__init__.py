"""
Test Suite
==========

Unit and integration tests for the screenshot service.
"""
