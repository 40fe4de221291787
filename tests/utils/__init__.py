"""
Test Utilities
==============

Shared mocks and helpers for the test suite.
"""
