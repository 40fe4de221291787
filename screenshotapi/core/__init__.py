"""
Core Business Logic
==================

Capture-and-cache pipeline.

Modules:
- errors: Error taxonomy shared by every stage
- cache: Fingerprinting and the Redis-backed cache store
- rendering: Browser session, capture orchestration and image post-processing
- coordinator: Cache lookup -> render -> cache store sequencing
"""
