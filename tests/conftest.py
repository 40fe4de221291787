"""
Test Configuration
==================

Pytest configuration with fixtures for unit and integration tests.
No test needs a real browser or Redis server.
"""

import os

os.environ.setdefault("SCREENSHOT_API_ENVIRONMENT", "testing")

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from pydantic_settings import SettingsConfigDict

from screenshotapi.config.settings import Settings
from screenshotapi.core.cache.store import CacheStore
from screenshotapi.core.coordinator import RequestCoordinator
from screenshotapi.core.rendering.capture import CaptureOrchestrator
from screenshotapi.core.rendering.image_processor import ImageProcessor

from tests.utils.mocks import MockBrowserSession, MockRedisClient, make_image_bytes, make_mock_page


class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    redis_url: str = "redis://localhost:6379/15"
    cache_connect_timeout: float = 1.0
    cache_reconnect_interval: float = 0.01
    log_level: str = "DEBUG"

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="SCREENSHOT_API_TEST_")


@pytest.fixture
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture
def mock_redis() -> MockRedisClient:
    """In-memory Redis double."""
    return MockRedisClient()


@pytest.fixture
async def cache_store(
    test_settings: TestSettings, mock_redis: MockRedisClient
) -> AsyncGenerator[CacheStore, None]:
    """Connected cache store over the in-memory Redis double."""
    store = CacheStore(test_settings, client=mock_redis)
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
async def unavailable_cache_store(
    test_settings: TestSettings, mock_redis: MockRedisClient
) -> AsyncGenerator[CacheStore, None]:
    """Cache store whose initial connection failed."""
    mock_redis.fail = ConnectionError("Connection refused")
    store = CacheStore(test_settings, client=mock_redis)
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def png_1024x768() -> bytes:
    """Raw capture matching a 1024x768 viewport."""
    return make_image_bytes(1024, 768)


@pytest.fixture
def browser_session(png_1024x768: bytes) -> MockBrowserSession:
    """Browser session double whose page captures a 1024x768 PNG."""
    return MockBrowserSession(make_mock_page(png_1024x768))


@pytest.fixture
def mock_orchestrator(png_1024x768: bytes) -> AsyncMock:
    """Orchestrator double returning a 1024x768 PNG."""
    orchestrator = AsyncMock(spec=CaptureOrchestrator)
    orchestrator.capture.return_value = png_1024x768
    return orchestrator


@pytest.fixture
def coordinator(
    cache_store: CacheStore, mock_orchestrator: AsyncMock, test_settings: TestSettings
) -> RequestCoordinator:
    """Coordinator over a connected cache and a mocked orchestrator."""
    return RequestCoordinator(
        cache=cache_store,
        orchestrator=mock_orchestrator,
        processor=ImageProcessor(),
        settings=test_settings,
    )
