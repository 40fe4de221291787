"""
Cache Store
===========

Redis-backed screenshot cache treated as a soft dependency.

Every operation has a no-op fallback: backend failures are logged and surface
as a miss (reads) or are ignored (writes, clears). Availability follows backend
connect/disconnect transitions rather than being probed on every call.
"""

from typing import Any, Optional
from dataclasses import dataclass
from enum import Enum
import asyncio

import redis.asyncio as redis  # type: ignore[import-untyped]
from redis.exceptions import (  # type: ignore[import-untyped]
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from screenshotapi.config.logging import get_logger
from screenshotapi.config.settings import Settings, get_settings
from screenshotapi.core.cache.fingerprint import fingerprint
from screenshotapi.models.schemas import CaptureRequest

logger = get_logger(__name__)

BACKEND_ERRORS = (RedisError, OSError, asyncio.TimeoutError)
DISCONNECT_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError, asyncio.TimeoutError)

CLEAR_BATCH_SIZE = 500


class CacheStatus(str, Enum):
    """Outcome of a cache lookup."""

    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CacheLookup:
    """Hit-or-miss result of a cache read. Only a hit carries data."""

    status: CacheStatus
    data: Optional[bytes] = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT

    @classmethod
    def found(cls, data: bytes) -> "CacheLookup":
        return cls(CacheStatus.HIT, data)

    @classmethod
    def miss(cls) -> "CacheLookup":
        return cls(CacheStatus.MISS)

    @classmethod
    def unavailable(cls) -> "CacheLookup":
        return cls(CacheStatus.UNAVAILABLE)


class CacheStore:
    """Best-effort key/value store for encoded screenshots."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        self.prefix = self.settings.cache_key_prefix
        self.ttl = self.settings.cache_ttl
        self._client = client
        self._available = False
        self._disabled = False
        self._reconnect_task: Optional[asyncio.Task] = None  # type: ignore[type-arg]
        self.logger: Any = logger.bind(component="cache_store")

    @property
    def available(self) -> bool:
        """Current backend connectivity as last observed."""
        return self._available and not self._disabled

    def key_for(self, request: CaptureRequest) -> str:
        """Fingerprint a request under this store's namespace."""
        return fingerprint(request.url, request, prefix=self.prefix)

    async def connect(self) -> bool:
        """
        Attempt a single bounded connection to the backend.

        A failed attempt disables this store instance permanently; there is no
        background retry until a new store is constructed.

        Returns:
            Whether the cache is available
        """
        if not self.settings.cache_enabled:
            self.logger.info("Cache disabled by configuration")
            self._disabled = True
            return False

        try:
            if self._client is None:
                self._client = redis.Redis.from_url(
                    self.settings.redis_url,
                    socket_connect_timeout=self.settings.cache_connect_timeout,
                    socket_timeout=self.settings.cache_command_timeout,
                    decode_responses=False,
                )

            await asyncio.wait_for(self._client.ping(), timeout=self.settings.cache_connect_timeout)

        except BACKEND_ERRORS as e:
            self.logger.warning("Cache backend not available, caching disabled", error=str(e))
            self._disabled = True
            await self._close_client()
            return False

        self._mark_available()
        return True

    async def get(self, key: str) -> CacheLookup:
        """Read a cached blob. Never raises."""
        if not self.available:
            return CacheLookup.unavailable()

        try:
            data = await self._client.get(key)
        except BACKEND_ERRORS as e:
            self._handle_backend_error("get", e)
            return CacheLookup.unavailable()

        if data is None:
            return CacheLookup.miss()
        return CacheLookup.found(bytes(data))

    async def set(self, key: str, data: bytes, ttl: Optional[int] = None) -> None:
        """Write a blob with a TTL in seconds. Never raises."""
        if not self.available:
            return

        try:
            await self._client.set(key, data, ex=ttl or self.ttl)
        except BACKEND_ERRORS as e:
            self._handle_backend_error("set", e)

    async def clear(self) -> bool:
        """
        Remove every entry under this store's namespace. Never raises.

        Returns:
            Whether the namespace was cleared
        """
        if not self.available:
            return False

        deleted = 0
        batch: list = []
        try:
            async for key in self._client.scan_iter(match=f"{self.prefix}:*", count=CLEAR_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= CLEAR_BATCH_SIZE:
                    deleted += await self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self._client.delete(*batch)
        except BACKEND_ERRORS as e:
            self._handle_backend_error("clear", e)
            return False

        self.logger.info("Cache cleared", deleted=deleted, prefix=self.prefix)
        return True

    async def close(self) -> None:
        """Stop the reconnect watcher and close the backend client."""
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None

        await self._close_client()
        self._available = False
        self.logger.info("Cache store closed")

    async def _close_client(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except BACKEND_ERRORS as e:
            self.logger.warning("Error closing cache client", error=str(e))
        self._client = None

    def _handle_backend_error(self, operation: str, error: BaseException) -> None:
        if isinstance(error, DISCONNECT_ERRORS):
            self._mark_unavailable(operation, error)
        else:
            self.logger.warning("Cache operation failed", operation=operation, error=str(error))

    def _mark_available(self) -> None:
        if not self._available:
            self.logger.info("Cache backend connected", redis_url=self.settings.redis_url)
        self._available = True

    def _mark_unavailable(self, operation: str, error: BaseException) -> None:
        if self._available:
            self.logger.warning(
                "Cache backend disconnected, serving without cache",
                operation=operation,
                error=str(error),
            )
        self._available = False

        if self._disabled or self._client is None:
            return
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._watch_reconnect())

    async def _watch_reconnect(self) -> None:
        """Ping the backend until it answers again, then mark the store available."""
        interval = self.settings.cache_reconnect_interval
        while not self._disabled and self._client is not None:
            await asyncio.sleep(interval)
            try:
                await asyncio.wait_for(
                    self._client.ping(), timeout=self.settings.cache_connect_timeout
                )
            except BACKEND_ERRORS as e:
                self.logger.debug("Cache reconnect attempt failed", error=str(e))
                continue
            self._mark_available()
            return
