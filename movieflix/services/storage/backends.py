import re
from abc import ABC, abstractmethod

import redis.asyncio as redis
from cachetools import LRUCache
from loguru import logger

from movieflix.core.config import settings
from movieflix.core.exceptions import StorageCorruptError, StorageQuotaExceededError, StorageUnavailableError


class StorageBackend(ABC):
    """Raw string key-value storage shared by every CacheStore.

    Implementations raise StorageError subclasses on failure; they never
    interpret the stored payloads.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw value for `key`, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete `key`. Returns True if something was removed."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """List every stored key starting with `prefix`."""

    async def close(self) -> None:
        return None


class MemoryBackend(StorageBackend):
    """Process-local storage; contents are lost when the process exits.

    Args:
        max_entries: Evict least recently used keys beyond this many entries.
        quota_bytes: Refuse writes that would grow the stored keys and values past this size.
    """

    def __init__(self, max_entries: int | None = None, quota_bytes: int | None = None):
        self._data: dict[str, str] | LRUCache = LRUCache(maxsize=max_entries) if max_entries else {}
        self.quota_bytes = quota_bytes
        self.available = True

    def _ensure_available(self) -> None:
        if not self.available:
            raise StorageUnavailableError("Memory storage is disabled")

    def _size_without(self, key: str) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items() if k != key)

    async def get(self, key: str) -> str | None:
        self._ensure_available()
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._ensure_available()
        if self.quota_bytes is not None:
            needed = self._size_without(key) + len(key) + len(value)
            if needed > self.quota_bytes:
                raise StorageQuotaExceededError(f"Writing '{key}' needs {needed} bytes, quota is {self.quota_bytes}")
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        self._ensure_available()
        return self._data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> list[str]:
        self._ensure_available()
        return [key for key in list(self._data.keys()) if key.startswith(prefix)]


class RedisBackend(StorageBackend):
    """Durable storage on Redis. Survives client restarts."""

    def __init__(self, url: str = settings.REDIS_URL, max_connections: int = settings.REDIS_MAX_CONNECTIONS):
        self.url = url
        self.max_connections = max_connections
        self._client: redis.Redis | None = None
        if not url:
            logger.warning("REDIS_URL is not set. Durable storage will fail until configured.")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            if not self.url:
                raise StorageUnavailableError("REDIS_URL is not configured")
            logger.info("Creating Redis client for durable storage")
            self._client = redis.from_url(
                self.url,
                decode_responses=True,
                encoding="utf-8",
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=self.max_connections,
                health_check_interval=30,
                socket_keepalive=True,
            )
        return self._client

    @staticmethod
    def _match_pattern(prefix: str) -> str:
        return re.sub(r"([*?\[\]\\])", r"\\\1", prefix) + "*"

    async def get(self, key: str) -> str | None:
        try:
            client = await self.get_client()
            return await client.get(key)
        except UnicodeDecodeError as exc:
            raise StorageCorruptError(f"Redis value for '{key}' is not valid UTF-8: {exc}") from exc
        except (redis.RedisError, OSError) as exc:
            raise StorageUnavailableError(f"Redis GET failed for '{key}': {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        try:
            client = await self.get_client()
            await client.set(key, value)
        except redis.ResponseError as exc:
            if "OOM" in str(exc):
                raise StorageQuotaExceededError(f"Redis is out of memory writing '{key}': {exc}") from exc
            raise StorageUnavailableError(f"Redis SET failed for '{key}': {exc}") from exc
        except (redis.RedisError, OSError) as exc:
            raise StorageUnavailableError(f"Redis SET failed for '{key}': {exc}") from exc

    async def delete(self, key: str) -> bool:
        try:
            client = await self.get_client()
            return bool(await client.delete(key))
        except (redis.RedisError, OSError) as exc:
            raise StorageUnavailableError(f"Redis DELETE failed for '{key}': {exc}") from exc

    async def keys(self, prefix: str = "") -> list[str]:
        try:
            client = await self.get_client()
            return [key async for key in client.scan_iter(match=self._match_pattern(prefix), count=500)]
        except UnicodeDecodeError as exc:
            raise StorageCorruptError(f"Redis key under '{prefix}' is not valid UTF-8: {exc}") from exc
        except (redis.RedisError, OSError) as exc:
            raise StorageUnavailableError(f"Redis SCAN failed for prefix '{prefix}': {exc}") from exc

    async def close(self) -> None:
        """Close and disconnect the Redis client"""
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("Durable storage Redis client closed")
            except Exception as exc:
                logger.warning(f"Failed to close Redis client: {exc}")
            finally:
                self._client = None
