import time
from collections.abc import Callable
from typing import Any

from loguru import logger
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from movieflix.core.config import settings
from movieflix.core.constants import (
    APP_VERSION_KEY,
    CACHE_NAMESPACE,
    STALE_ENTRY_AGE_SECONDS,
    USER_PREFERENCES_KEY,
)
from movieflix.core.exceptions import StorageCorruptError, StorageError, StorageQuotaExceededError
from movieflix.models.cache import CacheEntry, StorageStats
from movieflix.services.storage.backends import StorageBackend


class CacheStore:
    """
    Prefixed key-value store with per-entry expiry on top of a StorageBackend.

    No method raises: backend faults, serialization faults and corrupt payloads
    are logged and reported as False / None.
    """

    def __init__(
        self,
        backend: StorageBackend,
        prefix: str = settings.STORAGE_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.prefix = prefix
        self.clock = clock

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _encode(self, value: Any, ttl: float | None) -> str:
        now = self.clock()
        entry = CacheEntry(value=value, stored_at=now, expires_at=now + ttl if ttl else None)
        return entry.model_dump_json()

    async def _read_entry(self, full_key: str) -> CacheEntry | None:
        raw = await self.backend.get(full_key)
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry '{full_key}': {e.error_count()} error(s)")
            return None

    # Core operations

    async def set(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Store `value` under `key`.

        Args:
            key: Logical key (the store prefix is added)
            value: Any JSON-serializable value
            ttl: Seconds until the entry expires. None or 0 means it never expires.

        Returns:
            True if stored, False otherwise
        """
        full_key = self._key(key)
        try:
            payload = self._encode(value, ttl)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error(f"Cannot serialize value for '{full_key}': {e}")
            return False

        try:
            await self.backend.set(full_key, payload)
            return True
        except StorageQuotaExceededError as e:
            logger.warning(f"Storage quota exceeded writing '{full_key}': {e}. Cleaning up and retrying once.")
        except StorageError as e:
            logger.error(f"Failed to store '{full_key}': {e}")
            return False

        await self.cleanup()
        try:
            await self.backend.set(full_key, payload)
            return True
        except StorageError as e:
            logger.error(f"Storage failed even after cleanup for '{full_key}': {e}")
            return False

    async def get(self, key: str) -> Any:
        """Return the live value for `key`, or None if absent, unreadable or expired.

        Expired entries are deleted as a side effect.
        """
        full_key = self._key(key)
        try:
            entry = await self._read_entry(full_key)
            if entry is None:
                return None
            if entry.is_expired(self.clock()):
                await self.backend.delete(full_key)
                return None
            return entry.value
        except StorageError as e:
            logger.error(f"Failed to read '{full_key}': {e}")
            return None

    async def remove(self, key: str) -> bool:
        full_key = self._key(key)
        try:
            await self.backend.delete(full_key)
            return True
        except StorageError as e:
            logger.error(f"Failed to remove '{full_key}': {e}")
            return False

    async def _remove_prefixed(self, prefix: str, keep: Callable[[str], bool] | None = None) -> bool:
        try:
            for full_key in await self.backend.keys(prefix):
                if keep and keep(full_key):
                    continue
                await self.backend.delete(full_key)
            return True
        except StorageError as e:
            logger.error(f"Failed to clear keys under '{prefix}': {e}")
            return False

    async def clear(self) -> bool:
        """Remove every key carrying this store's prefix. Other keys are left alone."""
        return await self._remove_prefixed(self.prefix)

    async def get_all(self) -> dict[str, Any]:
        """Map of unprefixed key -> live value for every entry of this store."""
        result: dict[str, Any] = {}
        try:
            full_keys = await self.backend.keys(self.prefix)
        except StorageError as e:
            logger.error(f"Failed to list keys under '{self.prefix}': {e}")
            return result

        for full_key in full_keys:
            key = full_key[len(self.prefix) :]
            value = await self.get(key)
            if value is not None:
                result[key] = value
        return result

    # Response cache region

    async def set_cache(self, key: str, value: Any, ttl: float = settings.CACHE_DEFAULT_TTL_SECONDS) -> bool:
        return await self.set(f"{CACHE_NAMESPACE}{key}", value, ttl)

    async def get_cache(self, key: str) -> Any:
        return await self.get(f"{CACHE_NAMESPACE}{key}")

    async def remove_cache(self, key: str) -> bool:
        return await self.remove(f"{CACHE_NAMESPACE}{key}")

    async def clear_cache(self) -> bool:
        """Remove only the cached responses, leaving the rest of the store intact."""
        return await self._remove_prefixed(self._key(CACHE_NAMESPACE))

    # User preferences

    async def _get_preferences(self) -> dict[str, Any]:
        preferences = await self.get(USER_PREFERENCES_KEY)
        if not isinstance(preferences, dict):
            if preferences is not None:
                logger.warning(f"Ignoring malformed user preferences of type {type(preferences).__name__}")
            return {}
        return preferences

    async def set_user_preference(self, name: str, value: Any) -> bool:
        # Read-modify-write of one composite value: concurrent writers may lose updates.
        preferences = await self._get_preferences()
        preferences[name] = value
        return await self.set(USER_PREFERENCES_KEY, preferences)

    async def get_user_preference(self, name: str, default: Any = None) -> Any:
        preferences = await self._get_preferences()
        return preferences.get(name, default)

    # Maintenance

    async def ensure_version(self, version: str = settings.STORAGE_VERSION) -> bool:
        """Drop data written by another storage version, keeping user preferences.

        Returns:
            True if old data was cleared, False if the stored version already matched
        """
        stored = await self.get(APP_VERSION_KEY)
        if stored == version:
            return False

        preferences_key = self._key(USER_PREFERENCES_KEY)
        await self._remove_prefixed(self.prefix, keep=lambda full_key: full_key == preferences_key)
        await self.set(APP_VERSION_KEY, version)
        logger.info(f"Storage version changed from {stored} to {version}; cleared old data")
        return True

    async def cleanup(self, max_age: float = STALE_ENTRY_AGE_SECONDS) -> int:
        """Remove entries stored more than `max_age` seconds ago, plus unreadable ones.

        Returns:
            Number of entries removed
        """
        cutoff = self.clock() - max_age
        removed = 0
        try:
            for full_key in await self.backend.keys(self.prefix):
                try:
                    entry = await self._read_entry(full_key)
                except StorageCorruptError:
                    entry = None
                if entry is None or entry.stored_at < cutoff:
                    await self.backend.delete(full_key)
                    removed += 1
        except StorageError as e:
            logger.error(f"Cleanup failed: {e}")
        if removed:
            logger.debug(f"Cleanup removed {removed} stale entries")
        return removed

    async def stats(self) -> StorageStats:
        total_keys = 0
        total_size = 0
        try:
            for full_key in await self.backend.keys(self.prefix):
                raw = await self.backend.get(full_key)
                if raw is None:
                    continue
                total_keys += 1
                total_size += len(raw)
        except StorageError as e:
            logger.error(f"Failed to compute storage stats: {e}")
        return StorageStats(total_keys=total_keys, total_size=total_size)
