from typing import Any

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """A stored value with its write time and optional expiry (epoch seconds)."""

    value: Any = None
    stored_at: float
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class StorageStats(BaseModel):
    total_keys: int = 0
    total_size: int = 0

    @property
    def total_size_kb(self) -> int:
        return round(self.total_size / 1024)
