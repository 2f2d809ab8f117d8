from .backends import MemoryBackend, RedisBackend, StorageBackend
from .store import CacheStore

__all__ = ["CacheStore", "MemoryBackend", "RedisBackend", "StorageBackend"]
