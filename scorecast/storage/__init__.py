"""Storage and caching."""

from scorecast.storage.cache import CacheStore, MemoryCache, FileCache
from scorecast.storage.json_storage import JsonStorage
from scorecast.storage.repository import PredictionRepository

__all__ = ["CacheStore", "MemoryCache", "FileCache", "JsonStorage", "PredictionRepository"]
