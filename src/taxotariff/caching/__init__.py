"""Redis-backed store for deployments running several workers."""

from taxotariff.caching.redis_client import RedisKVStore

__all__ = ["RedisKVStore"]
