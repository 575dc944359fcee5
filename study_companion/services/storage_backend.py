import logging
from typing import Any, Dict, Optional

import redis

logger = logging.getLogger(__name__)


class StorageUnavailableError(RuntimeError):
    """Raised when the configured storage backend cannot be reached"""


class MemoryStorageBackend:
    """In-process key/value store holding serialized strings"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    def status(self) -> Dict[str, Any]:
        return {"status": "connected", "backend": "memory", "total_keys": len(self._data)}


class RedisStorageBackend:
    """Redis-backed key/value store for study data"""

    def __init__(self, url: str = "redis://localhost:6379/0", client: Optional[redis.Redis] = None):
        try:
            self.redis_client = client or redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self.redis_client.ping()
            logger.info(f"Redis storage connected successfully to {url}")
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise StorageUnavailableError(f"Redis is not reachable at {url}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self.redis_client.get(key)

    def set(self, key: str, value: str) -> None:
        self.redis_client.set(key, value)

    def delete(self, *keys: str) -> None:
        if keys:
            self.redis_client.delete(*keys)

    def status(self) -> Dict[str, Any]:
        try:
            info = self.redis_client.info()
            return {
                "status": "connected",
                "backend": "redis",
                "total_keys": self.redis_client.dbsize(),
                "used_memory": info.get("used_memory_human", "N/A"),
            }
        except redis.RedisError as e:
            logger.error(f"Failed to get Redis status: {e}")
            return {"status": "error", "backend": "redis", "error": str(e)}


def create_storage_backend(kind: str, redis_url: str):
    """Build the backend named by ``kind`` (``memory`` or ``redis``)"""
    if kind == "memory":
        return MemoryStorageBackend()
    if kind == "redis":
        return RedisStorageBackend(redis_url)
    raise ValueError(f"Unknown storage backend: {kind}")
