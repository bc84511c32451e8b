"""Per-knowledge-base cache of the most recently observed location."""
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from api.features.geo.exceptions import GeoCacheError


class GeoCache:
    """Redis-backed ``kb_id -> "country|province|city"`` mapping.

    Entries expire after ``ttl_seconds``; a miss or stale value is a normal
    outcome, not an error.
    """

    def __init__(self, client: aioredis.Redis, ttl_seconds: int, key_prefix: str = "geo"):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def _key(self, kb_id: str) -> str:
        return f"{self.key_prefix}:{kb_id}"

    async def get(self, kb_id: str) -> Optional[str]:
        try:
            value = await self.client.get(self._key(kb_id))
        except RedisError as e:
            raise GeoCacheError(kb_id, f"read failed: {e}")
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, kb_id: str, location: str) -> None:
        try:
            await self.client.set(self._key(kb_id), location, ex=self.ttl_seconds)
        except RedisError as e:
            raise GeoCacheError(kb_id, f"write failed: {e}", {"location": location})
