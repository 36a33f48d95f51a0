# backend/discovery/services/location/place_cache.py
"""
Key-value caches for resolved places.

Forward and reverse geocode results are stored here keyed by normalized
address text or rounded coordinates. Values are PlaceRecord instances;
nothing but successful lookups is ever written.
"""

from abc import ABC, abstractmethod
from collections import OrderedDict
import logging
from typing import Optional

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from ...core.config import settings
from ...schemas.location import PlaceRecord

logger = logging.getLogger(__name__)


class PlaceCache(ABC):
    """Async get/put over PlaceRecord values."""

    @abstractmethod
    async def get(self, key: str) -> Optional[PlaceRecord]:
        pass

    @abstractmethod
    async def put(self, key: str, value: PlaceRecord) -> None:
        pass

    @abstractmethod
    async def size(self) -> int:
        pass


class InMemoryPlaceCache(PlaceCache):
    """
    Process-local cache.

    Unbounded unless max_entries is given, in which case the least recently
    used key is evicted first.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._entries: "OrderedDict[str, PlaceRecord]" = OrderedDict()
        self.max_entries = max_entries

    async def get(self, key: str) -> Optional[PlaceRecord]:
        value = self._entries.get(key)
        if value is not None and self.max_entries is not None:
            self._entries.move_to_end(key)
        return value

    async def put(self, key: str, value: PlaceRecord) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted place cache key: {evicted}")

    async def size(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class RedisPlaceCache(PlaceCache):
    """
    Redis-backed cache shared across processes.

    Values are stored as PlaceRecord JSON with a TTL. Redis errors are logged
    and reported as a miss (get) or ignored (put); the lookup still succeeds
    from the provider.
    """

    def __init__(self, client: AsyncRedis, *, namespace: str, ttl_seconds: int = 60 * 60 * 24 * 7):
        self.client = client
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, *, namespace: str, ttl_seconds: int) -> "RedisPlaceCache":
        client = AsyncRedis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        return cls(client, namespace=namespace, ttl_seconds=ttl_seconds)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[PlaceRecord]:
        try:
            raw = await self.client.get(self._key(key))
        except RedisError as exc:
            logger.warning(f"[PLACE-CACHE] Redis get failed for {key}: {exc}")
            return None
        if raw is None:
            return None
        try:
            return PlaceRecord.model_validate_json(raw)
        except ValueError as exc:
            logger.warning(f"[PLACE-CACHE] Discarding undecodable entry {key}: {exc}")
            return None

    async def put(self, key: str, value: PlaceRecord) -> None:
        try:
            if self.ttl_seconds > 0:
                await self.client.set(self._key(key), value.model_dump_json(), ex=self.ttl_seconds)
            else:
                await self.client.set(self._key(key), value.model_dump_json())
        except RedisError as exc:
            logger.warning(f"[PLACE-CACHE] Redis set failed for {key}: {exc}")

    async def size(self) -> int:
        count = 0
        try:
            async for _ in self.client.scan_iter(match=f"{self.namespace}:*"):
                count += 1
        except RedisError as exc:
            logger.warning(f"[PLACE-CACHE] Redis scan failed: {exc}")
        return count


def create_place_cache(namespace: str, backend: Optional[str] = None) -> PlaceCache:
    """Cache for one lookup direction ("forward" or "reverse") per settings.place_cache_backend."""
    name = backend or settings.place_cache_backend
    if name == "redis":
        return RedisPlaceCache.from_url(
            settings.redis_url,
            namespace=f"geo:{namespace}",
            ttl_seconds=settings.place_cache_ttl_seconds,
        )
    return InMemoryPlaceCache()
