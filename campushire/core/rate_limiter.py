"""
Rate Limiter Implementation
Sliding-window limiter with a pluggable counter store.

The in-memory store keeps per-process state only. The Mongo store keeps
fixed-window counters in a shared collection so several API instances see
the same budget.
"""

import calendar
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Dict, Optional, Tuple

from loguru import logger
from pymongo import ReturnDocument

from campushire.core.config import settings


class MemoryRateLimitStore:
    """Per-process sliding window kept in a deque per client. Idle clients are dropped."""

    def __init__(self):
        self._requests: Dict[str, Deque[datetime]] = {}

    def _prune(self, key: str, window_seconds: int, now: datetime) -> Deque[datetime]:
        requests = self._requests.get(key)
        if requests is None:
            return deque()
        cutoff_time = now - timedelta(seconds=window_seconds)
        while requests and requests[0] <= cutoff_time:
            requests.popleft()
        if not requests:
            del self._requests[key]
        return requests

    async def hit(self, key: str, window_seconds: int, now: datetime) -> Tuple[int, Optional[datetime]]:
        """Record one request and return (count in window, window reset time)"""
        requests = self._prune(key, window_seconds, now)
        requests.append(now)
        self._requests[key] = requests
        return len(requests), requests[0] + timedelta(seconds=window_seconds)

    async def count(self, key: str, window_seconds: int, now: datetime) -> Tuple[int, Optional[datetime]]:
        requests = self._prune(key, window_seconds, now)
        if not requests:
            return 0, None
        return len(requests), requests[0] + timedelta(seconds=window_seconds)

    async def undo(self, key: str) -> None:
        requests = self._requests.get(key)
        if requests:
            requests.pop()
            if not requests:
                del self._requests[key]

    async def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._requests.clear()
        else:
            self._requests.pop(key, None)


class MongoRateLimitStore:
    """Shared fixed-window counters with atomic increment and TTL expiry"""

    def __init__(self, database=None, collection_name: str = "rate_limit_counters"):
        self._database = database
        self.collection_name = collection_name
        self._index_ready = False

    def _collection(self):
        if self._database is None:
            from campushire.core.database import get_database
            self._database = get_database()
        return self._database[self.collection_name]

    @staticmethod
    def _window(window_seconds: int, now: datetime) -> Tuple[int, datetime]:
        epoch = calendar.timegm(now.utctimetuple())
        window_start = epoch - (epoch % window_seconds)
        reset_at = now.replace(microsecond=0) + timedelta(seconds=window_start + window_seconds - epoch)
        return window_start, reset_at

    async def _ensure_index(self, collection) -> None:
        if not self._index_ready:
            await collection.create_index("expires_at", expireAfterSeconds=0)
            self._index_ready = True

    async def hit(self, key: str, window_seconds: int, now: datetime) -> Tuple[int, Optional[datetime]]:
        collection = self._collection()
        await self._ensure_index(collection)
        window_start, reset_at = self._window(window_seconds, now)
        record = await collection.find_one_and_update(
            {"_id": f"{key}:{window_start}"},
            {"$inc": {"count": 1}, "$setOnInsert": {"key": key, "expires_at": reset_at}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return record["count"], reset_at

    async def count(self, key: str, window_seconds: int, now: datetime) -> Tuple[int, Optional[datetime]]:
        window_start, reset_at = self._window(window_seconds, now)
        record = await self._collection().find_one({"_id": f"{key}:{window_start}"})
        if not record:
            return 0, None
        return record["count"], reset_at

    async def undo(self, key: str) -> None:
        # Fixed windows count rejected hits too; nothing to roll back
        return None

    async def clear(self, key: Optional[str] = None) -> None:
        query = {} if key is None else {"key": key}
        await self._collection().delete_many(query)


class RateLimiter:
    """Rate limiter with temporary blocking once a client exceeds its budget"""

    def __init__(self, store=None):
        self.store = store or MemoryRateLimitStore()
        self._blocked_until: Dict[str, datetime] = {}

    async def is_allowed(
        self,
        client_id: str,
        max_requests: int = 100,
        window_seconds: int = 3600,
        block_duration_seconds: int = 0
    ) -> bool:
        """
        Check if a request is allowed for the given client and record it

        Args:
            client_id: Unique identifier for the client (IP, user ID, etc.)
            max_requests: Maximum number of requests allowed in the window
            window_seconds: Time window in seconds
            block_duration_seconds: How long to block after exceeding limit (0 disables)

        Returns:
            True if request is allowed, False otherwise
        """
        now = datetime.utcnow()

        if self.is_blocked(client_id):
            return False

        count, _ = await self.store.hit(client_id, window_seconds, now)
        if count > max_requests:
            await self.store.undo(client_id)
            if block_duration_seconds:
                self._blocked_until[client_id] = now + timedelta(seconds=block_duration_seconds)
                logger.warning(f"Rate limit exceeded for client {client_id}. Blocked until {self._blocked_until[client_id]}")
            else:
                logger.warning(f"Rate limit exceeded for client {client_id}")
            return False

        return True

    async def get_remaining_requests(
        self,
        client_id: str,
        max_requests: int = 100,
        window_seconds: int = 3600
    ) -> int:
        count, _ = await self.store.count(client_id, window_seconds, datetime.utcnow())
        return max(0, max_requests - count)

    async def get_reset_time(self, client_id: str, window_seconds: int = 3600) -> Optional[datetime]:
        _, reset_at = await self.store.count(client_id, window_seconds, datetime.utcnow())
        return reset_at

    def is_blocked(self, client_id: str) -> bool:
        if client_id not in self._blocked_until:
            return False

        if datetime.utcnow() >= self._blocked_until[client_id]:
            del self._blocked_until[client_id]
            return False

        return True

    def get_block_expiry(self, client_id: str) -> Optional[datetime]:
        return self._blocked_until.get(client_id)

    async def clear_client(self, client_id: str) -> None:
        await self.store.clear(client_id)
        self._blocked_until.pop(client_id, None)

    async def clear_all(self) -> None:
        await self.store.clear()
        self._blocked_until.clear()


def build_store(backend: str):
    if backend == "mongo":
        return MongoRateLimitStore()
    if backend != "memory":
        logger.warning(f"Unknown rate limit backend '{backend}', falling back to memory")
    return MemoryRateLimitStore()


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance"""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(build_store(settings.RATE_LIMIT_BACKEND))
    return _rate_limiter


_WINDOW_15_MIN = 15 * 60

# Rate limiting configurations for different endpoint groups
RATE_LIMITS = {
    "api_general": {
        "max_requests": 100 if settings.is_production else 1000,
        "window_seconds": _WINDOW_15_MIN,
        "block_duration_seconds": 0,
    },
    "strict": {
        "max_requests": 10 if settings.is_production else 50,
        "window_seconds": _WINDOW_15_MIN,
        "block_duration_seconds": 0,
    },
    "messages": {
        "max_requests": 5,
        "window_seconds": 60,
        "block_duration_seconds": 0,
    },
}


async def check_rate_limit(client_id: str, endpoint_type: str = "api_general") -> bool:
    """Check and record one request against the named limit"""
    rate_limiter = get_rate_limiter()
    config = RATE_LIMITS.get(endpoint_type, RATE_LIMITS["api_general"])

    return await rate_limiter.is_allowed(
        client_id=f"{endpoint_type}:{client_id}",
        max_requests=config["max_requests"],
        window_seconds=config["window_seconds"],
        block_duration_seconds=config["block_duration_seconds"]
    )
