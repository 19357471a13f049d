"""Keyed stores for call sessions and pending recordings."""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueStore(ABC, Generic[T]):
    """Abstract keyed store used for sessions and the recording index."""

    @abstractmethod
    async def get(self, key: str) -> Optional[T]:
        """Get the value stored under key, or None."""
        pass

    @abstractmethod
    async def put(self, key: str, value: T) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if something was removed."""
        pass

    @abstractmethod
    async def size(self) -> int:
        """Number of live entries."""
        pass


class InMemoryStore(KeyValueStore[T]):
    """Process-local store with time-to-live eviction.

    An entry expires ``ttl_seconds`` after its last ``put``. Expired entries
    are dropped when read and purged in bulk on every write, so calls that
    are abandoned mid-flow do not stay resident for the life of the process.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "store",
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.name = name
        self._entries: Dict[str, Tuple[T, float]] = {}

    def _expired(self, stored_at: float, now: float) -> bool:
        return self.ttl_seconds is not None and now - stored_at >= self.ttl_seconds

    async def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._expired(stored_at, self.clock()):
            del self._entries[key]
            logger.debug(f"[STORE] Expired {self.name} entry on read - Key: {key}")
            return None
        return value

    async def put(self, key: str, value: T) -> None:
        await self.purge_expired()
        self._entries[key] = (value, self.clock())

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def size(self) -> int:
        await self.purge_expired()
        return len(self._entries)

    async def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were dropped."""
        if self.ttl_seconds is None:
            return 0
        now = self.clock()
        expired = [
            key
            for key, (_, stored_at) in self._entries.items()
            if self._expired(stored_at, now)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"[STORE] Evicted {len(expired)} expired {self.name} entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()


class KeyedLock:
    """One asyncio lock per key, released from memory once nobody holds it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
