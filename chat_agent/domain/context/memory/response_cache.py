from typing import Dict, Any, Optional, Callable, Sequence
from collections import OrderedDict
import asyncio
import hashlib
import time
import structlog

from chat_agent.domain.models.conversation import CacheCategory, CacheEntry, CacheStats, Message

logger = structlog.get_logger(__name__)


CATEGORY_TTLS: Dict[CacheCategory, int] = {
    CacheCategory.WEATHER: 1800,
    CacheCategory.NEWS: 3600,
    CacheCategory.GENERAL: 3600,
    CacheCategory.CODE: 7200,
}


def _normalize(message: str) -> str:
    return (message or "").strip().lower()


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class ResponseCache:
    """In-memory reply cache with per-category TTL and FIFO capacity eviction

    Entries are kept in insertion order; when a new key would exceed
    ``max_entries`` expired entries are dropped first, then the oldest
    inserted entry is evicted.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        default_ttl: int = 3600,
        sweep_interval: float = 10 * 60,
        context_turns: int = 3,
        clock: Callable[[], float] = time.time,
    ):
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self.context_turns = context_turns
        self._clock = clock
        self.cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.counters = {"hits": 0, "misses": 0, "sets": 0, "deletes": 0}
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def fingerprint(self, session_id: str, history: Sequence[Message], message: str) -> str:
        """Key on session, the trailing turns and the new utterance"""

        recent = history[-self.context_turns:] if self.context_turns > 0 else []
        rendered = "\n".join(m.render() for m in recent)
        return "chat_" + _digest("\x1f".join([session_id, rendered, _normalize(message)]))

    @staticmethod
    def message_key(message: str) -> str:
        """Coarse key on the utterance alone"""

        return "msg_" + _digest(_normalize(message))

    def ttl_for(self, category: Any) -> int:
        return CATEGORY_TTLS.get(CacheCategory.parse(category), self.default_ttl)

    async def get(self, key: str) -> Optional[str]:
        """Get a cached reply if it has not expired"""

        async with self._lock:
            entry = self.cache.get(key)

            if entry is not None and entry.is_expired(self._clock()):
                del self.cache[key]
                entry = None

            if entry is None:
                self.counters["misses"] += 1
                logger.debug("Cache miss", key=key)
                return None

            self.counters["hits"] += 1
            logger.debug("Cache hit", key=key)
            return entry.value

    async def set(
        self,
        key: str,
        value: str,
        category: Any = CacheCategory.GENERAL,
        ttl: Optional[int] = None,
        message: Optional[str] = None
    ) -> bool:
        """Store a reply; TTL comes from the category unless given explicitly"""

        resolved = CacheCategory.parse(category)
        ttl_seconds = ttl if ttl is not None else self.ttl_for(resolved)
        if ttl_seconds <= 0 or self.max_entries <= 0:
            return False

        async with self._lock:
            now = self._clock()
            if key in self.cache:
                del self.cache[key]

            # Expired entries give up their slots before any live entry is evicted
            if len(self.cache) >= self.max_entries:
                for expired_key in [k for k, entry in self.cache.items() if entry.is_expired(now)]:
                    del self.cache[expired_key]

            while len(self.cache) >= self.max_entries:
                evicted_key, _ = self.cache.popitem(last=False)
                logger.debug("Cache evicted oldest entry", key=evicted_key)

            self.cache[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                ttl_seconds=ttl_seconds,
                category=resolved,
                message_key=self.message_key(message) if message is not None else None
            )
            self.counters["sets"] += 1

        logger.debug("Cache set", key=key, category=resolved.value, ttl=ttl_seconds)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key from cache"""

        async with self._lock:
            if key in self.cache:
                del self.cache[key]
                self.counters["deletes"] += 1
                return True
            return False

    async def delete_by_message(self, message: str) -> int:
        """Delete every entry produced for this utterance, whatever its context"""

        target = self.message_key(message)

        async with self._lock:
            keys = [
                key for key, entry in self.cache.items()
                if entry.message_key == target
            ]
            for key in keys:
                del self.cache[key]
            self.counters["deletes"] += len(keys)

        logger.info("Cache delete by message", removed=len(keys))
        return len(keys)

    async def clear(self) -> None:
        """Drop every entry"""

        async with self._lock:
            self.cache.clear()

        logger.info("Cache cleared")

    async def cleanup_expired(self) -> int:
        """Clear expired entries and return count"""

        async with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, entry in self.cache.items()
                if entry.is_expired(now)
            ]

            for key in expired_keys:
                del self.cache[key]

        if expired_keys:
            logger.info("Cache sweep removed expired entries", count=len(expired_keys))
        return len(expired_keys)

    async def stats(self) -> CacheStats:
        """Get cache statistics"""

        async with self._lock:
            now = self._clock()
            live = sum(1 for entry in self.cache.values() if not entry.is_expired(now))
            hits = self.counters["hits"]
            misses = self.counters["misses"]
            lookups = hits + misses

            return CacheStats(
                hits=hits,
                misses=misses,
                sets=self.counters["sets"],
                deletes=self.counters["deletes"],
                total_live_keys=live,
                hit_rate=hits / lookups if lookups else 0.0
            )

    async def info(self) -> Dict[str, Any]:
        """Cache configuration alongside its statistics"""

        stats = await self.stats()
        return {
            "keys": stats.total_live_keys,
            "max_keys": self.max_entries,
            "default_ttl": self.default_ttl,
            "category_ttls": {category.value: ttl for category, ttl in CATEGORY_TTLS.items()},
            "stats": stats.model_dump()
        }

    async def _sweep_loop(self):
        """Periodic TTL cleanup"""

        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.cleanup_expired()
            except Exception as e:
                logger.error("Cache sweep error", error=str(e))

    def start_sweeper(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())
            logger.info("Cache sweeper started", interval=self.sweep_interval)

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return

        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Cache sweeper stopped")
