# lexgate/routing/connection_cache.py
import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ReleaseCallback = Callable[[Any], Awaitable[None]]


@dataclass
class CachedConnection:
    """A cached tenant connection. The entry exclusively owns its handle."""
    tenant_id: str
    handle: Any
    resolved_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class ConnectionCache:
    """
    Time-bounded cache of tenant_id -> backend connection handle.

    Every read-modify-write of the entry map happens without an await in
    between, so an entry is detached from the map by exactly one operation.
    Only that operation releases the handle, which is what guarantees each
    superseded or expired handle is released exactly once.

    The clock is injectable so TTL behaviour can be tested without sleeping.
    """

    def __init__(
        self,
        release: ReleaseCallback,
        clock: Callable[[], float] = time.monotonic,
        default_ttl: float = 300.0,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive.")
        self._release = release
        self._clock = clock
        self.default_ttl = default_ttl
        self._entries: Dict[str, CachedConnection] = {}
        self._key_locks: Dict[str, asyncio.Lock] = {}
        self._sweeper_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def key_lock(self, tenant_id: str) -> asyncio.Lock:
        """Per-tenant lock serializing connection establishment for that tenant."""
        lock = self._key_locks.get(tenant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[tenant_id] = lock
        return lock

    async def get(self, tenant_id: str) -> Optional[Any]:
        """
        Return the live handle for tenant_id, or None on a miss.

        An expired entry is evicted and released here so it can never be served.
        """
        entry = self._entries.get(tenant_id)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[tenant_id]
            logger.debug(f"Cache: Entry for T:{tenant_id} expired on read; releasing.")
            await self._release_entry(entry)
            return None
        return entry.handle

    async def put(self, tenant_id: str, handle: Any, ttl: Optional[float] = None) -> None:
        """Insert or replace the entry for tenant_id, releasing any superseded handle."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive.")
        now = self._clock()
        previous = self._entries.get(tenant_id)
        self._entries[tenant_id] = CachedConnection(
            tenant_id=tenant_id,
            handle=handle,
            resolved_at=now,
            expires_at=now + ttl,
        )
        # Re-putting the same handle only refreshes its stamps
        if previous is not None and previous.handle is not handle:
            logger.debug(f"Cache: Replacing handle for T:{tenant_id}; releasing the previous one.")
            await self._release_entry(previous)

    async def invalidate(self, tenant_id: str) -> bool:
        """
        Remove and release the entry for tenant_id.

        Returns:
            True if an entry was present
        """
        entry = self._entries.pop(tenant_id, None)
        if entry is None:
            return False
        logger.info(f"Cache: Invalidated cached connection for T:{tenant_id}.")
        await self._release_entry(entry)
        return True

    async def sweep(self, now: Optional[float] = None) -> int:
        """
        Release and remove every entry with expires_at <= now.

        Returns:
            Number of evicted entries
        """
        now = self._clock() if now is None else now
        expired = [entry for entry in self._entries.values() if entry.is_expired(now)]
        for entry in expired:
            del self._entries[entry.tenant_id]
        for entry in expired:
            await self._release_entry(entry)
        if expired:
            logger.info(f"Cache: Sweep released {len(expired)} expired connection(s).")
        return len(expired)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Read-only view of the cache for diagnostics. Handles are not exposed."""
        now = self._clock()
        return [
            {
                "tenant_id": entry.tenant_id,
                "age_seconds": round(now - entry.resolved_at, 3),
                "expires_in_seconds": round(entry.expires_at - now, 3),
            }
            for entry in sorted(self._entries.values(), key=lambda e: e.tenant_id)
        ]

    def start_sweeper(self, interval_seconds: float) -> None:
        """Start a background task that sweeps expired entries every interval."""
        if self._sweeper_task is not None and not self._sweeper_task.done():
            logger.warning("Cache: Sweeper already running. Skipping start.")
            return
        self._sweeper_task = asyncio.create_task(
            self._sweep_periodically(interval_seconds),
            name="lexgate-connection-cache-sweeper",
        )
        logger.info(f"Cache: Background sweeper started (interval {interval_seconds}s).")

    async def _sweep_periodically(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.sweep()

    async def close(self) -> None:
        """Stop the sweeper and release every remaining handle."""
        if self._sweeper_task is not None:
            self._sweeper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper_task
            self._sweeper_task = None

        remaining = list(self._entries.values())
        self._entries.clear()
        for entry in remaining:
            await self._release_entry(entry)
        logger.info(f"Cache: Closed; released {len(remaining)} connection(s).")

    async def _release_entry(self, entry: CachedConnection) -> None:
        try:
            await self._release(entry.handle)
        except Exception as e:
            # A failing release must not keep the entry alive or break the caller's operation
            logger.error(f"Cache: Error releasing connection for T:{entry.tenant_id}: {e}", exc_info=True)
