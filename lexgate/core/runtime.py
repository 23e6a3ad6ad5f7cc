# lexgate/core/runtime.py
import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..settings import Settings
from ..memberships.sqlite_membership_store import SQLiteMembershipStore
from ..memberships.storage_interfaces import AbstractMembershipStore
from ..routing.backend import AbstractBackendConnector, HttpxBackendConnector
from ..routing.connection_cache import ConnectionCache
from ..routing.events import BufferedRoutingEventSink
from ..routing.invalidation import RedisInvalidationBroadcaster
from ..routing.router import TenantRequestRouter
from ..tenants.service import TenantService
from ..tenants.sqlite_tenant_store import SQLiteTenantDirectory
from ..tenants.storage_interfaces import AbstractTenantDirectory
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)


@dataclass
class RoutingRuntime:
    """Every long-lived component of one gateway process, owned explicitly instead of as module globals."""
    directory: AbstractTenantDirectory
    membership_store: AbstractMembershipStore
    cache: ConnectionCache
    connector: AbstractBackendConnector
    event_sink: BufferedRoutingEventSink
    router: TenantRequestRouter
    tenant_service: TenantService
    broadcaster: Optional[RedisInvalidationBroadcaster] = None
    background_tasks: List[asyncio.Task] = field(default_factory=list)

    async def shutdown(self) -> None:
        """Stop background work and release every cached connection."""
        for task in self.background_tasks:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.background_tasks.clear()

        await self.cache.close()
        if self.broadcaster is not None:
            await self.broadcaster.disconnect()
        await self.directory.teardown()
        await self.membership_store.teardown()
        logger.info("Routing runtime shut down.")


async def build_runtime(
    settings: Settings,
    connector: Optional[AbstractBackendConnector] = None,
    directory: Optional[AbstractTenantDirectory] = None,
    membership_store: Optional[AbstractMembershipStore] = None,
    clock: Callable[[], float] = time.monotonic,
    start_background_tasks: bool = True,
) -> RoutingRuntime:
    """
    Assemble the routing components from settings.

    Components can be injected for tests; anything not given is built from
    settings (SQLite directory and memberships, httpx connector).
    """
    directory = directory or SQLiteTenantDirectory(FernetEncryptor(settings.lexgate_encryption_key))
    membership_store = membership_store or SQLiteMembershipStore()
    await directory.initialize()
    await membership_store.initialize()

    connector = connector or HttpxBackendConnector(
        timeout_seconds=settings.backend_connect_timeout_seconds,
        health_path=settings.backend_health_path,
    )
    cache = ConnectionCache(
        release=connector.release,
        clock=clock,
        default_ttl=settings.connection_cache_ttl_seconds,
    )
    event_sink = BufferedRoutingEventSink(max_events=settings.routing_event_buffer_size)

    broadcaster: Optional[RedisInvalidationBroadcaster] = None
    if settings.redis_invalidation_enabled:
        broadcaster = RedisInvalidationBroadcaster(channel=settings.redis_invalidation_channel)
        await broadcaster.connect()

    router = TenantRequestRouter(
        directory=directory,
        cache=cache,
        connector=connector,
        event_sink=event_sink,
        connection_ttl=settings.connection_cache_ttl_seconds,
        lookup_timeout=settings.directory_lookup_timeout_seconds,
        establish_timeout=settings.backend_connect_timeout_seconds,
    )
    tenant_service = TenantService(directory, membership_store, cache=cache, broadcaster=broadcaster)

    runtime = RoutingRuntime(
        directory=directory,
        membership_store=membership_store,
        cache=cache,
        connector=connector,
        event_sink=event_sink,
        router=router,
        tenant_service=tenant_service,
        broadcaster=broadcaster,
    )

    if start_background_tasks:
        cache.start_sweeper(settings.connection_cache_sweep_interval_seconds)
        if broadcaster is not None and broadcaster.is_available():
            runtime.background_tasks.append(
                asyncio.create_task(broadcaster.listen(cache), name="lexgate-invalidation-listener")
            )

    logger.info(
        f"Routing runtime ready (cache TTL {settings.connection_cache_ttl_seconds}s, "
        f"cross-process invalidation {'on' if broadcaster and broadcaster.is_available() else 'off'})."
    )
    return runtime
