# lexgate/routing/router.py
import asyncio
import logging
import time
from typing import Any, Iterable, Optional, Tuple

from .access import AccessVerifier
from .backend import AbstractBackendConnector, BackendConnectionError
from .connection_cache import ConnectionCache
from .errors import (
    AccessDenied,
    EstablishFailed,
    RoutingError,
    TenantInactive,
    TenantNotFound,
    UpstreamTimeout,
)
from .events import AbstractRoutingEventSink, RoutingEvent, RoutingOutcome
from ..memberships.models import PrincipalTenantMembership
from ..tenants.errors import TenantNotFoundError
from ..tenants.models import TenantRecord
from ..tenants.storage_interfaces import AbstractTenantDirectory

logger = logging.getLogger(__name__)

_ERROR_OUTCOMES = {
    TenantNotFound: RoutingOutcome.TENANT_NOT_FOUND,
    TenantInactive: RoutingOutcome.TENANT_INACTIVE,
    AccessDenied: RoutingOutcome.ACCESS_DENIED,
    UpstreamTimeout: RoutingOutcome.UPSTREAM_TIMEOUT,
    EstablishFailed: RoutingOutcome.ESTABLISH_FAILED,
}


class TenantRequestRouter:
    """
    Resolves an inbound (principal, tenant) pair to a ready connection handle.

    Order per request: directory lookup, status check, access check, cache,
    and only then establishment. The status check always runs before the
    cache is consulted, so a handle cached before a suspension is never
    served afterwards.

    Establishment is single-flight per tenant: concurrent misses queue on the
    tenant's key lock and reuse the connection the first caller cached.
    Time spent queued counts against the establishment timeout.
    The router never retries; callers may retry UpstreamTimeout and
    EstablishFailed with their own backoff.
    """

    def __init__(
        self,
        directory: AbstractTenantDirectory,
        cache: ConnectionCache,
        connector: AbstractBackendConnector,
        verifier: Optional[AccessVerifier] = None,
        event_sink: Optional[AbstractRoutingEventSink] = None,
        connection_ttl: Optional[float] = None,
        lookup_timeout: Optional[float] = None,
        establish_timeout: Optional[float] = None,
    ):
        self.directory = directory
        self.cache = cache
        self.connector = connector
        self.verifier = verifier or AccessVerifier()
        self.event_sink = event_sink
        self.connection_ttl = connection_ttl
        self.lookup_timeout = lookup_timeout
        self.establish_timeout = establish_timeout

    async def route(
        self,
        principal_id: str,
        tenant_id: str,
        memberships: Iterable[PrincipalTenantMembership],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Return a connection handle for tenant_id on behalf of principal_id.

        Args:
            principal_id: Already-authenticated caller identity
            tenant_id: Tenant the request is scoped to
            memberships: The principal's tenant memberships, as supplied by the identity provider
            timeout: Seconds allowed for each of lookup and establishment; when None the
                router-level lookup_timeout and establish_timeout apply

        Raises:
            TenantNotFound, TenantInactive, AccessDenied, UpstreamTimeout, EstablishFailed
            Directory failures outside these are re-raised unchanged after their event is emitted
        """
        started = time.perf_counter()
        try:
            handle, outcome = await self._route(principal_id, tenant_id, memberships, timeout)
        except RoutingError as e:
            self._emit(
                tenant_id, principal_id, _ERROR_OUTCOMES[type(e)], started,
                reason=getattr(e, "reason", None)
            )
            raise
        except Exception as e:
            logger.error(f"Router: Unexpected error routing P:{principal_id} to T:{tenant_id}: {e}", exc_info=True)
            self._emit(tenant_id, principal_id, RoutingOutcome.INTERNAL_ERROR, started, reason=type(e).__name__)
            raise
        self._emit(tenant_id, principal_id, outcome, started)
        return handle

    async def _route(
        self,
        principal_id: str,
        tenant_id: str,
        memberships: Iterable[PrincipalTenantMembership],
        timeout: Optional[float],
    ) -> Tuple[Any, RoutingOutcome]:
        tenant = await self._lookup(
            tenant_id, self.lookup_timeout if timeout is None else timeout
        )

        if not tenant.is_active:
            raise TenantInactive(tenant_id)

        decision = self.verifier.verify(principal_id, tenant, memberships)
        if not decision.allowed:
            raise AccessDenied(tenant_id, decision.reason or "denied")

        handle = await self.cache.get(tenant_id)
        if handle is not None:
            return handle, RoutingOutcome.CACHE_HIT

        establish_timeout = self.establish_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        # One deadline covers both queueing on the key lock and the connect itself
        deadline = None if establish_timeout is None else loop.time() + establish_timeout

        lock = self.cache.key_lock(tenant_id)
        try:
            await asyncio.wait_for(lock.acquire(), establish_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Router: Waiting on in-flight connect for T:{tenant_id} timed out after {establish_timeout}s."
            )
            raise UpstreamTimeout(tenant_id, "establish")
        try:
            # Another caller may have finished establishing while we waited
            handle = await self.cache.get(tenant_id)
            if handle is not None:
                return handle, RoutingOutcome.CACHE_HIT

            remaining = None if deadline is None else max(deadline - loop.time(), 0.0)
            handle = await self._establish(tenant, remaining)
            await self.cache.put(tenant_id, handle, self.connection_ttl)
            return handle, RoutingOutcome.ESTABLISHED
        finally:
            lock.release()

    async def _lookup(self, tenant_id: str, timeout: Optional[float]) -> TenantRecord:
        try:
            return await asyncio.wait_for(self.directory.lookup(tenant_id), timeout)
        except TenantNotFoundError:
            raise TenantNotFound(tenant_id)
        except asyncio.TimeoutError:
            logger.warning(f"Router: Directory lookup for T:{tenant_id} timed out after {timeout}s.")
            raise UpstreamTimeout(tenant_id, "directory_lookup")

    async def _establish(self, tenant: TenantRecord, timeout: Optional[float]) -> Any:
        # A timed-out establishment is cancelled and never reaches the cache
        try:
            return await asyncio.wait_for(self.connector.establish(tenant), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Router: Connecting to T:{tenant.tenant_id} timed out after {timeout}s.")
            raise UpstreamTimeout(tenant.tenant_id, "establish")
        except BackendConnectionError as e:
            logger.warning(f"Router: Could not connect to T:{tenant.tenant_id}: {e}")
            raise EstablishFailed(tenant.tenant_id) from e
        except Exception as e:
            logger.error(f"Router: Unexpected error connecting to T:{tenant.tenant_id}: {e}", exc_info=True)
            raise EstablishFailed(tenant.tenant_id) from e

    def _emit(
        self,
        tenant_id: str,
        principal_id: str,
        outcome: RoutingOutcome,
        started: float,
        reason: Optional[str] = None,
    ) -> None:
        if self.event_sink is None:
            return
        event = RoutingEvent(
            tenant_id=tenant_id,
            principal_id=principal_id,
            outcome=outcome,
            latency_ms=(time.perf_counter() - started) * 1000,
            reason=reason,
        )
        try:
            self.event_sink.emit(event)
        except Exception as e:
            logger.error(f"Router: Routing event sink failed: {e}", exc_info=True)
