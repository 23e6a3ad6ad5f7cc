# lexgate/routing/__init__.py
"""
Tenant request routing.

Resolves which isolated tenant backend a request belongs to, verifies the
caller's membership, and keeps a time-bounded cache of live backend
connections.
"""

from .access import AccessVerifier, AccessDecision, REASON_NOT_A_MEMBER, REASON_TENANT_INACTIVE
from .backend import (
    AbstractBackendConnector,
    BackendConnectionError,
    HttpxBackendConnector,
    TenantConnection,
)
from .connection_cache import ConnectionCache, CachedConnection
from .errors import (
    RoutingError,
    TenantNotFound,
    TenantInactive,
    AccessDenied,
    UpstreamTimeout,
    EstablishFailed,
)
from .events import (
    RoutingEvent,
    RoutingOutcome,
    AbstractRoutingEventSink,
    LoggingRoutingEventSink,
    BufferedRoutingEventSink,
)
from .invalidation import RedisInvalidationBroadcaster
from .router import TenantRequestRouter

__all__ = [
    "AccessVerifier",
    "AccessDecision",
    "REASON_NOT_A_MEMBER",
    "REASON_TENANT_INACTIVE",
    "AbstractBackendConnector",
    "BackendConnectionError",
    "HttpxBackendConnector",
    "TenantConnection",
    "ConnectionCache",
    "CachedConnection",
    "RoutingError",
    "TenantNotFound",
    "TenantInactive",
    "AccessDenied",
    "UpstreamTimeout",
    "EstablishFailed",
    "RoutingEvent",
    "RoutingOutcome",
    "AbstractRoutingEventSink",
    "LoggingRoutingEventSink",
    "BufferedRoutingEventSink",
    "RedisInvalidationBroadcaster",
    "TenantRequestRouter",
]
