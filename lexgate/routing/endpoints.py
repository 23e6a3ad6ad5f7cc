# lexgate/routing/endpoints.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status
from typing import Annotated, Any, Dict, List, Optional

import httpx

from .backend import BackendConnectionError, TenantConnection
from ..core.runtime import RoutingRuntime
from ..dependencies import get_admin_api_key, get_principal_id, get_runtime
from ..memberships.models import TenantSummary

logger = logging.getLogger(__name__)

# Headers that belong to a single hop or to the gateway itself, never forwarded
_HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "x-gateway-secret",
}
# httpx hands us a decoded body, so encoding headers from the backend no longer apply
_DROPPED_RESPONSE_HEADERS = {"content-encoding", "content-length", "transfer-encoding", "connection"}

routing_admin_router = APIRouter(
    prefix="/admin/routing",
    tags=["Admin - Routing"],
    dependencies=[Depends(get_admin_api_key)]
)

principal_router = APIRouter(tags=["Tenant Gateway"])


@routing_admin_router.get("/cache")
async def get_connection_cache_endpoint(
    runtime: Annotated[RoutingRuntime, Depends(get_runtime)]
) -> Dict[str, Any]:
    """Tenants with a cached backend connection in this process and their remaining lifetime."""
    entries = runtime.cache.snapshot()
    return {"size": len(entries), "entries": entries}


@routing_admin_router.get("/events")
async def list_routing_events_endpoint(
    runtime: Annotated[RoutingRuntime, Depends(get_runtime)],
    tenant_id: Annotated[Optional[str], Query(description="Only events for this tenant.")] = None,
    limit: Annotated[int, Query(ge=1, le=1000, description="Maximum number of events to return.")] = 100,
) -> List[Dict[str, Any]]:
    return runtime.event_sink.recent(tenant_id=tenant_id, limit=limit)


@principal_router.get("/me/tenants", response_model=List[TenantSummary])
async def list_my_tenants_endpoint(
    principal_id: Annotated[str, Depends(get_principal_id)],
    runtime: Annotated[RoutingRuntime, Depends(get_runtime)]
):
    """Active tenants the calling principal belongs to, with the principal's role in each."""
    return await runtime.tenant_service.list_active_tenants_for_principal(principal_id)


@principal_router.api_route(
    "/api/{tenant_id}/{backend_path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
)
async def tenant_gateway_endpoint(
    request: Request,
    tenant_id: Annotated[str, Path(description="Tenant the request is scoped to")],
    backend_path: Annotated[str, Path(description="Path on the tenant backend")],
    principal_id: Annotated[str, Depends(get_principal_id)],
    runtime: Annotated[RoutingRuntime, Depends(get_runtime)]
):
    """
    Route the request to the tenant's backend and relay the backend's response.

    Routing failures surface as their typed errors (404, 403, 504, 502).
    """
    memberships = await runtime.membership_store.get_memberships_for_principal(principal_id)
    connection: TenantConnection = await runtime.router.route(principal_id, tenant_id, memberships)

    forward_headers = {
        name: value for name, value in request.headers.items()
        if name.lower() not in _HOP_BY_HOP_HEADERS
    }
    try:
        backend_response = await connection.request(
            request.method,
            "/" + backend_path,
            params=request.query_params.multi_items(),
            headers=forward_headers,
            content=await request.body(),
        )
    except (httpx.TransportError, BackendConnectionError) as e:
        # Also covers a connection evicted from the cache mid-request
        logger.warning(
            f"API: Forwarding {request.method} for P:{principal_id} to T:{tenant_id} failed: {type(e).__name__}"
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "backend_request_failed", "error_description": "Tenant backend request failed."}
        )

    response_headers = {
        name: value for name, value in backend_response.headers.items()
        if name.lower() not in _DROPPED_RESPONSE_HEADERS
    }
    return Response(
        content=backend_response.content,
        status_code=backend_response.status_code,
        headers=response_headers,
    )
