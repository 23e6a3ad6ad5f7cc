# lexgate/tenants/endpoints.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from typing import List, Annotated, Optional

from .models import TenantRecord, TenantCreate, TenantActivate, TenantStatus
from .service import TenantService
from ..dependencies import get_admin_api_key, get_tenant_service
from ..memberships.models import MembershipUpsert, PrincipalTenantMembership

logger = logging.getLogger(__name__)

# Admin router for tenant management - requires admin API key authentication
tenants_admin_router = APIRouter(
    prefix="/admin/tenants",
    tags=["Admin - Tenants"],
    dependencies=[Depends(get_admin_api_key)]
)


@tenants_admin_router.post("/", response_model=TenantRecord, status_code=status.HTTP_201_CREATED)
async def create_tenant_endpoint(
    tenant_create: TenantCreate,
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    """Register a tenant in provisioning state. Returns 409 if the tenant_id is taken."""
    logger.info(f"API: Received request to create tenant: {tenant_create.tenant_id}")
    return await service.create_tenant(tenant_create)


@tenants_admin_router.get("/", response_model=List[TenantRecord])
@tenants_admin_router.get("", response_model=List[TenantRecord], include_in_schema=False)
async def list_tenants_endpoint(
    service: Annotated[TenantService, Depends(get_tenant_service)],
    skip: Annotated[int, Query(ge=0, description="Number of tenants to skip.")] = 0,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum number of tenants to return.")] = 100,
    status_filter: Annotated[
        Optional[TenantStatus], Query(alias="status", description="Only tenants in this status.")
    ] = None,
):
    """List tenants with pagination support. Handles both trailing slash variants."""
    return await service.list_tenants(skip=skip, limit=limit, status=status_filter)


@tenants_admin_router.get("/{tenant_id}", response_model=TenantRecord)
async def get_tenant_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant to retrieve")],
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    return await service.get_tenant(tenant_id)


@tenants_admin_router.post("/{tenant_id}/activate", response_model=TenantRecord)
async def activate_tenant_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant to activate")],
    activation: TenantActivate,
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    """Record the tenant's backend location and make it routable. Only valid from provisioning."""
    try:
        return await service.mark_active(tenant_id, activation.backend_location)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@tenants_admin_router.post("/{tenant_id}/suspend", response_model=TenantRecord)
async def suspend_tenant_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant to suspend")],
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    """Suspend a tenant and drop its cached connections. Suspending twice is a no-op."""
    return await service.suspend(tenant_id)


@tenants_admin_router.post("/{tenant_id}/invalidate")
async def invalidate_tenant_connections_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant whose connections to drop")],
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    evicted = await service.invalidate_connections(tenant_id)
    return {"tenant_id": tenant_id, "evicted": evicted}


@tenants_admin_router.get("/{tenant_id}/members", response_model=List[PrincipalTenantMembership])
async def list_members_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant")],
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    return await service.list_members(tenant_id)


@tenants_admin_router.put("/{tenant_id}/members/{principal_id}", response_model=PrincipalTenantMembership)
async def set_membership_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant")],
    principal_id: Annotated[str, Path(description="The principal to grant a role to")],
    membership: MembershipUpsert,
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    """Grant a role in the tenant, or change the principal's existing role."""
    logger.info(f"API: Setting role '{membership.role.value}' for P:{principal_id} in T:{tenant_id}")
    return await service.set_membership(tenant_id, principal_id, membership.role)


@tenants_admin_router.delete("/{tenant_id}/members/{principal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_membership_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant")],
    principal_id: Annotated[str, Path(description="The principal to remove")],
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    removed = await service.remove_membership(tenant_id, principal_id)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found.")
    return None
