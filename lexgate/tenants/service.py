# lexgate/tenants/service.py
import logging
from typing import Optional, List

from .errors import TenantNotFoundError
from .models import TenantRecord, TenantCreate, TenantStatus
from .storage_interfaces import AbstractTenantDirectory
from ..memberships.models import PrincipalTenantMembership, TenantRole, TenantSummary
from ..memberships.storage_interfaces import AbstractMembershipStore
from ..routing.connection_cache import ConnectionCache
from ..routing.invalidation import RedisInvalidationBroadcaster

logger = logging.getLogger(__name__)


class TenantService:
    """
    Service layer for tenant lifecycle and membership operations.

    Sits between the API layer and the directory/membership stores. Every
    change to a tenant's status or backend location actively invalidates
    cached connections for that tenant, locally and (when configured) in
    every other gateway process, so data stops being reachable at once
    rather than after the cache TTL.
    """

    def __init__(
        self,
        directory: AbstractTenantDirectory,
        membership_store: AbstractMembershipStore,
        cache: Optional[ConnectionCache] = None,
        broadcaster: Optional[RedisInvalidationBroadcaster] = None,
    ):
        self.directory = directory
        self.membership_store = membership_store
        self.cache = cache
        self.broadcaster = broadcaster

    async def create_tenant(self, tenant_create: TenantCreate) -> TenantRecord:
        """
        Register a tenant in the provisioning state.

        If an owner principal is given, the owner membership is created with it.
        """
        logger.info(f"Service: Attempting to create tenant with tenant_id: {tenant_create.tenant_id}")
        tenant = await self.directory.create_tenant(tenant_create)
        if tenant_create.owner_principal_id:
            try:
                await self.membership_store.add_membership(
                    PrincipalTenantMembership(
                        principal_id=tenant_create.owner_principal_id,
                        tenant_id=tenant.tenant_id,
                        role=TenantRole.OWNER,
                    )
                )
            except Exception:
                # Tenants are never deleted, so the record stays behind without an owner
                logger.error(
                    f"Service: Tenant {tenant.tenant_id} was created but its owner membership for "
                    f"P:{tenant_create.owner_principal_id} failed. Add the owner with "
                    f"PUT /admin/tenants/{tenant.tenant_id}/members/{tenant_create.owner_principal_id}.",
                    exc_info=True,
                )
                raise
        return tenant

    async def get_tenant(self, tenant_id: str) -> TenantRecord:
        logger.info(f"Service: Getting tenant with tenant_id: {tenant_id}")
        return await self.directory.lookup(tenant_id)

    async def list_tenants(
        self, skip: int = 0, limit: int = 100, status: Optional[TenantStatus] = None
    ) -> List[TenantRecord]:
        logger.info(f"Service: Listing tenants with skip: {skip}, limit: {limit}, status: {status}")
        return await self.directory.list_tenants(skip=skip, limit=limit, status=status)

    async def mark_active(self, tenant_id: str, backend_location: str) -> TenantRecord:
        logger.info(f"Service: Activating tenant {tenant_id}")
        tenant = await self.directory.mark_active(tenant_id, backend_location)
        await self.invalidate_connections(tenant_id)
        return tenant

    async def suspend(self, tenant_id: str) -> TenantRecord:
        logger.info(f"Service: Suspending tenant {tenant_id}")
        tenant = await self.directory.suspend(tenant_id)
        # Also on repeated suspends, so a missed earlier invalidation is repaired
        await self.invalidate_connections(tenant_id)
        return tenant

    async def invalidate_connections(self, tenant_id: str) -> bool:
        """
        Drop cached connections for a tenant in this process and announce it to the others.

        Returns:
            True if this process held a cached connection for the tenant
        """
        evicted = False
        if self.cache is not None:
            evicted = await self.cache.invalidate(tenant_id)
        if self.broadcaster is not None:
            await self.broadcaster.publish(tenant_id)
        return evicted

    async def set_membership(
        self, tenant_id: str, principal_id: str, role: TenantRole
    ) -> PrincipalTenantMembership:
        # Memberships may only reference existing tenants
        await self.directory.lookup(tenant_id)
        return await self.membership_store.add_membership(
            PrincipalTenantMembership(principal_id=principal_id, tenant_id=tenant_id, role=role)
        )

    async def list_members(self, tenant_id: str) -> List[PrincipalTenantMembership]:
        await self.directory.lookup(tenant_id)
        return await self.membership_store.list_members(tenant_id)

    async def remove_membership(self, tenant_id: str, principal_id: str) -> bool:
        return await self.membership_store.remove_membership(principal_id, tenant_id)

    async def list_active_tenants_for_principal(self, principal_id: str) -> List[TenantSummary]:
        """Tenants the principal belongs to that are currently active. Topology is not included."""
        summaries: List[TenantSummary] = []
        for membership in await self.membership_store.get_memberships_for_principal(principal_id):
            try:
                tenant = await self.directory.lookup(membership.tenant_id)
            except TenantNotFoundError:
                logger.warning(
                    f"Service: P:{principal_id} has a membership for unknown tenant '{membership.tenant_id}'."
                )
                continue
            if tenant.is_active:
                summaries.append(
                    TenantSummary(
                        tenant_id=tenant.tenant_id,
                        display_name=tenant.display_name,
                        role=membership.role,
                    )
                )
        return summaries
