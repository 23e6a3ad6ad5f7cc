# lexgate/tenants/storage_interfaces.py
from abc import ABC, abstractmethod
from typing import Optional, List
from .models import TenantRecord, TenantCreate, TenantStatus


class AbstractTenantDirectory(ABC):
    """
    Source of truth for tenant existence, backend location and activation state.

    Implementations perform no caching: the directory is a low-volume,
    consistent store and every read reflects the latest committed status.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend and prepare it for operations."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up resources and properly close the storage backend."""
        pass

    @abstractmethod
    async def create_tenant(self, tenant_create: TenantCreate) -> TenantRecord:
        """
        Register a new tenant in the provisioning state with no backend location.

        Raises:
            TenantAlreadyExistsError: If the tenant id is already taken
        """
        pass

    @abstractmethod
    async def lookup(self, tenant_id: str) -> TenantRecord:
        """
        Read a tenant record. Never mutates.

        Raises:
            TenantNotFoundError: If no record exists for tenant_id
        """
        pass

    @abstractmethod
    async def list_tenants(
        self, skip: int = 0, limit: int = 100, status: Optional[TenantStatus] = None
    ) -> List[TenantRecord]:
        """Return tenants newest first, optionally filtered by status."""
        pass

    @abstractmethod
    async def mark_active(self, tenant_id: str, backend_location: str) -> TenantRecord:
        """
        Transition provisioning -> active and record the backend location.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            InvalidTenantTransitionError: If the tenant is not provisioning
        """
        pass

    @abstractmethod
    async def suspend(self, tenant_id: str) -> TenantRecord:
        """
        Transition active -> suspended. Suspending a suspended tenant is a no-op.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            InvalidTenantTransitionError: If the tenant is still provisioning
        """
        pass
