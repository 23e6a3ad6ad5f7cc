# lexgate/memberships/storage_interfaces.py
from abc import ABC, abstractmethod
from typing import List
from .models import PrincipalTenantMembership


class AbstractMembershipStore(ABC):
    """Persistence contract for principal -> tenant memberships."""

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def teardown(self) -> None:
        pass

    @abstractmethod
    async def add_membership(self, membership: PrincipalTenantMembership) -> PrincipalTenantMembership:
        """Insert a membership, or replace the role of an existing (principal, tenant) pair."""
        pass

    @abstractmethod
    async def get_memberships_for_principal(self, principal_id: str) -> List[PrincipalTenantMembership]:
        """Every membership the principal holds, across all tenants."""
        pass

    @abstractmethod
    async def list_members(self, tenant_id: str) -> List[PrincipalTenantMembership]:
        """Every membership row for one tenant."""
        pass

    @abstractmethod
    async def remove_membership(self, principal_id: str, tenant_id: str) -> bool:
        """
        Returns:
            True if a membership was removed, False if none existed
        """
        pass
