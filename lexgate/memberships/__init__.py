# lexgate/memberships/__init__.py
"""
Principal to tenant memberships.

The identity provider authenticates principals; this package records which
tenants each principal belongs to and with which role.
"""

from .models import PrincipalTenantMembership, TenantRole, MembershipUpsert, TenantSummary
from .storage_interfaces import AbstractMembershipStore
from .sqlite_membership_store import SQLiteMembershipStore

__all__ = [
    "PrincipalTenantMembership",
    "TenantRole",
    "MembershipUpsert",
    "TenantSummary",
    "AbstractMembershipStore",
    "SQLiteMembershipStore",
]
