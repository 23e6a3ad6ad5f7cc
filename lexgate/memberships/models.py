# lexgate/memberships/models.py
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime, timezone


class TenantRole(str, Enum):
    """Closed set of coarse roles a principal can hold inside a tenant."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class PrincipalTenantMembership(BaseModel):
    """A principal's membership in one tenant. (principal_id, tenant_id) is unique."""
    model_config = ConfigDict(from_attributes=True, frozen=True, extra="forbid")

    principal_id: str = Field(min_length=1)
    tenant_id: str = Field(min_length=1)
    role: TenantRole
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MembershipUpsert(BaseModel):
    """Admin payload for granting or changing a principal's role in a tenant."""
    model_config = ConfigDict(extra="forbid")

    role: TenantRole


class TenantSummary(BaseModel):
    """What a principal may see about a tenant they belong to. Never carries topology."""
    tenant_id: str
    display_name: str
    role: TenantRole
