# lexgate/tenants/models.py
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

TENANT_ID_PATTERN = r"^[a-z0-9][a-z0-9-]{1,62}$"


class TenantStatus(str, Enum):
    """Deployment state of a tenant backend. Only ACTIVE tenants are routable."""
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class TenantCreate(BaseModel):
    """Model for tenant creation requests. New tenants always start in provisioning."""
    tenant_id: str = Field(
        pattern=TENANT_ID_PATTERN,
        description="Unique, immutable identifier for the tenant (firm domain slug)."
    )
    display_name: str = Field(min_length=1, description="Human readable firm name.")
    owner_principal_id: Optional[str] = Field(
        default=None,
        description="If given, this principal is registered as the tenant owner."
    )


class TenantActivate(BaseModel):
    """Payload for the provisioning -> active transition."""
    backend_location: str = Field(
        min_length=1,
        description="Base URL of the tenant's isolated backend."
    )


class TenantRecord(BaseModel):
    """Tenant directory entry as stored by the control plane."""
    model_config = ConfigDict(from_attributes=True)

    tenant_id: str
    display_name: str
    backend_location: str = ""
    status: TenantStatus
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE
