# lexgate/tenants/errors.py
from fastapi import HTTPException, status


class TenantDirectoryError(HTTPException):
    """Base exception for tenant directory failures.

    Inherits from FastAPI's HTTPException so admin endpoints can let
    directory errors propagate without translating them.
    """

    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class TenantNotFoundError(TenantDirectoryError):
    """Raised when no directory record exists for a tenant id."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")


class TenantAlreadyExistsError(TenantDirectoryError):
    """Raised when creating a tenant whose id is already taken."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Tenant with tenant_id '{tenant_id}' already exists."
        )


class InvalidTenantTransitionError(TenantDirectoryError):
    """Raised when a status change is not allowed from the tenant's current status."""

    def __init__(self, tenant_id: str, current_status: str, requested_status: str):
        self.tenant_id = tenant_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot move tenant '{tenant_id}' from '{current_status}' to '{requested_status}'."
        )
