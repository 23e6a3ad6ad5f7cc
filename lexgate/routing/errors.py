# lexgate/routing/errors.py
from fastapi import HTTPException, status
from typing import Optional


class RoutingError(HTTPException):
    """Base class for routing failures.

    Each subclass is a distinct outcome the API boundary maps to its own
    status code. The detail never carries backend locations or cache state.
    """

    error: str = "routing_error"

    def __init__(self, status_code: int, error_description: Optional[str] = None, **extra: str):
        self.error_description = error_description
        detail = {"error": self.error}
        if error_description:
            detail["error_description"] = error_description
        detail.update(extra)
        super().__init__(status_code=status_code, detail=detail)


class TenantNotFound(RoutingError):
    """The requested tenant does not exist in the directory."""

    error = "tenant_not_found"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(status.HTTP_404_NOT_FOUND, "Tenant not found.")


class TenantInactive(RoutingError):
    """
    The tenant exists but is not active.

    Provisioning and suspended tenants are reported identically so callers
    learn nothing about provisioning internals.
    """

    error = "tenant_inactive"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(status.HTTP_403_FORBIDDEN, "Tenant is not available.")


class AccessDenied(RoutingError):
    """The principal is not allowed to reach the tenant."""

    error = "access_denied"

    def __init__(self, tenant_id: str, reason: str):
        self.tenant_id = tenant_id
        self.reason = reason
        super().__init__(status.HTTP_403_FORBIDDEN, reason=reason)


class UpstreamTimeout(RoutingError):
    """Directory lookup or backend connection did not finish within the timeout."""

    error = "upstream_timeout"

    def __init__(self, tenant_id: str, stage: str):
        self.tenant_id = tenant_id
        self.stage = stage
        super().__init__(status.HTTP_504_GATEWAY_TIMEOUT, "Upstream did not respond in time.")


class EstablishFailed(RoutingError):
    """The tenant backend could not be connected to."""

    error = "establish_failed"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(status.HTTP_502_BAD_GATEWAY, "Could not connect to tenant backend.")
