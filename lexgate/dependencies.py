# lexgate/dependencies.py
import logging
import secrets
from fastapi import HTTPException, Request, status, Header, Depends
from typing import Optional, Annotated

from .settings import settings
from .core.runtime import RoutingRuntime
from .tenants.service import TenantService

logger = logging.getLogger(__name__)


async def get_admin_api_key(
    x_admin_api_key: Annotated[
        Optional[str],
        Header(description="The API Key for accessing admin routes.")
    ] = None
) -> str:
    """
    Validates admin API key authentication for protected admin endpoints.

    Returns the validated API key if authentication succeeds.
    Raises HTTPException with appropriate status codes for various failure scenarios.
    """
    # Ensure server has admin API key configured before processing requests
    if not settings.admin_api_key:
        logger.critical("ADMIN_API_KEY is not configured on the server. Admin endpoints are effectively disabled.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API service is not configured properly (API Key missing on server).",
        )

    if not x_admin_api_key:
        logger.warning("Admin API: Missing X-Admin-API-Key header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated: X-Admin-API-Key header missing.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    if not secrets.compare_digest(x_admin_api_key, settings.admin_api_key):
        logger.warning("Admin API: Invalid X-Admin-API-Key provided.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid API Key.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    return x_admin_api_key


async def get_principal_id(
    x_gateway_secret: Annotated[Optional[str], Header(alias="X-Gateway-Secret")] = None,
    x_principal_id: Annotated[Optional[str], Header(alias="X-Principal-Id")] = None,
) -> str:
    """
    Resolve the already-authenticated principal forwarded by the auth gateway.

    Authentication happens upstream; the gateway proves itself with the shared
    secret and names the principal in X-Principal-Id.
    """
    if not settings.gateway_shared_secret:
        logger.error("CRITICAL: GATEWAY_SHARED_SECRET is not configured on the server. Cannot trust principals.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tenant routing is not configured correctly (server-side)."
        )

    if not x_gateway_secret:
        logger.warning("Gateway Auth: X-Gateway-Secret header missing.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized: X-Gateway-Secret header missing.",
        )

    if not secrets.compare_digest(x_gateway_secret, settings.gateway_shared_secret):
        logger.warning("Gateway Auth: Invalid X-Gateway-Secret provided.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid X-Gateway-Secret.",
        )

    if not x_principal_id:
        logger.warning("Gateway Auth: X-Principal-Id header missing.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated: X-Principal-Id header missing.",
        )

    return x_principal_id


def get_runtime(request: Request) -> RoutingRuntime:
    """The routing runtime built by the application lifespan."""
    runtime: Optional[RoutingRuntime] = getattr(request.app.state, "runtime", None)
    if runtime is None:
        logger.error("Routing runtime requested before application startup completed.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up."
        )
    return runtime


def get_tenant_service(
    runtime: Annotated[RoutingRuntime, Depends(get_runtime)]
) -> TenantService:
    return runtime.tenant_service
