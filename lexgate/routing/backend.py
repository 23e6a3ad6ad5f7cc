# lexgate/routing/backend.py
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import uuid4

import httpx

from ..tenants.models import TenantRecord

logger = logging.getLogger(__name__)


class BackendConnectionError(Exception):
    """Raised by a connector when a tenant backend cannot be reached."""

    def __init__(self, tenant_id: str, message: str):
        self.tenant_id = tenant_id
        super().__init__(message)


class TenantConnection:
    """
    A live link to one tenant backend.

    Wraps an httpx.AsyncClient whose base_url is the tenant's backend
    location. The location itself is kept private to this object.
    """

    def __init__(self, tenant_id: str, client: httpx.AsyncClient):
        self.tenant_id = tenant_id
        self.connection_id = uuid4().hex
        self.client = client
        self.released = False

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request to the tenant backend. Paths are relative to the backend location."""
        if self.released:
            raise BackendConnectionError(self.tenant_id, f"Connection {self.connection_id} was released.")
        try:
            return await self.client.request(method, path, **kwargs)
        except RuntimeError as e:
            # httpx refuses to send on a client closed while this request was starting
            if self.released:
                raise BackendConnectionError(self.tenant_id, f"Connection {self.connection_id} was released.") from e
            raise

    async def aclose(self) -> None:
        if self.released:
            logger.warning(
                f"Backend: Connection {self.connection_id} for T:{self.tenant_id} already released; ignoring."
            )
            return
        self.released = True
        await self.client.aclose()

    def __repr__(self) -> str:
        return f"TenantConnection(tenant_id={self.tenant_id!r}, connection_id={self.connection_id!r})"


class AbstractBackendConnector(ABC):
    """Contract with tenant backends: establish a handle from a location, and release it."""

    @abstractmethod
    async def establish(self, tenant: TenantRecord) -> Any:
        """
        Open a connection handle to tenant.backend_location.

        Raises:
            BackendConnectionError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def release(self, handle: Any) -> None:
        """Release a handle previously returned by establish."""
        pass


class HttpxBackendConnector(AbstractBackendConnector):
    """Connects to tenant backends over HTTP with one AsyncClient per connection."""

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        health_path: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.health_path = health_path
        # Injectable transport for tests (httpx.MockTransport)
        self._transport = transport

    async def establish(self, tenant: TenantRecord) -> TenantConnection:
        if not tenant.backend_location:
            raise BackendConnectionError(tenant.tenant_id, "Tenant has no backend location.")

        client = httpx.AsyncClient(
            base_url=tenant.backend_location,
            timeout=self.timeout_seconds,
            transport=self._transport,
        )
        connection = TenantConnection(tenant.tenant_id, client)

        if self.health_path:
            try:
                response = await client.get(self.health_path)
                response.raise_for_status()
            except httpx.HTTPError as e:
                await connection.aclose()
                logger.warning(f"Backend: Health probe failed for T:{tenant.tenant_id}: {type(e).__name__}")
                raise BackendConnectionError(tenant.tenant_id, "Backend health probe failed.") from e
            except BaseException:
                # Cancellation (e.g. a routing timeout) must not leak the client
                await connection.aclose()
                raise

        logger.info(f"Backend: Established connection {connection.connection_id} for T:{tenant.tenant_id}.")
        return connection

    async def release(self, handle: TenantConnection) -> None:
        await handle.aclose()
        logger.info(f"Backend: Released connection {handle.connection_id} for T:{handle.tenant_id}.")
