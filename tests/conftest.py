# tests/conftest.py
import asyncio
from typing import List, Optional

import httpx
import pytest

from lexgate.settings import settings
from lexgate.storage import sqlite_base
from lexgate.core.runtime import build_runtime
from lexgate.memberships.models import PrincipalTenantMembership, TenantRole
from lexgate.memberships.sqlite_membership_store import SQLiteMembershipStore
from lexgate.routing.backend import AbstractBackendConnector, HttpxBackendConnector
from lexgate.tenants.models import TenantCreate, TenantRecord
from lexgate.tenants.sqlite_tenant_store import SQLiteTenantDirectory

ADMIN_API_KEY = "test-admin-key"
GATEWAY_SECRET = "test-gateway-secret"
ACME_BACKEND = "http://acme-backend.internal"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    def __init__(self, tenant_id: str, serial: int):
        self.tenant_id = tenant_id
        self.serial = serial
        self.release_count = 0

    def __repr__(self) -> str:
        return f"FakeHandle({self.tenant_id!r}, #{self.serial})"


class FakeConnector(AbstractBackendConnector):
    """Counts establishments and releases; can be slowed down or made to fail."""

    def __init__(self, delay: float = 0.0, fail_with: Optional[BaseException] = None):
        self.delay = delay
        self.fail_with = fail_with
        self.established: List[FakeHandle] = []
        self.released: List[FakeHandle] = []

    async def establish(self, tenant: TenantRecord) -> FakeHandle:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        handle = FakeHandle(tenant.tenant_id, len(self.established) + 1)
        self.established.append(handle)
        return handle

    async def release(self, handle: FakeHandle) -> None:
        handle.release_count += 1
        self.released.append(handle)


def tenant_backend_handler(request: httpx.Request) -> httpx.Response:
    """Stands in for every tenant backend: echoes what it received."""
    if request.url.path == "/unreachable":
        raise httpx.ConnectError("backend down", request=request)
    return httpx.Response(
        200,
        json={
            "host": request.url.host,
            "method": request.method,
            "path": request.url.path,
            "query": dict(request.url.params),
            "principal": request.headers.get("x-principal-id"),
            "gateway_secret": request.headers.get("x-gateway-secret"),
            "body": request.content.decode("utf-8"),
        },
    )


@pytest.fixture(autouse=True)
def isolated_control_plane(monkeypatch):
    """Fresh in-memory control-plane database and known secrets for every test."""
    monkeypatch.setattr(settings, "sqlite_db_path", ":memory:")
    monkeypatch.setattr(settings, "admin_api_key", ADMIN_API_KEY)
    monkeypatch.setattr(settings, "gateway_shared_secret", GATEWAY_SECRET)
    monkeypatch.setattr(settings, "lexgate_encryption_key", None)
    monkeypatch.setattr(settings, "redis_invalidation_enabled", False)
    monkeypatch.setattr(sqlite_base, "_db_connection", None)
    yield
    if sqlite_base._db_connection is not None:
        sqlite_base._db_connection.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
async def directory() -> SQLiteTenantDirectory:
    tenant_directory = SQLiteTenantDirectory()
    await tenant_directory.initialize()
    return tenant_directory


@pytest.fixture
async def membership_store() -> SQLiteMembershipStore:
    store = SQLiteMembershipStore()
    await store.initialize()
    return store


async def create_active_tenant(
    directory: SQLiteTenantDirectory,
    tenant_id: str,
    backend_location: str = ACME_BACKEND,
) -> TenantRecord:
    await directory.create_tenant(TenantCreate(tenant_id=tenant_id, display_name=f"{tenant_id.title()} LLP"))
    return await directory.mark_active(tenant_id, backend_location)


def membership(principal_id: str, tenant_id: str, role: TenantRole = TenantRole.MEMBER) -> PrincipalTenantMembership:
    return PrincipalTenantMembership(principal_id=principal_id, tenant_id=tenant_id, role=role)


@pytest.fixture
async def api_runtime(clock):
    runtime = await build_runtime(
        settings,
        connector=HttpxBackendConnector(transport=httpx.MockTransport(tenant_backend_handler)),
        clock=clock,
        start_background_tasks=False,
    )
    yield runtime
    await runtime.shutdown()


@pytest.fixture
async def api_client(api_runtime):
    from lexgate.main import app

    app.state.runtime = api_runtime
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://lexgate.test") as client:
        yield client
    app.state.runtime = None


@pytest.fixture
def admin_headers():
    return {"X-Admin-API-Key": ADMIN_API_KEY}


def principal_headers(principal_id: str):
    return {"X-Gateway-Secret": GATEWAY_SECRET, "X-Principal-Id": principal_id}
