# tests/test_tenant_directory.py
import pytest
from pydantic import ValidationError

from lexgate.memberships.models import TenantRole
from lexgate.storage.sqlite_base import get_sqlite_db_connection
from lexgate.tenants.errors import (
    InvalidTenantTransitionError,
    TenantAlreadyExistsError,
    TenantNotFoundError,
)
from lexgate.tenants.models import TenantCreate, TenantStatus
from lexgate.tenants.sqlite_tenant_store import SQLiteTenantDirectory
from lexgate.utils.security import FernetEncryptor, generate_fernet_key

from conftest import ACME_BACKEND, create_active_tenant, membership


async def test_new_tenant_starts_in_provisioning(directory):
    created = await directory.create_tenant(TenantCreate(tenant_id="acme", display_name="Acme LLP"))

    assert created.status == TenantStatus.PROVISIONING
    assert created.backend_location == ""
    assert not created.is_active

    looked_up = await directory.lookup("acme")
    assert looked_up.display_name == "Acme LLP"
    assert looked_up.status == TenantStatus.PROVISIONING


async def test_duplicate_tenant_id_is_rejected(directory):
    await directory.create_tenant(TenantCreate(tenant_id="acme", display_name="Acme LLP"))

    with pytest.raises(TenantAlreadyExistsError) as exc_info:
        await directory.create_tenant(TenantCreate(tenant_id="acme", display_name="Other"))
    assert exc_info.value.status_code == 409


@pytest.mark.parametrize("bad_id", ["", "a", "Acme", "-acme", "acme_llp", "acme.com", "x" * 64])
def test_tenant_id_must_be_a_slug(bad_id):
    with pytest.raises(ValidationError):
        TenantCreate(tenant_id=bad_id, display_name="Acme LLP")


async def test_lookup_of_unknown_tenant_raises_not_found(directory):
    with pytest.raises(TenantNotFoundError) as exc_info:
        await directory.lookup("ghost")
    assert exc_info.value.status_code == 404


async def test_mark_active_records_backend_location(directory):
    await directory.create_tenant(TenantCreate(tenant_id="acme", display_name="Acme LLP"))

    active = await directory.mark_active("acme", ACME_BACKEND)

    assert active.status == TenantStatus.ACTIVE
    assert active.backend_location == ACME_BACKEND
    assert (await directory.lookup("acme")).is_active


async def test_mark_active_requires_a_location(directory):
    await directory.create_tenant(TenantCreate(tenant_id="acme", display_name="Acme LLP"))

    with pytest.raises(ValueError):
        await directory.mark_active("acme", "")
    assert (await directory.lookup("acme")).status == TenantStatus.PROVISIONING


async def test_mark_active_only_from_provisioning(directory):
    await create_active_tenant(directory, "acme")

    with pytest.raises(InvalidTenantTransitionError):
        await directory.mark_active("acme", "http://elsewhere.internal")
    assert (await directory.lookup("acme")).backend_location == ACME_BACKEND


async def test_mark_active_unknown_tenant(directory):
    with pytest.raises(TenantNotFoundError):
        await directory.mark_active("ghost", ACME_BACKEND)


async def test_suspend_is_idempotent(directory):
    await create_active_tenant(directory, "acme")

    first = await directory.suspend("acme")
    second = await directory.suspend("acme")

    assert first.status == TenantStatus.SUSPENDED
    assert second.status == TenantStatus.SUSPENDED
    assert second.updated_at == first.updated_at


async def test_suspended_tenant_cannot_be_reactivated(directory):
    await create_active_tenant(directory, "acme")
    await directory.suspend("acme")

    with pytest.raises(InvalidTenantTransitionError):
        await directory.mark_active("acme", ACME_BACKEND)


async def test_provisioning_tenant_cannot_be_suspended(directory):
    await directory.create_tenant(TenantCreate(tenant_id="acme", display_name="Acme LLP"))

    with pytest.raises(InvalidTenantTransitionError):
        await directory.suspend("acme")


async def test_list_tenants_filters_by_status(directory):
    await create_active_tenant(directory, "acme")
    await create_active_tenant(directory, "beta")
    await directory.create_tenant(TenantCreate(tenant_id="gamma", display_name="Gamma LLP"))
    await directory.suspend("beta")

    assert len(await directory.list_tenants()) == 3
    assert [t.tenant_id for t in await directory.list_tenants(status=TenantStatus.ACTIVE)] == ["acme"]
    assert [t.tenant_id for t in await directory.list_tenants(status=TenantStatus.SUSPENDED)] == ["beta"]
    assert len(await directory.list_tenants(limit=2)) == 2


async def test_backend_location_is_encrypted_at_rest_when_key_configured():
    encrypted_directory = SQLiteTenantDirectory(FernetEncryptor(generate_fernet_key()))
    await encrypted_directory.initialize()
    await create_active_tenant(encrypted_directory, "acme")

    conn = await get_sqlite_db_connection()
    stored = conn.execute(
        "SELECT backend_location FROM lexgate_tenants WHERE tenant_id = ?", ("acme",)
    ).fetchone()["backend_location"]

    assert stored != ACME_BACKEND
    assert (await encrypted_directory.lookup("acme")).backend_location == ACME_BACKEND


async def test_invalid_encryption_key_falls_back_to_plain_storage(directory):
    plain_directory = SQLiteTenantDirectory(FernetEncryptor("not-a-fernet-key"))
    await create_active_tenant(plain_directory, "acme")

    assert (await directory.lookup("acme")).backend_location == ACME_BACKEND


async def test_membership_upsert_changes_role(directory, membership_store):
    await create_active_tenant(directory, "acme")
    await membership_store.add_membership(membership("alice", "acme", TenantRole.MEMBER))
    await membership_store.add_membership(membership("alice", "acme", TenantRole.ADMIN))

    memberships = await membership_store.get_memberships_for_principal("alice")

    assert [(m.tenant_id, m.role) for m in memberships] == [("acme", TenantRole.ADMIN)]


async def test_memberships_span_tenants_and_can_be_removed(directory, membership_store):
    await create_active_tenant(directory, "acme")
    await create_active_tenant(directory, "beta")
    await membership_store.add_membership(membership("alice", "acme"))
    await membership_store.add_membership(membership("alice", "beta", TenantRole.OWNER))
    await membership_store.add_membership(membership("bob", "acme"))

    assert [m.tenant_id for m in await membership_store.get_memberships_for_principal("alice")] == ["acme", "beta"]
    assert {m.principal_id for m in await membership_store.list_members("acme")} == {"alice", "bob"}

    assert await membership_store.remove_membership("alice", "acme") is True
    assert await membership_store.remove_membership("alice", "acme") is False
    assert [m.tenant_id for m in await membership_store.get_memberships_for_principal("alice")] == ["beta"]


async def test_membership_with_unknown_role_is_ignored(directory, membership_store):
    await create_active_tenant(directory, "acme")
    conn = await get_sqlite_db_connection()
    conn.execute(
        "INSERT INTO lexgate_tenant_memberships (principal_id, tenant_id, role, added_at) VALUES (?, ?, ?, ?)",
        ("alice", "acme", "paralegal", "2024-01-01T00:00:00+00:00"),
    )
    conn.commit()

    assert await membership_store.get_memberships_for_principal("alice") == []
