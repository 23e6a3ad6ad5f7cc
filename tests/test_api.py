# tests/test_api.py
import pytest

from lexgate.settings import settings

from conftest import ACME_BACKEND, principal_headers


async def provision_acme(api_client, admin_headers, owner: str = "alice"):
    response = await api_client.post(
        "/admin/tenants/",
        json={"tenant_id": "acme", "display_name": "Acme LLP", "owner_principal_id": owner},
        headers=admin_headers,
    )
    assert response.status_code == 201
    response = await api_client.post(
        "/admin/tenants/acme/activate",
        json={"backend_location": ACME_BACKEND},
        headers=admin_headers,
    )
    assert response.status_code == 200


# --- Admin authentication ---

async def test_admin_routes_require_api_key(api_client):
    response = await api_client.get("/admin/tenants/")

    assert response.status_code == 401


async def test_admin_routes_reject_wrong_api_key(api_client):
    response = await api_client.get("/admin/tenants/", headers={"X-Admin-API-Key": "wrong"})

    assert response.status_code == 403


async def test_admin_routes_unavailable_without_server_key(api_client, admin_headers, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", None)

    response = await api_client.get("/admin/tenants/", headers=admin_headers)

    assert response.status_code == 503


# --- Tenant administration ---

async def test_create_and_get_tenant(api_client, admin_headers):
    response = await api_client.post(
        "/admin/tenants/", json={"tenant_id": "acme", "display_name": "Acme LLP"}, headers=admin_headers
    )

    assert response.status_code == 201
    assert response.json()["status"] == "provisioning"

    response = await api_client.get("/admin/tenants/acme", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["display_name"] == "Acme LLP"


async def test_duplicate_and_invalid_tenants_are_rejected(api_client, admin_headers):
    payload = {"tenant_id": "acme", "display_name": "Acme LLP"}
    await api_client.post("/admin/tenants/", json=payload, headers=admin_headers)

    duplicate = await api_client.post("/admin/tenants/", json=payload, headers=admin_headers)
    invalid = await api_client.post(
        "/admin/tenants/", json={"tenant_id": "Not A Slug", "display_name": "x"}, headers=admin_headers
    )

    assert duplicate.status_code == 409
    assert invalid.status_code == 422


async def test_unknown_tenant_is_404(api_client, admin_headers):
    response = await api_client.get("/admin/tenants/ghost", headers=admin_headers)

    assert response.status_code == 404


async def test_activation_is_only_valid_from_provisioning(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)

    response = await api_client.post(
        "/admin/tenants/acme/activate", json={"backend_location": ACME_BACKEND}, headers=admin_headers
    )

    assert response.status_code == 409


async def test_activation_requires_location(api_client, admin_headers):
    await api_client.post(
        "/admin/tenants/", json={"tenant_id": "acme", "display_name": "Acme LLP"}, headers=admin_headers
    )

    response = await api_client.post(
        "/admin/tenants/acme/activate", json={"backend_location": ""}, headers=admin_headers
    )

    assert response.status_code == 422


async def test_list_tenants_by_status(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)
    await api_client.post(
        "/admin/tenants/", json={"tenant_id": "beta", "display_name": "Beta LLP"}, headers=admin_headers
    )

    everything = await api_client.get("/admin/tenants", headers=admin_headers)
    active = await api_client.get("/admin/tenants/", params={"status": "active"}, headers=admin_headers)

    assert everything.status_code == 200
    assert {t["tenant_id"] for t in everything.json()} == {"acme", "beta"}
    assert [t["tenant_id"] for t in active.json()] == ["acme"]


async def test_membership_management(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)

    response = await api_client.put(
        "/admin/tenants/acme/members/bob", json={"role": "admin"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "admin"

    members = await api_client.get("/admin/tenants/acme/members", headers=admin_headers)
    assert {(m["principal_id"], m["role"]) for m in members.json()} == {("alice", "owner"), ("bob", "admin")}

    removed = await api_client.delete("/admin/tenants/acme/members/bob", headers=admin_headers)
    missing = await api_client.delete("/admin/tenants/acme/members/bob", headers=admin_headers)
    assert removed.status_code == 204
    assert missing.status_code == 404


async def test_membership_for_unknown_tenant_is_404(api_client, admin_headers):
    response = await api_client.put(
        "/admin/tenants/ghost/members/bob", json={"role": "member"}, headers=admin_headers
    )

    assert response.status_code == 404


async def test_membership_rejects_unknown_role(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)

    response = await api_client.put(
        "/admin/tenants/acme/members/bob", json={"role": "paralegal"}, headers=admin_headers
    )

    assert response.status_code == 422


# --- Gateway ---

async def test_gateway_forwards_to_the_tenant_backend(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)

    response = await api_client.post(
        "/api/acme/matters/42/notes",
        params={"draft": "1"},
        content=b'{"text": "privileged"}',
        headers={**principal_headers("alice"), "Content-Type": "application/json"},
    )

    assert response.status_code == 200
    echoed = response.json()
    assert echoed["host"] == "acme-backend.internal"
    assert echoed["method"] == "POST"
    assert echoed["path"] == "/matters/42/notes"
    assert echoed["query"] == {"draft": "1"}
    assert echoed["principal"] == "alice"
    assert echoed["gateway_secret"] is None
    assert echoed["body"] == '{"text": "privileged"}'


async def test_gateway_reuses_the_cached_connection(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)

    for _ in range(3):
        response = await api_client.get("/api/acme/matters", headers=principal_headers("alice"))
        assert response.status_code == 200

    events = await api_client.get("/admin/routing/events", params={"tenant_id": "acme"}, headers=admin_headers)
    assert [e["outcome"] for e in events.json()] == ["established", "cache_hit", "cache_hit"]

    cache = await api_client.get("/admin/routing/cache", headers=admin_headers)
    assert cache.json()["size"] == 1
    assert cache.json()["entries"][0]["tenant_id"] == "acme"


async def test_gateway_unknown_tenant(api_client):
    response = await api_client.get("/api/ghost/matters", headers=principal_headers("alice"))

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "tenant_not_found"


async def test_gateway_inactive_tenant(api_client, admin_headers):
    await api_client.post(
        "/admin/tenants/",
        json={"tenant_id": "acme", "display_name": "Acme LLP", "owner_principal_id": "alice"},
        headers=admin_headers,
    )

    response = await api_client.get("/api/acme/matters", headers=principal_headers("alice"))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "tenant_inactive"


async def test_gateway_denies_non_members_without_leaking_topology(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)

    response = await api_client.get("/api/acme/matters", headers=principal_headers("mallory"))

    assert response.status_code == 403
    assert response.json()["detail"] == {"error": "access_denied", "reason": "not_a_member"}
    assert "acme-backend" not in response.text


async def test_suspension_cuts_off_access_immediately(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)
    assert (await api_client.get("/api/acme/matters", headers=principal_headers("alice"))).status_code == 200

    response = await api_client.post("/admin/tenants/acme/suspend", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "suspended"

    cache = await api_client.get("/admin/routing/cache", headers=admin_headers)
    assert cache.json()["size"] == 0
    response = await api_client.get("/api/acme/matters", headers=principal_headers("alice"))
    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "tenant_inactive"

    # Suspending again is accepted
    assert (await api_client.post("/admin/tenants/acme/suspend", headers=admin_headers)).status_code == 200


async def test_invalidate_endpoint_flushes_connection(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)
    await api_client.get("/api/acme/matters", headers=principal_headers("alice"))

    first = await api_client.post("/admin/tenants/acme/invalidate", headers=admin_headers)
    second = await api_client.post("/admin/tenants/acme/invalidate", headers=admin_headers)

    assert first.json() == {"tenant_id": "acme", "evicted": True}
    assert second.json() == {"tenant_id": "acme", "evicted": False}


async def test_gateway_backend_transport_failure_is_502(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)

    response = await api_client.get("/api/acme/unreachable", headers=principal_headers("alice"))

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "backend_request_failed"


async def test_connection_evicted_mid_request_is_502_and_next_request_reconnects(
    api_client, api_runtime, admin_headers, monkeypatch
):
    await provision_acme(api_client, admin_headers)
    route = api_runtime.router.route

    async def route_then_evict(*args, **kwargs):
        connection = await route(*args, **kwargs)
        # A concurrent invalidation releases the handle before the request is forwarded
        await api_runtime.cache.invalidate("acme")
        return connection

    monkeypatch.setattr(api_runtime.router, "route", route_then_evict)
    response = await api_client.get("/api/acme/cases", headers=principal_headers("alice"))

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "backend_request_failed"

    monkeypatch.setattr(api_runtime.router, "route", route)
    response = await api_client.get("/api/acme/cases", headers=principal_headers("alice"))
    assert response.status_code == 200


@pytest.mark.parametrize(
    "headers, expected_status",
    [
        ({}, 401),
        ({"X-Gateway-Secret": "wrong", "X-Principal-Id": "alice"}, 403),
        ({"X-Gateway-Secret": "test-gateway-secret"}, 401),
    ],
)
async def test_gateway_requires_trusted_principal(api_client, admin_headers, headers, expected_status):
    await provision_acme(api_client, admin_headers)

    response = await api_client.get("/api/acme/matters", headers=headers)

    assert response.status_code == expected_status


async def test_my_tenants_lists_active_memberships_only(api_client, admin_headers):
    await provision_acme(api_client, admin_headers)
    await api_client.post(
        "/admin/tenants/",
        json={"tenant_id": "beta", "display_name": "Beta LLP", "owner_principal_id": "alice"},
        headers=admin_headers,
    )

    response = await api_client.get("/me/tenants", headers=principal_headers("alice"))

    assert response.status_code == 200
    assert response.json() == [{"tenant_id": "acme", "display_name": "Acme LLP", "role": "owner"}]


async def test_health(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
