"""Test tenant and shard endpoints"""

import pytest

from shardcatalog.infrastructure.exceptions import OperationTimeoutError


async def register(client, name="Acme", key=5000, **extra):
    return await client.post("/api/v1/tenants/", json={"name": name, "key": key, **extra})


@pytest.mark.asyncio
async def test_register_tenant(client):
    """Test registering a tenant provisions and maps it"""
    response = await register(client, server="s1")

    assert response.status_code == 201
    data = response.json()
    assert data["key"] == 5000
    assert data["raw_key"] == "0x80001388"
    assert data["shard"] == {"server_name": "s1", "database_name": "acme"}
    assert data["status"] == "online"
    assert data["state"] == "done"
    assert data["reused_database"] is False
    assert data["metadata"]["tenant_name"] == "Acme"


@pytest.mark.asyncio
async def test_get_tenant(client):
    await register(client)

    response = await client.get("/api/v1/tenants/5000")

    assert response.status_code == 200
    data = response.json()
    assert data["raw_key"] == "0x80001388"
    assert data["metadata"]["country_code"] == "USA"


@pytest.mark.asyncio
async def test_get_unknown_tenant(client):
    response = await client.get("/api/v1/tenants/5000")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_tenant_exists(client):
    await register(client)

    assert (await client.get("/api/v1/tenants/5000/exists")).json()["exists"] is True
    assert (await client.get("/api/v1/tenants/6000/exists")).json()["exists"] is False


@pytest.mark.asyncio
async def test_find_tenants_by_name(client):
    await register(client)
    await register(client, name="Globex", key=6000)

    response = await client.get("/api/v1/tenants/", params={"name": "Globex"})

    assert response.status_code == 200
    assert [t["tenant_id"] for t in response.json()] == ["0x80001770"]


@pytest.mark.asyncio
async def test_take_tenant_offline(client):
    await register(client)

    response = await client.patch("/api/v1/tenants/5000/status", json={"status": "offline"})

    assert response.status_code == 200
    assert response.json()["status"] == "offline"
    assert response.json()["version"] == 2
    assert (await client.get("/api/v1/tenants/5000/exists")).json()["exists"] is False


@pytest.mark.asyncio
async def test_status_of_unmapped_key(client):
    response = await client.patch("/api/v1/tenants/5000/status", json={"status": "offline"})

    assert response.status_code == 404
    assert response.json()["error"] == "MAPPING_NOT_FOUND"


@pytest.mark.asyncio
async def test_name_collision_conflict(client):
    await register(client)

    response = await register(client, name="ACME", key=6000)

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "TENANT_ALREADY_EXISTS"
    assert data["retryable"] is False


@pytest.mark.asyncio
async def test_unknown_server(client):
    response = await register(client, server="s9")

    assert response.status_code == 404
    assert response.json()["error"] == "SERVER_NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.parametrize("key", [-1, 2**31, True])
async def test_invalid_key(client, key):
    response = await register(client, key=key)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_timeout_is_retryable(client, provisioning_service, monkeypatch):
    async def slow_register(*args, **kwargs):
        raise OperationTimeoutError("s1/acme", "execute", 30)

    monkeypatch.setattr(provisioning_service, "register_tenant", slow_register)

    response = await register(client)

    assert response.status_code == 504
    assert response.json()["retryable"] is True
    assert response.headers["retry-after"] == "1"


@pytest.mark.asyncio
async def test_list_shards(client):
    await register(client)
    await register(client, name="Globex", key=6000, server="s2")

    response = await client.get("/api/v1/shards/")

    assert response.status_code == 200
    locations = sorted(s["location"] for s in response.json())
    assert locations == ["s1/acme", "s2/globex"]
