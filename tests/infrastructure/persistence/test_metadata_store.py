"""Tests for tenant metadata storage"""

import asyncio

import pytest

HEX = "0x80001388"


@pytest.fixture
def metadata(catalog):
    return catalog.metadata


async def test_upsert_and_get(metadata):
    await metadata.upsert(
        HEX,
        {"tenant_name": "Acme", "tenant_type": "multipurpose", "postal_code": "98052",
         "country_code": "USA"},
    )

    stored = await metadata.get(HEX)

    assert stored.tenant_id == HEX
    assert stored.tenant_name == "Acme"
    assert stored.attributes()["country_code"] == "USA"


async def test_merge_converges(metadata):
    """
    GIVEN metadata written for a key
    WHEN the same key is written again with new attribute values
    THEN one row remains holding the latest values
    """
    await metadata.upsert(HEX, {"tenant_name": "Acme", "tenant_type": "basic"})
    await metadata.upsert(HEX, {"tenant_name": "Acme", "tenant_type": "premium"})

    assert await metadata.count(HEX) == 1
    assert (await metadata.get(HEX)).tenant_type == "premium"


async def test_concurrent_merges_leave_one_row(metadata):
    await asyncio.gather(
        *(metadata.upsert(HEX, {"tenant_name": "Acme"}) for _ in range(5))
    )

    assert await metadata.count() == 1


async def test_get_by_name(metadata):
    await metadata.upsert(HEX, {"tenant_name": "Acme"})
    await metadata.upsert("0x80001770", {"tenant_name": "Globex"})

    found = await metadata.get_by_name("Globex")

    assert [m.tenant_id for m in found] == ["0x80001770"]


async def test_missing_key_returns_none(metadata):
    assert await metadata.get(HEX) is None


@pytest.mark.parametrize(
    "attributes",
    [{"tenant_type": "basic"}, {"tenant_name": "Acme", "admin_password": "x"}],
)
async def test_invalid_attributes_rejected(metadata, attributes):
    with pytest.raises(ValueError):
        await metadata.upsert(HEX, attributes)

    assert await metadata.count() == 0
