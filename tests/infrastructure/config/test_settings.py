"""Tests for catalog settings validation"""

import pytest
from pydantic import ValidationError

from shardcatalog.domain.enums import KeyType
from shardcatalog.infrastructure.config.settings import Settings

BASE = {
    "catalog_database_url": "postgresql+asyncpg://u:p@catalog/tenantcatalog",
    "shard_url_template": "postgresql+asyncpg://u:p@{server}/{database}",
    "servers": "s1, s2",
    "default_server": "s1",
}


def test_valid_settings():
    settings = Settings(**BASE)

    assert settings.server_list == ["s1", "s2"]
    assert settings.key_type == KeyType.INT32
    assert settings.require_encryption is True


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("SHARDCATALOG_CATALOG_DATABASE_URL", BASE["catalog_database_url"])
    monkeypatch.setenv("SHARDCATALOG_SHARD_URL_TEMPLATE", BASE["shard_url_template"])
    monkeypatch.setenv("SHARDCATALOG_KEY_TYPE", "int64")

    settings = Settings()

    assert settings.key_type == KeyType.INT64


@pytest.mark.parametrize(
    "overrides",
    [
        {"catalog_database_url": ""},
        {"shard_url_template": ""},
        {"shard_url_template": "postgresql+asyncpg://u:p@{server}/tenants"},
        {"query_timeout_seconds": 0},
        {"connect_timeout_seconds": -1},
        {"default_server": "s9"},
        {"telemetry_exporter": "jaeger"},
        {"key_type": "int16"},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**{**BASE, **overrides})
