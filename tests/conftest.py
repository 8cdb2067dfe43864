"""Shared test fixtures for pytest"""
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from shardcatalog.application.catalog import Catalog
from shardcatalog.application.interfaces import ConnectionTarget, ResourceHandle
from shardcatalog.application.services.tenant_provisioning_service import \
    TenantProvisioningService
from shardcatalog.infrastructure.config.settings import Settings
from shardcatalog.infrastructure.external.provisioning import load_template
from shardcatalog.infrastructure.external.sql_transport import SqlAlchemyTransport
from shardcatalog.main import create_app

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"


class FakeProvisioner:
    """
    In-memory IResourceProvisioner.

    Databases are SQLite files reached through the real transport; the
    template is applied to them the same way the PostgreSQL provisioner does.
    """

    def __init__(self, transport: SqlAlchemyTransport, servers: list[str]):
        self.transport = transport
        self.servers = set(servers)
        self.databases: dict[tuple[str, str], ResourceHandle] = {}
        self.deploy_count = 0
        self.apply_count = 0
        self.fail_deploy: Exception | None = None

    async def ensure_server_exists(self, server_name: str) -> ResourceHandle | None:
        return ResourceHandle(name=server_name) if server_name in self.servers else None

    async def deploy_template(
        self, template_ref: str, parameters: Mapping[str, Any]
    ) -> ResourceHandle:
        self.deploy_count += 1
        if self.fail_deploy is not None:
            raise self.fail_deploy

        key = (parameters["server_name"], parameters["database_name"])
        self.databases[key] = ResourceHandle(name=key[1], server_name=key[0])
        return await self.apply_template(template_ref, parameters)

    async def apply_template(
        self, template_ref: str, parameters: Mapping[str, Any]
    ) -> ResourceHandle:
        self.apply_count += 1
        server_name = parameters["server_name"]
        database_name = parameters["database_name"]
        await self.transport.execute(
            ConnectionTarget(server_name, database_name),
            load_template(TEMPLATES_DIR, template_ref),
        )
        return self.databases[(server_name, database_name)]

    async def database_exists(self, server_name: str, database_name: str) -> bool:
        return (server_name, database_name) in self.databases

    async def get_database(self, server_name: str, database_name: str) -> ResourceHandle:
        return self.databases[(server_name, database_name)]


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every store at SQLite files in tmp_path"""
    return Settings(
        catalog_database_url=f"sqlite+aiosqlite:///{tmp_path}/catalog.db",
        shard_url_template=f"sqlite+aiosqlite:///{tmp_path}/{{server}}_{{database}}.db",
        servers="s1,s2",
        default_server="s1",
        templates_dir=str(TEMPLATES_DIR),
        connect_timeout_seconds=5,
        query_timeout_seconds=10,
        require_encryption=False,
        telemetry_enabled=False,
    )


@pytest.fixture
async def catalog(settings):
    """Initialized, open catalog"""
    catalog = await Catalog.initialize(settings)
    yield catalog
    await catalog.close()


@pytest.fixture
async def transport(settings):
    """SQL transport for tenant shard databases"""
    transport = SqlAlchemyTransport.from_settings(settings)
    yield transport
    await transport.dispose()


@pytest.fixture
def provisioner(transport, settings):
    return FakeProvisioner(transport, settings.server_list)


@pytest.fixture
def provisioning_service(catalog, provisioner, transport, settings):
    return TenantProvisioningService(catalog, provisioner, transport, settings)


@pytest.fixture
async def client(settings, catalog, provisioning_service):
    """HTTP client for API testing"""
    app = create_app(settings)
    # ASGITransport does not run the lifespan; install what it would have opened
    app.state.catalog = catalog
    app.state.provisioning_service = provisioning_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
