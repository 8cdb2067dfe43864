"""
Template-driven tenant database provisioner.

Servers are the configured server list; a template is a SQL file under the
templates directory whose statements are applied to each new database.
PostgreSQL databases are created through the server's maintenance database;
SQLite databases are files created on first connection.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url

from shardcatalog.application.interfaces import ConnectionTarget, ResourceHandle
from shardcatalog.infrastructure.exceptions import ResourceNotFoundError
from shardcatalog.infrastructure.external.sql_transport import SqlAlchemyTransport

logger = logging.getLogger(__name__)

TEMPLATE_SEPARATOR = "GO"


def load_template(templates_dir: str | Path, template_ref: str) -> list[str]:
    """Read a template file and split it into statements"""
    path = Path(templates_dir) / f"{template_ref}.sql"
    if not path.is_file():
        raise ResourceNotFoundError("template", str(path))

    statements: list[str] = []
    current: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if line.strip().upper() == TEMPLATE_SEPARATOR:
            statements.append("\n".join(current))
            current = []
        elif not line.lstrip().startswith("--"):
            current.append(line)
    statements.append("\n".join(current))
    return [s.strip() for s in statements if s.strip()]


class TemplateDatabaseProvisioner:
    """
    IResourceProvisioner implementation creating databases with plain SQL.

    On PostgreSQL, server checks and database lookups go through the
    maintenance database and CREATE DATABASE runs outside a transaction.
    """

    def __init__(
        self,
        transport: SqlAlchemyTransport,
        servers: list[str],
        templates_dir: str | Path,
        *,
        maintenance_database: str = "postgres",
    ):
        self.transport = transport
        self.servers = list(servers)
        self.templates_dir = Path(templates_dir)
        self.maintenance_database = maintenance_database

    @property
    def file_based(self) -> bool:
        return self.transport.backend_name == "sqlite"

    def _maintenance(self, server_name: str) -> ConnectionTarget:
        return ConnectionTarget(server_name, self.maintenance_database)

    def _database_file(self, server_name: str, database_name: str) -> Path:
        url = make_url(self.transport.url_for(ConnectionTarget(server_name, database_name)))
        return Path(url.database or "")

    async def ensure_server_exists(self, server_name: str) -> ResourceHandle | None:
        if server_name not in self.servers:
            logger.warning("Server %s is not a configured tenant server", server_name)
            return None
        if self.file_based:
            return ResourceHandle(name=server_name)

        rows = await self.transport.execute(
            self._maintenance(server_name), "SELECT version() AS version"
        )
        return ResourceHandle(
            name=server_name,
            properties={"version": rows[0]["version"]} if rows else {},
        )

    async def database_exists(self, server_name: str, database_name: str) -> bool:
        if self.file_based:
            return self._database_file(server_name, database_name).is_file()

        rows = await self.transport.execute(
            self._maintenance(server_name),
            "SELECT 1 FROM pg_database WHERE datname = :name",
            {"name": database_name},
        )
        return bool(rows)

    async def get_database(self, server_name: str, database_name: str) -> ResourceHandle:
        if self.file_based:
            path = self._database_file(server_name, database_name)
            if not path.is_file():
                raise ResourceNotFoundError("database", f"{server_name}/{database_name}")
            return ResourceHandle(
                name=database_name, server_name=server_name, resource_id=str(path)
            )

        rows = await self.transport.execute(
            self._maintenance(server_name),
            "SELECT oid, datallowconn FROM pg_database WHERE datname = :name",
            {"name": database_name},
        )
        if not rows:
            raise ResourceNotFoundError("database", f"{server_name}/{database_name}")
        return ResourceHandle(
            name=database_name,
            server_name=server_name,
            resource_id=str(rows[0]["oid"]),
            ready=bool(rows[0]["datallowconn"]),
        )

    async def deploy_template(
        self, template_ref: str, parameters: Mapping[str, Any]
    ) -> ResourceHandle:
        """
        Create the database named in parameters and apply the template.

        Required parameters: server_name, database_name.
        """
        server_name = parameters["server_name"]
        database_name = parameters["database_name"]
        # Fail on a missing template before creating anything
        load_template(self.templates_dir, template_ref)

        if not self.file_based:
            maintenance = self._maintenance(server_name)
            quoted = self.transport.quote_identifier(maintenance, database_name)
            await self.transport.execute_autocommit(maintenance, f"CREATE DATABASE {quoted}")
            logger.info("Created database %s on %s", database_name, server_name)

        return await self.apply_template(template_ref, parameters)

    async def apply_template(
        self, template_ref: str, parameters: Mapping[str, Any]
    ) -> ResourceHandle:
        """
        Apply the template statements to an existing database in one transaction.

        Templates are written to be re-run, so this also completes a database
        whose earlier template application failed.
        """
        server_name = parameters["server_name"]
        database_name = parameters["database_name"]
        statements = load_template(self.templates_dir, template_ref)

        await self.transport.execute(ConnectionTarget(server_name, database_name), statements)
        logger.info(
            "Applied template %s (%d statements) to %s/%s",
            template_ref,
            len(statements),
            server_name,
            database_name,
        )
        return await self.get_database(server_name, database_name)
