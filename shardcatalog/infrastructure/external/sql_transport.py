"""
SQL execution transport for tenant shard databases.

One async engine per (server, database) target, built from a URL template.
Every call is bounded by the connect timeout (driver level) and the query
timeout (around the whole call), and runs only parameterized statements.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine

from shardcatalog.application.interfaces import ConnectionTarget
from shardcatalog.infrastructure.config.settings import Settings
from shardcatalog.infrastructure.persistence.database import create_store_engine, run_remote

logger = logging.getLogger(__name__)


class SqlAlchemyTransport:
    """ISqlTransport implementation over SQLAlchemy asyncio engines"""

    def __init__(
        self,
        url_template: str,
        *,
        connect_timeout: float,
        query_timeout: float,
        require_encryption: bool = True,
    ):
        self.url_template = url_template
        self.connect_timeout = connect_timeout
        self.query_timeout = query_timeout
        self.require_encryption = require_encryption
        self._engines: dict[ConnectionTarget, AsyncEngine] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlAlchemyTransport":
        return cls(
            settings.shard_url_template,
            connect_timeout=settings.connect_timeout_seconds,
            query_timeout=settings.query_timeout_seconds,
            require_encryption=settings.require_encryption,
        )

    def url_for(self, target: ConnectionTarget) -> str:
        return self.url_template.format(server=target.server_name, database=target.database_name)

    @property
    def backend_name(self) -> str:
        return make_url(self.url_for(ConnectionTarget("server", "database"))).get_backend_name()

    def engine_for(self, target: ConnectionTarget) -> AsyncEngine:
        engine = self._engines.get(target)
        if engine is None:
            engine = create_store_engine(
                self.url_for(target),
                connect_timeout=self.connect_timeout,
                query_timeout=self.query_timeout,
                require_encryption=self.require_encryption,
            )
            self._engines[target] = engine
        return engine

    async def execute(
        self,
        target: ConnectionTarget,
        statements: str | Sequence[str],
        params: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute statements in one transaction and return the last statement's rows.

        params is either one mapping shared by every statement or one mapping
        per statement.
        """
        batch = [statements] if isinstance(statements, str) else list(statements)
        bound = _align_params(batch, params)
        engine = self.engine_for(target)

        async def operation() -> list[dict[str, Any]]:
            rows: list[dict[str, Any]] = []
            async with engine.begin() as conn:
                for statement, statement_params in zip(batch, bound):
                    result = await conn.execute(text(statement), statement_params)
                    rows = [dict(row._mapping) for row in result] if result.returns_rows else []
            return rows

        return await run_remote(
            operation,
            target=str(target),
            name="execute",
            timeout=timeout or self.query_timeout,
        )

    async def execute_autocommit(
        self, target: ConnectionTarget, statement: str, timeout: float | None = None
    ) -> None:
        """Execute a statement outside a transaction (e.g. CREATE DATABASE)"""
        engine = self.engine_for(target).execution_options(isolation_level="AUTOCOMMIT")

        async def operation() -> None:
            async with engine.connect() as conn:
                await conn.execute(text(statement))

        await run_remote(
            operation,
            target=str(target),
            name="execute_autocommit",
            timeout=timeout or self.query_timeout,
        )

    def quote_identifier(self, target: ConnectionTarget, name: str) -> str:
        return self.engine_for(target).dialect.identifier_preparer.quote(name)

    async def dispose(self) -> None:
        for engine in self._engines.values():
            await engine.dispose()
        self._engines.clear()


def _align_params(
    batch: list[str],
    params: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    if params is None:
        return [{} for _ in batch]
    if isinstance(params, Mapping):
        return [dict(params) for _ in batch]
    aligned = [dict(p) for p in params]
    if len(aligned) != len(batch):
        raise ValueError(f"Got {len(aligned)} parameter sets for {len(batch)} statements")
    return aligned
