import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shardcatalog.domain.entities.shard_map import TenantMetadata
from shardcatalog.infrastructure.persistence.database import run_in_transaction
from shardcatalog.infrastructure.persistence.repositories.tenant_metadata_repo import \
    TenantMetadataRepository

logger = logging.getLogger(__name__)


class MetadataStore:
    """Tenant attributes stored beside the shard map, keyed by raw key hex"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        store: str,
        query_timeout: float,
    ):
        self.store = store
        self.query_timeout = query_timeout
        self._sessions = session_factory

    async def upsert(self, raw_key_hex: str, attributes: dict[str, Any]) -> TenantMetadata:
        metadata = await run_in_transaction(
            self._sessions,
            lambda s: TenantMetadataRepository(s).upsert(raw_key_hex, attributes),
            target=self.store,
            name="tenants.upsert",
            timeout=self.query_timeout,
        )
        logger.debug("Upserted metadata for tenant %s", raw_key_hex)
        return metadata

    async def get(self, raw_key_hex: str) -> TenantMetadata | None:
        return await run_in_transaction(
            self._sessions,
            lambda s: TenantMetadataRepository(s).get(raw_key_hex),
            target=self.store,
            name="tenants.get",
            timeout=self.query_timeout,
        )

    async def get_by_name(self, tenant_name: str) -> list[TenantMetadata]:
        return await run_in_transaction(
            self._sessions,
            lambda s: TenantMetadataRepository(s).get_by_name(tenant_name),
            target=self.store,
            name="tenants.get_by_name",
            timeout=self.query_timeout,
        )

    async def count(self, raw_key_hex: str | None = None) -> int:
        return await run_in_transaction(
            self._sessions,
            lambda s: TenantMetadataRepository(s).count(raw_key_hex),
            target=self.store,
            name="tenants.count",
            timeout=self.query_timeout,
        )
