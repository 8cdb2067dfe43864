from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shardcatalog.domain.entities.shard_map import TenantMetadata
from shardcatalog.infrastructure.persistence.models.tenant import TenantModel
from shardcatalog.infrastructure.persistence.repositories.base import BaseRepository

METADATA_ATTRIBUTES = ("tenant_name", "tenant_type", "postal_code", "country_code")


class TenantMetadataRepository(BaseRepository[TenantModel]):
    """
    Repository for extended tenant attributes.

    Rows are keyed by the raw key hex literal, the same identity the
    tenant's shard mapping uses.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, TenantModel)

    async def upsert(self, tenant_id: str, attributes: dict[str, Any]) -> TenantMetadata:
        """
        Merge attributes into the tenant row.

        A single INSERT ... ON CONFLICT DO UPDATE: two concurrent
        registrations of the same key converge on one row.
        """
        unknown = set(attributes) - set(METADATA_ATTRIBUTES)
        if unknown:
            raise ValueError(f"Unknown tenant attributes: {', '.join(sorted(unknown))}")
        if not attributes.get("tenant_name"):
            raise ValueError("tenant_name is required")

        values = {key: attributes.get(key) for key in METADATA_ATTRIBUTES}
        stmt = self._insert().values(tenant_id=tenant_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id"],
            set_={**values, "last_updated": func.now()},
        )
        await self.db.execute(stmt)
        return TenantMetadata(tenant_id=tenant_id, **values)

    async def get(self, tenant_id: str) -> TenantMetadata | None:
        result = await self.db.execute(
            select(TenantModel).where(TenantModel.tenant_id == tenant_id)
        )
        row = result.scalar_one_or_none()
        return self._to_entity(row) if row else None

    async def get_by_name(self, tenant_name: str) -> list[TenantMetadata]:
        result = await self.db.execute(
            select(TenantModel).where(TenantModel.tenant_name == tenant_name)
        )
        return [self._to_entity(row) for row in result.scalars().all()]

    async def count(self, tenant_id: str | None = None) -> int:
        stmt = select(func.count()).select_from(TenantModel)
        if tenant_id is not None:
            stmt = stmt.where(TenantModel.tenant_id == tenant_id)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    def _to_entity(row: TenantModel) -> TenantMetadata:
        return TenantMetadata(
            tenant_id=row.tenant_id,
            tenant_name=row.tenant_name,
            tenant_type=row.tenant_type,
            postal_code=row.postal_code,
            country_code=row.country_code,
        )
