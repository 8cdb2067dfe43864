from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shardcatalog.infrastructure.persistence.models.shard_map import ShardModel
from shardcatalog.infrastructure.persistence.repositories.base import BaseRepository


class ShardRepository(BaseRepository[ShardModel]):
    """Repository for the shard registry"""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ShardModel)

    async def get_by_location(self, server_name: str, database_name: str) -> ShardModel | None:
        result = await self.db.execute(
            select(ShardModel).where(
                ShardModel.server_name == server_name,
                ShardModel.database_name == database_name,
            )
        )
        return result.scalar_one_or_none()

    async def insert_if_absent(
        self, server_name: str, database_name: str
    ) -> tuple[ShardModel, bool]:
        """
        Register a shard unless it already exists.

        Returns the stored shard and whether this call created it.
        """
        stmt = (
            self._insert()
            .values(server_name=server_name, database_name=database_name)
            .on_conflict_do_nothing(index_elements=["server_name", "database_name"])
        )
        result = await self.db.execute(stmt)
        shard = await self.get_by_location(server_name, database_name)
        assert shard is not None
        return shard, result.rowcount == 1

    async def list_all(self) -> list[ShardModel]:
        result = await self.db.execute(
            select(ShardModel).order_by(ShardModel.server_name, ShardModel.database_name)
        )
        return list(result.scalars().all())
