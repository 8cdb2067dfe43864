from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shardcatalog.domain.enums import MappingStatus
from shardcatalog.infrastructure.persistence.models.shard_map import ShardMappingModel, ShardModel
from shardcatalog.infrastructure.persistence.repositories.base import BaseRepository


class MappingRepository(BaseRepository[ShardMappingModel]):
    """
    Repository for key-to-shard mappings.

    Inserts are conflict-tolerant and updates are compare-and-swap on the
    version column, so concurrent registrations of one key cannot corrupt
    the row.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, ShardMappingModel)

    async def get(self, raw_key: bytes) -> ShardMappingModel | None:
        result = await self.db.execute(
            select(ShardMappingModel).where(ShardMappingModel.raw_key == raw_key)
        )
        return result.scalar_one_or_none()

    async def get_for_shard(self, shard_id: int) -> list[ShardMappingModel]:
        result = await self.db.execute(
            select(ShardMappingModel).where(ShardMappingModel.shard_id == shard_id)
        )
        return list(result.scalars().all())

    async def insert_if_absent(self, raw_key: bytes, shard: ShardModel) -> bool:
        """Insert an online mapping unless the key already has one; True if inserted"""
        stmt = (
            self._insert()
            .values(
                raw_key=raw_key, shard_id=shard.id, status=MappingStatus.ONLINE.value, version=1
            )
            .on_conflict_do_nothing(index_elements=["raw_key"])
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def compare_and_set_status(
        self, raw_key: bytes, expected_version: int, status: MappingStatus
    ) -> bool:
        """Set the status only if the row is still at expected_version"""
        result = await self.db.execute(
            update(ShardMappingModel)
            .where(
                ShardMappingModel.raw_key == raw_key,
                ShardMappingModel.version == expected_version,
            )
            .values(status=status.value, version=expected_version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
