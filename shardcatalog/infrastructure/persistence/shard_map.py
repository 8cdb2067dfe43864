"""
Store-backed list shard map.

Every operation runs in its own short transaction under the configured
query timeout. The catalog store is the source of truth; the shard
registry kept here is a view refreshed on load and on every shard write.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shardcatalog.domain.entities.shard_map import Mapping, MappingLookup, Shard
from shardcatalog.domain.enums import MappingStatus
from shardcatalog.domain.exceptions import (ConcurrentUpdateError, MappingConflictError,
                                            MappingNotFoundError, UnknownShardError)
from shardcatalog.domain.value_objects.keys import KeyCodec, RawKey
from shardcatalog.infrastructure.exceptions import TransportError
from shardcatalog.infrastructure.persistence.database import run_in_transaction
from shardcatalog.infrastructure.persistence.models.shard_map import ShardMappingModel, ShardModel
from shardcatalog.infrastructure.persistence.repositories.mapping_repo import MappingRepository
from shardcatalog.infrastructure.persistence.repositories.shard_repo import ShardRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ShardMap:
    """
    Directory of shards and single-point key mappings.

    All mutations are idempotent so a client that cannot tell whether a
    previous attempt committed can simply retry.
    """

    def __init__(
        self,
        name: str,
        session_factory: async_sessionmaker[AsyncSession],
        codec: KeyCodec,
        *,
        store: str,
        query_timeout: float,
    ):
        self.name = name
        self.codec = codec
        self.store = store
        self.query_timeout = query_timeout
        self._sessions = session_factory
        self._registry: dict[tuple[str, str], Shard] = {}

    @property
    def shards(self) -> list[Shard]:
        """Shards known as of the last load or shard write"""
        return list(self._registry.values())

    async def load(self) -> None:
        """Rebuild the shard registry view from the store"""
        await self.get_shards()
        logger.debug("Loaded shard map %s with %d shards", self.name, len(self._registry))

    async def get_shards(self) -> list[Shard]:
        rows = await self._transaction("get_shards", lambda s: ShardRepository(s).list_all())
        self._registry = {
            (row.server_name, row.database_name): self._shard_entity(row) for row in rows
        }
        return self.shards

    async def lookup(self, tenant_key: int) -> MappingLookup:
        """
        Look up the online mapping for a key.

        Invalid keys raise InvalidKeyError before any remote call; transport
        failures come back as a FAILED lookup, never as NOT_FOUND.
        """
        raw_key = self.codec.encode(tenant_key)
        try:
            row = await self._transaction(
                "lookup", lambda s: MappingRepository(s).get(raw_key.value)
            )
        except TransportError as e:
            logger.warning("Lookup of %s in %s failed: %s", raw_key, self.name, e.message)
            return MappingLookup.failed(e)

        if row is None or row.status != MappingStatus.ONLINE.value:
            return MappingLookup.not_found()
        return MappingLookup.found(self._mapping_entity(raw_key, row))

    async def try_get_mapping(self, tenant_key: int) -> Mapping | None:
        """Online mapping for a key, None if absent; lookup failures are raised"""
        return (await self.lookup(tenant_key)).unwrap()

    async def get_mapping(self, tenant_key: int) -> Mapping | None:
        """Mapping for a key regardless of status"""
        raw_key = self.codec.encode(tenant_key)
        row = await self._transaction(
            "get_mapping", lambda s: MappingRepository(s).get(raw_key.value)
        )
        return self._mapping_entity(raw_key, row) if row else None

    async def get_mappings_for_shard(self, shard: Shard) -> list[Mapping]:
        async def work(session: AsyncSession) -> list[Mapping]:
            shard_row = await ShardRepository(session).get_by_location(
                shard.server_name, shard.database_name
            )
            if shard_row is None:
                return []
            rows = await MappingRepository(session).get_for_shard(shard_row.id)
            return [self._mapping_entity(RawKey(row.raw_key), row) for row in rows]

        return await self._transaction("get_mappings_for_shard", work)

    async def add_shard(self, shard: Shard) -> Shard:
        """Register a shard; registering an existing shard is a no-op"""

        async def work(session: AsyncSession) -> bool:
            _, created = await ShardRepository(session).insert_if_absent(
                shard.server_name, shard.database_name
            )
            return created

        created = await self._transaction("add_shard", work)
        self._registry[(shard.server_name, shard.database_name)] = shard
        if created:
            logger.info("Registered shard %s in %s", shard, self.name)
        else:
            logger.debug("Shard %s already registered in %s", shard, self.name)
        return shard

    async def add_mapping(self, tenant_key: int, shard: Shard) -> Mapping:
        """
        Map a key to a registered shard.

        Mapping a key to the shard it already points at succeeds, bringing an
        offline mapping back online; pointing it at a different shard raises
        MappingConflictError.
        """
        raw_key = self.codec.encode(tenant_key)

        async def work(session: AsyncSession) -> tuple[Mapping, bool]:
            shard_row = await ShardRepository(session).get_by_location(
                shard.server_name, shard.database_name
            )
            if shard_row is None:
                raise UnknownShardError(shard.server_name, shard.database_name)

            mappings = MappingRepository(session)
            created = await mappings.insert_if_absent(raw_key.value, shard_row)
            row = await mappings.get(raw_key.value)
            assert row is not None
            if row.shard_id != shard_row.id:
                existing = self._shard_entity(row.shard)
                raise MappingConflictError(raw_key.hex, existing.location, shard.location)

            mapping = self._mapping_entity(raw_key, row)
            if not mapping.is_online:
                # Re-adding an offline mapping to its own shard brings it back online
                if not await mappings.compare_and_set_status(
                    raw_key.value, row.version, MappingStatus.ONLINE
                ):
                    raise ConcurrentUpdateError(raw_key.hex, row.version)
                mapping = Mapping(raw_key, mapping.shard, MappingStatus.ONLINE, row.version + 1)
            return mapping, created

        mapping, created = await self._transaction("add_mapping", work)
        if created:
            logger.info("Mapped key %s to %s in %s", raw_key, shard, self.name)
        else:
            logger.debug("Key %s already mapped to %s in %s", raw_key, shard, self.name)
        return mapping

    async def set_mapping_status(self, tenant_key: int, status: MappingStatus) -> Mapping:
        """
        Bring a mapping online or take it offline.

        Compare-and-swap on the mapping version; losing the race raises
        ConcurrentUpdateError instead of overwriting the other writer.
        """
        raw_key = self.codec.encode(tenant_key)

        async def work(session: AsyncSession) -> Mapping:
            mappings = MappingRepository(session)
            row = await mappings.get(raw_key.value)
            if row is None:
                raise MappingNotFoundError(raw_key.hex)
            current = self._mapping_entity(raw_key, row)
            if row.status == status.value:
                return current
            if not await mappings.compare_and_set_status(raw_key.value, row.version, status):
                raise ConcurrentUpdateError(raw_key.hex, row.version)
            return Mapping(raw_key, current.shard, status, row.version + 1)

        mapping = await self._transaction("set_mapping_status", work)
        logger.info("Mapping %s in %s is %s", raw_key, self.name, mapping.status.value)
        return mapping

    async def _transaction(self, name: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        return await run_in_transaction(
            self._sessions,
            work,
            target=self.store,
            name=f"{self.name}.{name}",
            timeout=self.query_timeout,
        )

    @staticmethod
    def _shard_entity(row: ShardModel) -> Shard:
        return Shard(server_name=row.server_name, database_name=row.database_name)

    def _mapping_entity(self, raw_key: RawKey, row: ShardMappingModel) -> Mapping:
        return Mapping(
            raw_key=raw_key,
            shard=self._shard_entity(row.shard),
            status=MappingStatus(row.status),
            version=row.version,
        )
