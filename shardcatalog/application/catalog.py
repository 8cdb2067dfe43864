"""
Catalog aggregate: one shard map plus the location of its backing store.

A Catalog is opened explicitly and passed to whoever needs it; there is no
process-wide catalog handle.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import inspect, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from shardcatalog.domain.entities.shard_map import Mapping, MappingLookup, Shard
from shardcatalog.domain.enums import MappingStatus
from shardcatalog.domain.exceptions import CatalogNotInitializedError
from shardcatalog.domain.value_objects.keys import KeyCodec, RawKey
from shardcatalog.infrastructure.config.settings import Settings
from shardcatalog.infrastructure.persistence.database import (Base, create_session_factory,
                                                              create_store_engine, run_remote)
from shardcatalog.infrastructure.persistence.metadata_store import MetadataStore
from shardcatalog.infrastructure.persistence.models import (ShardMapManager, ShardMappingModel,
                                                            ShardModel, TenantModel)
from shardcatalog.infrastructure.persistence.shard_map import ShardMap

logger = logging.getLogger(__name__)

REQUIRED_TABLES = frozenset(
    model.__tablename__ for model in (ShardMapManager, ShardModel, ShardMappingModel, TenantModel)
)


class Catalog:
    """
    Directory of tenant shards.

    Read-mostly after open; mutated only through shard and mapping adds
    and mapping status changes.
    """

    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine,
        shard_map: ShardMap,
        metadata: MetadataStore,
    ):
        self.settings = settings
        self.engine = engine
        self.shard_map = shard_map
        self.metadata = metadata

    @property
    def store_location(self) -> str:
        return _display_url(self.settings.catalog_database_url)

    @property
    def codec(self) -> KeyCodec:
        return self.shard_map.codec

    @classmethod
    async def open(cls, settings: Settings) -> Catalog:
        """
        Open the catalog store and load its shard map.

        Raises:
            CatalogNotInitializedError: the store lacks the shard map tables or
                manager row (a deployment error, not an empty catalog)
            TransportError: the store could not be reached
        """
        engine = _create_engine(settings)
        try:
            await run_remote(
                lambda: _verify_schema(engine, settings),
                target=_display_url(settings.catalog_database_url),
                name="catalog.open",
                timeout=settings.connect_timeout_seconds + settings.query_timeout_seconds,
            )
            catalog = cls._assemble(settings, engine)
            await catalog.shard_map.load()
        except Exception:
            await engine.dispose()
            raise

        logger.info(
            "Opened catalog %s at %s (%d shards)",
            settings.shard_map_name,
            catalog.store_location,
            len(catalog.shard_map.shards),
        )
        return catalog

    @classmethod
    async def initialize(cls, settings: Settings) -> Catalog:
        """
        Create the catalog schema and shard map manager row, then open it.

        Deployment-time operation; running it against an initialized store
        changes nothing.
        """
        engine = _create_engine(settings)
        try:
            await run_remote(
                lambda: _create_schema(engine, settings),
                target=_display_url(settings.catalog_database_url),
                name="catalog.initialize",
                timeout=settings.connect_timeout_seconds + settings.query_timeout_seconds,
            )
        finally:
            await engine.dispose()
        return await cls.open(settings)

    @classmethod
    def _assemble(cls, settings: Settings, engine: AsyncEngine) -> Catalog:
        sessions = create_session_factory(engine)
        store = _display_url(settings.catalog_database_url)
        codec = KeyCodec(settings.key_type, allow_negative=settings.allow_negative_keys)
        shard_map = ShardMap(
            settings.shard_map_name,
            sessions,
            codec,
            store=store,
            query_timeout=settings.query_timeout_seconds,
        )
        metadata = MetadataStore(
            sessions, store=store, query_timeout=settings.query_timeout_seconds
        )
        return cls(settings, engine, shard_map, metadata)

    async def close(self) -> None:
        await self.engine.dispose()

    async def __aenter__(self) -> Catalog:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def ping(self) -> None:
        """Round trip to the catalog store; raises TransportError when unreachable"""

        async def operation() -> None:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

        await run_remote(
            operation,
            target=self.store_location,
            name="catalog.ping",
            timeout=self.settings.query_timeout_seconds,
        )

    def raw_key(self, tenant_key: int) -> RawKey:
        return self.codec.encode(tenant_key)

    async def key_exists(self, tenant_key: int) -> bool:
        """
        Whether the key has an online mapping.

        False only on genuine absence; lookup failures propagate.
        """
        return await self.shard_map.try_get_mapping(tenant_key) is not None

    async def lookup(self, tenant_key: int) -> MappingLookup:
        return await self.shard_map.lookup(tenant_key)

    async def try_get_mapping(self, tenant_key: int) -> Mapping | None:
        return await self.shard_map.try_get_mapping(tenant_key)

    async def get_mapping(self, tenant_key: int) -> Mapping | None:
        return await self.shard_map.get_mapping(tenant_key)

    async def get_mappings_for_shard(self, shard: Shard) -> list[Mapping]:
        return await self.shard_map.get_mappings_for_shard(shard)

    async def get_shards(self) -> list[Shard]:
        return await self.shard_map.get_shards()

    async def add_shard(self, shard: Shard) -> Shard:
        return await self.shard_map.add_shard(shard)

    async def add_mapping(self, tenant_key: int, shard: Shard) -> Mapping:
        return await self.shard_map.add_mapping(tenant_key, shard)

    async def set_mapping_status(self, tenant_key: int, status: MappingStatus) -> Mapping:
        return await self.shard_map.set_mapping_status(tenant_key, status)


def _create_engine(settings: Settings) -> AsyncEngine:
    return create_store_engine(
        settings.catalog_database_url,
        connect_timeout=settings.connect_timeout_seconds,
        query_timeout=settings.query_timeout_seconds,
        require_encryption=settings.require_encryption,
        echo=settings.database_echo,
    )


def _display_url(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


def _table_names(sync_conn: Any) -> set[str]:
    return set(inspect(sync_conn).get_table_names())


async def _verify_schema(engine: AsyncEngine, settings: Settings) -> None:
    store = _display_url(settings.catalog_database_url)
    async with engine.connect() as conn:
        missing = REQUIRED_TABLES - await conn.run_sync(_table_names)
        if missing:
            raise CatalogNotInitializedError(store, f"missing tables {', '.join(sorted(missing))}")

        manager = await _get_manager(conn, settings.shard_map_name)
        if manager is None:
            raise CatalogNotInitializedError(
                store, f"shard map '{settings.shard_map_name}' is not registered"
            )
        if manager.key_type != settings.key_type.value:
            raise CatalogNotInitializedError(
                store,
                f"shard map '{settings.shard_map_name}' uses {manager.key_type} keys, "
                f"configured {settings.key_type.value}",
            )


async def _create_schema(engine: AsyncEngine, settings: Settings) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        if await _get_manager(conn, settings.shard_map_name) is None:
            await conn.execute(
                ShardMapManager.__table__.insert().values(
                    name=settings.shard_map_name, key_type=settings.key_type.value
                )
            )
            logger.info("Created shard map %s", settings.shard_map_name)


async def _get_manager(conn: AsyncConnection, name: str) -> Any:
    result = await conn.execute(
        select(ShardMapManager.__table__).where(ShardMapManager.__table__.c.name == name)
    )
    return result.first()
