from datetime import datetime

from sqlalchemy import (CheckConstraint, DateTime, ForeignKey, Integer, LargeBinary, String,
                        UniqueConstraint)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from shardcatalog.domain.enums import KeyType, MappingStatus
from shardcatalog.infrastructure.persistence.database import Base
from shardcatalog.infrastructure.persistence.models.mixins import TimestampMixin, VersionedMixin


class ShardMapManager(Base):
    """
    Shard map registration row.

    Its presence marks the catalog store as initialized; a store without it
    is a deployment error, not an empty catalog.
    """

    __tablename__ = "shard_map_manager"

    name: Mapped[str] = mapped_column(String(128), primary_key=True)
    key_type: Mapped[str] = mapped_column(String(16), nullable=False, default=KeyType.INT32.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(f"key_type IN {tuple(KeyType.values())}", name="shard_map_key_type_check"),
    )


class ShardModel(Base):
    """A registered physical tenant database"""

    __tablename__ = "shards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_name: Mapped[str] = mapped_column(String(128), nullable=False)
    database_name: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("server_name", "database_name", name="shards_location_key"),
    )


class ShardMappingModel(TimestampMixin, VersionedMixin, Base):
    """
    Single-point mapping from raw key to shard.

    raw_key is the primary key, so a key can never hold two mappings.
    """

    __tablename__ = "shard_mappings"

    raw_key: Mapped[bytes] = mapped_column(LargeBinary(128), primary_key=True)
    shard_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("shards.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MappingStatus.ONLINE.value
    )

    shard: Mapped[ShardModel] = relationship(lazy="joined")

    __table_args__ = (
        CheckConstraint(f"status IN {tuple(MappingStatus.values())}", name="mapping_status_check"),
    )
