"""
SQLAlchemy mixins for common catalog model patterns.

These mixins provide reusable column definitions to keep the catalog
tables consistent.
"""
from datetime import datetime

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func


class TimestampMixin:
    """
    Mixin for timestamp tracking.

    Provides:
        - created_at: Timestamp set on creation (server-side default)
        - updated_at: Timestamp updated on modification (server-side default + onupdate)

    Note: Uses timezone-aware DateTime for consistency
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class VersionedMixin:
    """
    Optimistic locking with version tracking.

    Provides:
        - version: Integer counter incremented on each update

    Updates are compare-and-swap statements:
        result = await db.execute(
            update(Model)
            .where(Model.key == key, Model.version == old_version)
            .values(data, version=old_version + 1)
        )
        if result.rowcount == 0:
            raise ConcurrentUpdateError(...)
    """

    @declared_attr
    def version(cls) -> Mapped[int]:
        return mapped_column(Integer, default=1, server_default="1", nullable=False)
