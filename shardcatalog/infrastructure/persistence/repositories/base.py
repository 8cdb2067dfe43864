from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from shardcatalog.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[ModelType]):
    """
    Base repository with the operations shared by catalog tables.

    Repositories never commit; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    @property
    def dialect_name(self) -> str:
        return self.db.bind.dialect.name

    def _insert(self) -> Any:
        """
        Dialect-specific INSERT supporting ON CONFLICT clauses.

        Idempotent writes are single statements resolved by the store,
        never a read followed by a write.
        """
        if self.dialect_name == "postgresql":
            return postgresql.insert(self.model)
        if self.dialect_name == "sqlite":
            return sqlite.insert(self.model)
        raise NotImplementedError(f"Atomic upsert is not supported on {self.dialect_name}")
