from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from shardcatalog.infrastructure.persistence.database import Base


class TenantModel(Base):
    """
    Extended per-tenant attributes.

    Keyed by the raw key hex literal so a row shares identity with the
    tenant's shard mapping.
    """

    __tablename__ = "tenants"

    tenant_id: Mapped[str] = mapped_column(String(258), primary_key=True)
    tenant_name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tenant_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country_code: Mapped[str | None] = mapped_column(String(3), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
