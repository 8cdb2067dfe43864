"""
Shard map domain entities.

These represent the business concepts of the shard map, independent of
how they're stored in the catalog database.
"""

from dataclasses import dataclass

from shardcatalog.domain.enums import LookupOutcome, MappingStatus
from shardcatalog.domain.value_objects.keys import RawKey


@dataclass(frozen=True)
class Shard:
    """
    A physical tenant database.

    Identity is the (server_name, database_name) pair; shards are never
    mutated after registration.
    """

    server_name: str
    database_name: str

    def __post_init__(self):
        if not self.server_name or not self.database_name:
            raise ValueError("Shard requires both a server name and a database name")

    @property
    def location(self) -> str:
        return f"{self.server_name}/{self.database_name}"

    def __str__(self) -> str:
        return self.location


@dataclass(frozen=True)
class Mapping:
    """A single-point association of a raw key with one shard"""

    raw_key: RawKey
    shard: Shard
    status: MappingStatus = MappingStatus.ONLINE
    version: int = 1

    @property
    def is_online(self) -> bool:
        return self.status == MappingStatus.ONLINE


@dataclass(frozen=True)
class MappingLookup:
    """
    Tri-state result of a mapping lookup.

    FOUND carries the mapping, NOT_FOUND is genuine absence, FAILED carries
    the error that prevented an answer. Absence and failure are never the
    same outcome.
    """

    outcome: LookupOutcome
    mapping: Mapping | None = None
    error: Exception | None = None

    @classmethod
    def found(cls, mapping: Mapping) -> "MappingLookup":
        return cls(LookupOutcome.FOUND, mapping=mapping)

    @classmethod
    def not_found(cls) -> "MappingLookup":
        return cls(LookupOutcome.NOT_FOUND)

    @classmethod
    def failed(cls, error: Exception) -> "MappingLookup":
        return cls(LookupOutcome.FAILED, error=error)

    def unwrap(self) -> Mapping | None:
        """Return the mapping, None on absence, or re-raise the lookup failure"""
        if self.outcome == LookupOutcome.FAILED:
            assert self.error is not None
            raise self.error
        return self.mapping


@dataclass
class TenantMetadata:
    """Descriptive attributes of a tenant, keyed by the raw key hex string"""

    tenant_id: str
    tenant_name: str
    tenant_type: str | None = None
    postal_code: str | None = None
    country_code: str | None = None

    def attributes(self) -> dict[str, str | None]:
        return {
            "tenant_name": self.tenant_name,
            "tenant_type": self.tenant_type,
            "postal_code": self.postal_code,
            "country_code": self.country_code,
        }
