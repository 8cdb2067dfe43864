"""Domain entities."""

from shardcatalog.domain.entities.shard_map import Mapping, MappingLookup, Shard, TenantMetadata

__all__ = [
    "Mapping",
    "MappingLookup",
    "Shard",
    "TenantMetadata",
]
