from shardcatalog.infrastructure.persistence.repositories.mapping_repo import MappingRepository
from shardcatalog.infrastructure.persistence.repositories.shard_repo import ShardRepository
from shardcatalog.infrastructure.persistence.repositories.tenant_metadata_repo import \
    TenantMetadataRepository

__all__ = [
    "MappingRepository",
    "ShardRepository",
    "TenantMetadataRepository",
]
