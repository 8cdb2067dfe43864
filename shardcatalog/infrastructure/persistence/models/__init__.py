from shardcatalog.infrastructure.persistence.models.shard_map import (ShardMapManager,
                                                                    ShardMappingModel,
                                                                    ShardModel)
from shardcatalog.infrastructure.persistence.models.tenant import TenantModel

__all__ = [
    "ShardMapManager",
    "ShardMappingModel",
    "ShardModel",
    "TenantModel",
]
