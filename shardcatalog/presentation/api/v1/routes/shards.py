from typing import Annotated

from fastapi import APIRouter, Depends

from shardcatalog.application.catalog import Catalog
from shardcatalog.presentation.api.dependencies import get_catalog
from shardcatalog.presentation.api.v1.schemas.shard import ShardResponse

router = APIRouter()


@router.get("/", response_model=list[ShardResponse])
async def list_shards(catalog: Annotated[Catalog, Depends(get_catalog)]):
    """List registered shards"""
    return [ShardResponse.model_validate(shard) for shard in await catalog.get_shards()]
