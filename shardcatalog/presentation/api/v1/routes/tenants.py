from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from shardcatalog.application.catalog import Catalog
from shardcatalog.application.services.tenant_provisioning_service import \
    TenantProvisioningService
from shardcatalog.domain.entities.shard_map import Mapping, TenantMetadata
from shardcatalog.presentation.api.dependencies import get_catalog, get_provisioning_service
from shardcatalog.presentation.api.v1.schemas.tenant import (MetadataResponse, ShardLocation,
                                                             TenantCreate, TenantCreateResponse,
                                                             TenantExistsResponse, TenantResponse,
                                                             TenantStatusUpdate)

router = APIRouter()


def _tenant_response(key: int, mapping: Mapping, metadata: TenantMetadata | None) -> dict:
    return {
        "key": key,
        "raw_key": mapping.raw_key.hex,
        "shard": ShardLocation.model_validate(mapping.shard),
        "status": mapping.status,
        "version": mapping.version,
        "metadata": MetadataResponse.model_validate(metadata) if metadata else None,
    }


@router.post("/", response_model=TenantCreateResponse, status_code=status.HTTP_201_CREATED)
async def register_tenant(
    data: TenantCreate,
    service: Annotated[TenantProvisioningService, Depends(get_provisioning_service)],
):
    """
    Provision a tenant database and register it in the catalog.

    Resubmitting the same request after a failure is safe: completed steps
    are not repeated and the result converges.
    """
    result = await service.register_tenant(
        data.name,
        data.key,
        server_name=data.server,
        tenant_type=data.tenant_type,
        postal_code=data.postal_code,
        country_code=data.country_code,
    )
    return TenantCreateResponse(
        **_tenant_response(result.tenant_key, result.mapping, result.metadata),
        state=result.state,
        reused_database=result.reused_database,
    )


@router.get("/", response_model=list[MetadataResponse])
async def find_tenants(
    catalog: Annotated[Catalog, Depends(get_catalog)],
    name: Annotated[str, Query(min_length=1)],
):
    """Find tenant metadata by display name"""
    return await catalog.metadata.get_by_name(name)


@router.get("/{key}", response_model=TenantResponse)
async def get_tenant(key: int, catalog: Annotated[Catalog, Depends(get_catalog)]):
    """Get a tenant's mapping (online or offline) and metadata"""
    mapping = await catalog.get_mapping(key)
    if mapping is None:
        raise HTTPException(status_code=404, detail="Tenant not found")

    metadata = await catalog.metadata.get(mapping.raw_key.hex)
    return _tenant_response(key, mapping, metadata)


@router.get("/{key}/exists", response_model=TenantExistsResponse)
async def tenant_exists(key: int, catalog: Annotated[Catalog, Depends(get_catalog)]):
    """Whether the key has an online mapping"""
    return TenantExistsResponse(key=key, exists=await catalog.key_exists(key))


@router.patch("/{key}/status", response_model=TenantResponse)
async def update_tenant_status(
    key: int,
    data: TenantStatusUpdate,
    catalog: Annotated[Catalog, Depends(get_catalog)],
):
    """
    Take a tenant online or offline.

    Request body: {"status": "online"|"offline"}
    """
    mapping = await catalog.set_mapping_status(key, data.status)
    metadata = await catalog.metadata.get(mapping.raw_key.hex)
    return _tenant_response(key, mapping, metadata)
