from fastapi import HTTPException, Request, status

from shardcatalog.application.catalog import Catalog
from shardcatalog.application.services.tenant_provisioning_service import \
    TenantProvisioningService


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        # Lifespan has not opened the catalog (or failed to)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog is not available",
        )
    return value


async def get_catalog(request: Request) -> Catalog:
    """Catalog opened on app startup in main.py"""
    return _from_state(request, "catalog")


async def get_provisioning_service(request: Request) -> TenantProvisioningService:
    """Tenant provisioning service built on app startup in main.py"""
    return _from_state(request, "provisioning_service")
