import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shardcatalog.application.catalog import Catalog
from shardcatalog.application.services.tenant_provisioning_service import \
    TenantProvisioningService
from shardcatalog.domain.exceptions import CatalogException
from shardcatalog.infrastructure.config.settings import Settings, get_settings
from shardcatalog.infrastructure.external.provisioning import TemplateDatabaseProvisioner
from shardcatalog.infrastructure.external.sql_transport import SqlAlchemyTransport
from shardcatalog.presentation.api.errors import register_exception_handlers
from shardcatalog.presentation.api.v1.routes import shards, tenants
from shardcatalog.shared.telemetry.logging import setup_logging
from shardcatalog.shared.telemetry.telemetry import TelemetryConfig

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for catalog initialization and cleanup"""
    settings: Settings = app.state.settings
    telemetry: TelemetryConfig = app.state.telemetry

    # Catalog schema is created by Catalog.initialize() at deployment time;
    # an uninitialized store fails startup here
    catalog = await Catalog.open(settings)
    telemetry.instrument_sqlalchemy(catalog.engine)

    transport = SqlAlchemyTransport.from_settings(settings)
    provisioner = TemplateDatabaseProvisioner(
        transport, settings.server_list, settings.templates_dir
    )
    app.state.catalog = catalog
    app.state.provisioning_service = TenantProvisioningService(
        catalog, provisioner, transport, settings
    )

    yield

    # Shutdown: close connections
    await transport.dispose()
    await catalog.close()
    logger.info("Catalog store connections disposed")
    telemetry.shutdown()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    register_exception_handlers(app)

    # Initialize logging and OpenTelemetry distributed tracing; FastAPI
    # instrumentation adds middleware, so it must happen before startup
    setup_logging(settings)
    telemetry = TelemetryConfig(
        service_name=settings.app_name,
        service_version=settings.app_version,
        enabled=settings.telemetry_enabled,
    )
    telemetry.setup_telemetry(
        exporter_type=settings.telemetry_exporter,
        otlp_endpoint=settings.telemetry_otlp_endpoint,
    )
    telemetry.instrument_fastapi(app)
    app.state.telemetry = telemetry

    # Routers
    app.include_router(tenants.router, prefix="/api/v1/tenants", tags=["tenants"])
    app.include_router(shards.router, prefix="/api/v1/shards", tags=["shards"])

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and monitoring.

        Returns:
        - 200 OK if the catalog store answers
        - 503 Service Unavailable otherwise
        """
        checks: dict[str, Any] = {
            "api": True,  # If we got here, API is responding
            "catalog": False,
        }

        catalog: Catalog | None = getattr(request.app.state, "catalog", None)
        if catalog is None:
            checks["error"] = "catalog not opened"
            return JSONResponse(status_code=503, content={"status": "unhealthy", "checks": checks})

        try:
            await catalog.ping()
            checks["catalog"] = True
            checks["shards"] = len(catalog.shard_map.shards)
        except CatalogException as e:
            checks["error"] = e.message
            return JSONResponse(status_code=503, content={"status": "unhealthy", "checks": checks})

        return {"status": "healthy", "checks": checks}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("shardcatalog.main:create_app", factory=True, host="0.0.0.0", port=8000)
