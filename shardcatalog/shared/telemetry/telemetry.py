"""OpenTelemetry distributed tracing configuration"""

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import \
    OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (BatchSpanProcessor,
                                            ConsoleSpanExporter)
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class TelemetryConfig:
    """
    OpenTelemetry configuration for the catalog service

    Traces provisioning workflow steps, catalog store queries and HTTP
    requests. Telemetry is optional: setup failures are logged and the
    service runs untraced.
    """

    def __init__(self, service_name: str, service_version: str, enabled: bool = True):
        self.service_name = service_name
        self.service_version = service_version
        self.enabled = enabled
        self.tracer_provider: TracerProvider | None = None

    def setup_telemetry(
        self,
        exporter_type: str = "console",
        otlp_endpoint: str | None = None,
    ) -> TracerProvider | None:
        """
        Initialize OpenTelemetry tracing

        Args:
            exporter_type: Type of exporter ("console", "otlp", "none")
            otlp_endpoint: OTLP gRPC endpoint (e.g., "http://localhost:4317")

        Returns:
            TracerProvider instance or None if disabled
        """
        if not self.enabled:
            logger.info("Telemetry disabled")
            return None

        try:
            resource = Resource(
                attributes={
                    SERVICE_NAME: self.service_name,
                    SERVICE_VERSION: self.service_version,
                }
            )
            self.tracer_provider = TracerProvider(resource=resource)

            if exporter_type == "console":
                exporter = ConsoleSpanExporter()
                logger.info("Using Console span exporter (development mode)")

            elif exporter_type == "otlp" and otlp_endpoint:
                # OTLP exporter - use TLS for https:// endpoints
                use_insecure = otlp_endpoint.startswith("http://")
                exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=use_insecure)
                logger.info("Using OTLP span exporter: %s", otlp_endpoint)

            elif exporter_type == "none":
                logger.info("Telemetry enabled but no exporter configured")
                trace.set_tracer_provider(self.tracer_provider)
                return self.tracer_provider

            else:
                logger.warning("Unknown exporter type '%s', using console", exporter_type)
                exporter = ConsoleSpanExporter()

            self.tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(self.tracer_provider)

            logger.info(
                "OpenTelemetry initialized: service=%s, version=%s, exporter=%s",
                self.service_name,
                self.service_version,
                exporter_type,
            )
            return self.tracer_provider

        except Exception as e:
            logger.exception("Failed to initialize telemetry: %s", e)
            return None

    def instrument_fastapi(self, app: FastAPI):
        """Instrument the HTTP API"""
        if not self.enabled or not self.tracer_provider:
            return

        try:
            FastAPIInstrumentor.instrument_app(
                app,
                tracer_provider=self.tracer_provider,
                excluded_urls="/health",
            )
            logger.info("FastAPI instrumentation enabled")
        except Exception as e:
            logger.error("Failed to instrument FastAPI: %s", e)

    def instrument_sqlalchemy(self, engine: AsyncEngine):
        """Instrument catalog store queries"""
        if not self.enabled or not self.tracer_provider:
            return

        try:
            SQLAlchemyInstrumentor().instrument(
                engine=engine.sync_engine,  # Use sync engine for instrumentation
                tracer_provider=self.tracer_provider,
            )
            logger.info("SQLAlchemy instrumentation enabled")
        except Exception as e:
            logger.error("Failed to instrument SQLAlchemy: %s", e)

    def shutdown(self):
        """Shutdown tracer provider and flush remaining spans"""
        if self.tracer_provider:
            try:
                self.tracer_provider.shutdown()
                logger.info("Telemetry shutdown complete")
            except Exception as e:
                logger.error("Error during telemetry shutdown: %s", e)
