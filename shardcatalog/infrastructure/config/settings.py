from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shardcatalog.domain.enums import KeyType


class Settings(BaseSettings):
    # App
    app_name: str = "Shard Catalog"
    app_version: str = "1.0.0"
    debug: bool = False

    # Catalog store
    catalog_database_url: str = ""  # Loaded from environment, validated in model_validator
    database_echo: bool = False
    shard_map_name: str = "tenantcatalog"

    # Tenant shards, e.g. "postgresql+asyncpg://user:pw@{server}/{database}"
    shard_url_template: str = ""  # Loaded from environment, validated in model_validator
    servers: str = ""  # Comma-separated list of known tenant servers
    default_server: str = ""

    # Provisioning
    template_ref: str = "tenantdb"
    templates_dir: str = "templates"

    # Keys
    key_type: KeyType = KeyType.INT32
    allow_negative_keys: bool = False

    # Remote calls
    connect_timeout_seconds: float = 15.0
    query_timeout_seconds: float = 30.0
    require_encryption: bool = True

    # Tenant metadata defaults
    default_tenant_type: str = "multipurpose"
    default_postal_code: str = "98052"
    default_country_code: str = "USA"

    # OpenTelemetry Distributed Tracing
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"  # Options: "console", "otlp", "none"
    telemetry_otlp_endpoint: str | None = None  # e.g., "http://localhost:4317"

    @property
    def server_list(self) -> list[str]:
        return [s.strip() for s in self.servers.split(",") if s.strip()]

    @model_validator(mode="after")
    def validate_catalog_config(self) -> "Settings":
        """Validate store locations, timeouts and server configuration"""
        if not self.catalog_database_url:
            raise ValueError(
                "CATALOG_DATABASE_URL is required. Set SHARDCATALOG_CATALOG_DATABASE_URL "
                "in environment or .env file."
            )
        if not self.shard_url_template:
            raise ValueError("SHARD_URL_TEMPLATE is required. Set in environment or .env file.")
        if "{database}" not in self.shard_url_template:
            raise ValueError("shard_url_template must contain a '{database}' placeholder")

        # Unbounded waits are not allowed on remote calls
        if self.connect_timeout_seconds <= 0 or self.query_timeout_seconds <= 0:
            raise ValueError("connect_timeout_seconds and query_timeout_seconds must be positive")

        if self.default_server and self.default_server not in self.server_list:
            raise ValueError(
                f"default_server '{self.default_server}' is not in servers "
                f"({', '.join(self.server_list) or 'none configured'})"
            )
        if self.telemetry_exporter not in ("console", "otlp", "none"):
            raise ValueError(
                f"Invalid telemetry_exporter '{self.telemetry_exporter}'. "
                f"Must be one of: 'console', 'otlp', 'none'"
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="SHARDCATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
