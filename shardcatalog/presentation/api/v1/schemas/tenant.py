from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from shardcatalog.domain.enums import MappingStatus, ProvisioningState
from shardcatalog.domain.value_objects.names import TenantName


class TenantCreate(BaseModel):
    """Schema for registering a tenant"""

    name: str
    key: StrictInt
    tenant_type: str | None = None
    postal_code: str | None = None
    country_code: str | None = Field(default=None, max_length=3)
    server: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate tenant name using TenantName value object"""
        TenantName(v)  # Raises ValueError if invalid
        return v


class TenantStatusUpdate(BaseModel):
    """Schema for taking a tenant mapping online or offline"""

    status: MappingStatus


class ShardLocation(BaseModel):
    server_name: str
    database_name: str

    model_config = ConfigDict(from_attributes=True)


class MetadataResponse(BaseModel):
    tenant_id: str
    tenant_name: str
    tenant_type: str | None = None
    postal_code: str | None = None
    country_code: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TenantResponse(BaseModel):
    """Schema for tenant responses: the mapping plus its metadata"""

    key: int
    raw_key: str
    shard: ShardLocation
    status: MappingStatus
    version: int
    metadata: MetadataResponse | None = None


class TenantCreateResponse(TenantResponse):
    """Schema for tenant registration response"""

    state: ProvisioningState
    reused_database: bool


class TenantExistsResponse(BaseModel):
    key: int
    exists: bool
