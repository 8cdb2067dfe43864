from pydantic import BaseModel, ConfigDict


class ShardResponse(BaseModel):
    """Schema for registered shard responses"""

    server_name: str
    database_name: str
    location: str

    model_config = ConfigDict(from_attributes=True)
