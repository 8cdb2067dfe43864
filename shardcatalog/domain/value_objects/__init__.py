"""Domain value objects."""

from shardcatalog.domain.value_objects.keys import KeyCodec, RawKey
from shardcatalog.domain.value_objects.names import TenantName, normalize_database_name

__all__ = [
    "KeyCodec",
    "RawKey",
    "TenantName",
    "normalize_database_name",
]
