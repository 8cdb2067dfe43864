"""Domain enumerations for the shard catalog."""

from enum import Enum


class MappingStatus(str, Enum):
    """Mapping status enumeration"""

    ONLINE = "online"
    OFFLINE = "offline"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class KeyType(str, Enum):
    """Width of the tenant key space"""

    INT32 = "int32"
    INT64 = "int64"

    @property
    def width(self) -> int:
        """Encoded width in bytes"""
        return 4 if self is KeyType.INT32 else 8

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [key_type.value for key_type in cls]


class LookupOutcome(str, Enum):
    """Result kind of a mapping lookup"""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ProvisioningState(str, Enum):
    """Tenant registration workflow states"""

    START = "start"
    SHARD_VERIFIED = "shard_verified"
    SHARD_PROVISIONED = "shard_provisioned"
    SEEDED = "seeded"
    REGISTERED = "registered"
    DONE = "done"
    ABORTED = "aborted"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [state.value for state in cls]
