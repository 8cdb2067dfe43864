import re
from dataclasses import dataclass


@dataclass(frozen=True)
class TenantName:
    """
    Value object for a tenant display name and its physical database name.

    The database name strips all whitespace and lower-cases the display name,
    so "Acme", "acme" and "A c m e" all claim the same database.
    """

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError("Tenant name must be a non-empty string")
        if len(self.value) > 128:
            raise ValueError("Tenant name must not exceed 128 characters")

    @property
    def database_name(self) -> str:
        return normalize_database_name(self.value)


def normalize_database_name(display_name: str) -> str:
    """Derive the physical database name from a tenant display name"""
    return re.sub(r"\s+", "", display_name).lower()
