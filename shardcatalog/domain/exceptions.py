"""
Domain exceptions for the shard catalog.

This module defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns.

Taxonomy:
    - Invalid input (InvalidKeyError): rejected before any remote call
    - Preconditions (ServerNotFound, TenantAlreadyExists, CatalogNotInitialized,
      UnknownShard, MappingNotFound): definitive, never retried automatically
    - Conflicts (MappingConflict, ConcurrentUpdate): definitive, always surfaced
"""

from typing import Any


class CatalogException(Exception):
    """
    Base exception for all shard catalog errors.

    All custom exceptions should inherit from this class to allow
    for consistent error handling and logging.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
        retryable: Whether a blind retry is safe and may succeed
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationException(CatalogException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class InvalidKeyError(CatalogException):
    """Raised when a tenant key is outside the supported key domain."""

    def __init__(self, key: Any, reason: str):
        super().__init__(
            f"Invalid tenant key {key!r}: {reason}",
            "INVALID_KEY",
            {"key": repr(key), "reason": reason},
        )


class CatalogNotInitializedError(CatalogException):
    """Raised when the catalog store lacks the shard map schema or manager row."""

    def __init__(self, store: str, reason: str):
        super().__init__(
            f"Catalog store {store} is not initialized: {reason}",
            "CATALOG_NOT_INITIALIZED",
            {"store": store, "reason": reason},
        )


class ServerNotFoundError(CatalogException):
    """Raised when the target server for a tenant database does not exist."""

    def __init__(self, server_name: str):
        super().__init__(
            f"Server not found: {server_name}",
            "SERVER_NOT_FOUND",
            {"server_name": server_name},
        )


class TenantAlreadyExistsError(CatalogException):
    """Raised when a database for the normalized tenant name is already claimed."""

    def __init__(self, tenant_name: str, database_name: str, owner_key: str | None = None):
        details: dict[str, Any] = {"tenant_name": tenant_name, "database_name": database_name}
        if owner_key:
            details["owner_key"] = owner_key
        super().__init__(
            f"Tenant '{tenant_name}' already exists as database '{database_name}'",
            "TENANT_ALREADY_EXISTS",
            details,
        )


class UnknownShardError(CatalogException):
    """Raised when a mapping references a shard that is not registered."""

    def __init__(self, server_name: str, database_name: str):
        super().__init__(
            f"Shard {server_name}/{database_name} is not registered",
            "UNKNOWN_SHARD",
            {"server_name": server_name, "database_name": database_name},
        )


class MappingNotFoundError(CatalogException):
    """Raised when an update targets a key with no mapping."""

    def __init__(self, raw_key_hex: str):
        super().__init__(
            f"No mapping for key {raw_key_hex}",
            "MAPPING_NOT_FOUND",
            {"raw_key": raw_key_hex},
        )


class MappingConflictError(CatalogException):
    """Raised when a key is already mapped to a different shard."""

    def __init__(self, raw_key_hex: str, existing: str, requested: str):
        super().__init__(
            f"Key {raw_key_hex} is already mapped to {existing}",
            "MAPPING_CONFLICT",
            {"raw_key": raw_key_hex, "existing_shard": existing, "requested_shard": requested},
        )


class ConcurrentUpdateError(CatalogException):
    """Raised when a compare-and-swap on a mapping version loses the race."""

    def __init__(self, raw_key_hex: str, expected_version: int):
        super().__init__(
            f"Mapping {raw_key_hex} was modified concurrently",
            "CONCURRENT_UPDATE",
            {"raw_key": raw_key_hex, "expected_version": expected_version},
        )


class ProvisioningAbortedError(CatalogException):
    """Raised when the physical database could not be created or reused."""

    def __init__(self, database_name: str, reason: str):
        super().__init__(
            f"Provisioning of database '{database_name}' aborted: {reason}",
            "PROVISIONING_ABORTED",
            {"database_name": database_name, "reason": reason},
        )
