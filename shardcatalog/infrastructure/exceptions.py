"""
Infrastructure exceptions for the shard catalog.

This module defines infrastructure-level exceptions related to
remote store access. Both are ambiguous-outcome failures: the remote
operation may or may not have committed, so callers retry under the
idempotency contract instead of assuming non-effect.
"""

from shardcatalog.domain.exceptions import CatalogException


class TransportError(CatalogException):
    """Remote store call failed (connection, driver or server error)."""

    retryable = True

    def __init__(self, target: str, operation: str, reason: str):
        super().__init__(
            f"Transport failure during {operation} on {target}: {reason}",
            "TRANSPORT_ERROR",
            {"target": target, "operation": operation, "reason": reason},
        )


class OperationTimeoutError(TransportError):
    """Remote store call exceeded its time bound."""

    def __init__(self, target: str, operation: str, timeout: float):
        CatalogException.__init__(
            self,
            f"Timed out after {timeout:.1f}s during {operation} on {target}",
            "OPERATION_TIMEOUT",
            {"target": target, "operation": operation, "timeout": timeout},
        )


class ResourceNotFoundError(CatalogException):
    """A cloud resource expected by the provisioner does not exist."""

    def __init__(self, resource_type: str, resource_name: str):
        super().__init__(
            f"{resource_type} not found: {resource_name}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_name": resource_name},
        )
