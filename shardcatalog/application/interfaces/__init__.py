"""
Collaborator interfaces (ports) for the application layer.

These protocols define the contracts the provisioning workflow depends on.
Following Dependency Inversion Principle (DIP).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class ResourceHandle:
    """Reference to a provisioned cloud resource (server or database)"""

    name: str
    server_name: str | None = None
    resource_id: str | None = None
    ready: bool = True
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConnectionTarget:
    """A database on a server, addressed by the SQL transport"""

    server_name: str
    database_name: str

    def __str__(self) -> str:
        return f"{self.server_name}/{self.database_name}"


class IResourceProvisioner(Protocol):
    """Protocol for cloud resource provisioning (DIP)"""

    async def ensure_server_exists(self, server_name: str) -> ResourceHandle | None:
        """Return the server handle, or None if the server does not exist"""
        ...

    async def deploy_template(
        self, template_ref: str, parameters: Mapping[str, Any]
    ) -> ResourceHandle:
        """Create a database from a template; parameters carry server and database names"""
        ...

    async def apply_template(
        self, template_ref: str, parameters: Mapping[str, Any]
    ) -> ResourceHandle:
        """Apply a template to an existing database; applying it twice changes nothing"""
        ...

    async def database_exists(self, server_name: str, database_name: str) -> bool:
        """Check whether a database exists on a server"""
        ...

    async def get_database(self, server_name: str, database_name: str) -> ResourceHandle:
        """Get the handle of an existing database"""
        ...


class ISqlTransport(Protocol):
    """Protocol for remote SQL execution against catalog and shard stores (DIP)"""

    async def execute(
        self,
        target: ConnectionTarget,
        statements: str | Sequence[str],
        params: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute parameterized statements in one transaction.

        Returns the rows of the last statement (empty if it returns none).
        """
        ...
