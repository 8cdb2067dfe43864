"""
Tenant provisioning service for creating and registering tenant shards.

This service encapsulates the complete tenant registration workflow:
- Target server check
- Name-based uniqueness check of the tenant database
- Template deployment of the database
- Tenant profile seeding
- Shard, mapping and metadata registration in the catalog

Every step after provisioning is idempotent, so a failed attempt can be
resubmitted as a whole: a database left behind by an interrupted attempt
is reused rather than created twice.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from shardcatalog.application.catalog import Catalog
from shardcatalog.application.interfaces import (ConnectionTarget, IResourceProvisioner,
                                                 ISqlTransport, ResourceHandle)
from shardcatalog.domain.entities.shard_map import Mapping, Shard, TenantMetadata
from shardcatalog.domain.enums import ProvisioningState
from shardcatalog.domain.exceptions import (MappingConflictError, ProvisioningAbortedError,
                                            ServerNotFoundError, TenantAlreadyExistsError,
                                            ValidationException)
from shardcatalog.domain.value_objects.keys import RawKey
from shardcatalog.domain.value_objects.names import TenantName
from shardcatalog.infrastructure.config.settings import Settings
from shardcatalog.shared.telemetry.tracing import TracedOperation, add_span_attributes, traced

logger = logging.getLogger(__name__)

# Delete-then-insert keeps exactly one profile row however often it runs
SEED_STATEMENTS = (
    "DELETE FROM tenant_profile",
    "INSERT INTO tenant_profile "
    "(tenant_key, tenant_name, tenant_type, admin_email, postal_code, country_code) "
    "VALUES (:tenant_key, :tenant_name, :tenant_type, :admin_email, :postal_code, :country_code)",
)

PROFILE_OWNER_QUERY = "SELECT DISTINCT tenant_key FROM tenant_profile"
NOT_READY_REASON = "database exists but is not ready; remove or repair it before retrying"


@dataclass(frozen=True)
class TenantRegistration:
    """Input of one tenant registration attempt"""

    tenant_name: str
    tenant_key: int
    server_name: str
    tenant_type: str
    postal_code: str | None
    country_code: str
    admin_email: str

    @property
    def database_name(self) -> str:
        return TenantName(self.tenant_name).database_name


@dataclass
class ProvisioningResult:
    """Outcome of a completed registration"""

    state: ProvisioningState
    tenant_key: int
    raw_key: RawKey
    shard: Shard
    mapping: Mapping
    metadata: TenantMetadata
    database: ResourceHandle
    reused_database: bool


@dataclass
class ProvisioningWorkflow:
    """
    State machine of one registration attempt.

    START -> SHARD_VERIFIED -> SHARD_PROVISIONED -> SEEDED -> REGISTERED -> DONE,
    or ABORTED with a reason. Steps run strictly in order.
    """

    registration: TenantRegistration
    catalog: Catalog
    provisioner: IResourceProvisioner
    transport: ISqlTransport
    template_ref: str
    state: ProvisioningState = ProvisioningState.START
    reason: str | None = None
    history: list[ProvisioningState] = field(default_factory=lambda: [ProvisioningState.START])
    database: ResourceHandle | None = None
    reused_database: bool = False

    def __post_init__(self):
        # Rejected before any remote call
        self.raw_key = self.catalog.raw_key(self.registration.tenant_key)
        self.shard = Shard(self.registration.server_name, self.registration.database_name)

    @property
    def _span_attributes(self) -> dict[str, Any]:
        return {
            "tenant.key": self.raw_key.hex,
            "tenant.database": self.shard.location,
        }

    def _transition(self, state: ProvisioningState) -> None:
        logger.info(
            "Tenant %s (%s): %s -> %s",
            self.registration.tenant_name,
            self.raw_key,
            self.state.value,
            state.value,
        )
        self.state = state
        self.history.append(state)

    def _abort(self, reason: str) -> None:
        logger.error(
            "Tenant %s (%s) aborted in state %s: %s",
            self.registration.tenant_name,
            self.raw_key,
            self.state.value,
            reason,
        )
        self.reason = reason
        self.state = ProvisioningState.ABORTED
        self.history.append(ProvisioningState.ABORTED)

    async def run(self) -> ProvisioningResult:
        try:
            await self._verify()
            await self._provision()
            await self._seed()
            mapping, metadata = await self._register()
        except Exception as e:
            self._abort(getattr(e, "message", None) or str(e) or type(e).__name__)
            raise

        self._transition(ProvisioningState.DONE)
        assert self.database is not None
        return ProvisioningResult(
            state=self.state,
            tenant_key=self.registration.tenant_key,
            raw_key=self.raw_key,
            shard=self.shard,
            mapping=mapping,
            metadata=metadata,
            database=self.database,
            reused_database=self.reused_database,
        )

    async def _verify(self) -> None:
        """Check the server and claim the database name for this key"""
        async with TracedOperation("provisioning.verify", self._span_attributes):
            server = self.shard.server_name
            database = self.shard.database_name

            if await self.provisioner.ensure_server_exists(server) is None:
                raise ServerNotFoundError(server)

            # A key mapped elsewhere would conflict at registration; fail before
            # creating a database nothing will ever point at
            existing = await self.catalog.get_mapping(self.registration.tenant_key)
            if existing is not None and existing.shard != self.shard:
                raise MappingConflictError(
                    self.raw_key.hex, existing.shard.location, self.shard.location
                )

            if await self.provisioner.database_exists(server, database):
                owners = [
                    m for m in await self.catalog.get_mappings_for_shard(self.shard)
                    if m.raw_key != self.raw_key
                ]
                if owners:
                    raise TenantAlreadyExistsError(
                        self.registration.tenant_name, database, owners[0].raw_key.hex
                    )
                # Left behind by an earlier attempt; its owner is checked after provisioning
                self.database = await self.provisioner.get_database(server, database)
                self.reused_database = True
                logger.info("Reusing existing database %s for %s", self.shard, self.raw_key)

            self._transition(ProvisioningState.SHARD_VERIFIED)

    async def _provision(self) -> None:
        """
        Create the tenant database, or complete the one left by an earlier attempt.

        Failures here are never retried in-process.
        """
        async with TracedOperation("provisioning.deploy", self._span_attributes):
            if self.database is not None and not self.database.ready:
                raise ProvisioningAbortedError(self.shard.database_name, NOT_READY_REASON)

            parameters = {
                "server_name": self.shard.server_name,
                "database_name": self.shard.database_name,
                "tenant_name": self.registration.tenant_name,
            }
            try:
                if self.database is None:
                    self.database = await self.provisioner.deploy_template(
                        self.template_ref, parameters
                    )
                else:
                    # The earlier attempt may have stopped before the schema was complete
                    self.database = await self.provisioner.apply_template(
                        self.template_ref, parameters
                    )
            except Exception as e:
                raise ProvisioningAbortedError(self.shard.database_name, str(e)) from e

            if not self.database.ready:
                raise ProvisioningAbortedError(self.shard.database_name, NOT_READY_REASON)
            if self.reused_database:
                await self._check_profile_owner()
            self._transition(ProvisioningState.SHARD_PROVISIONED)

    async def _check_profile_owner(self) -> None:
        """Refuse a reused database whose tenant profile was seeded for another key"""
        rows = await self.transport.execute(
            ConnectionTarget(self.shard.server_name, self.shard.database_name),
            PROFILE_OWNER_QUERY,
        )
        others = [
            row["tenant_key"] for row in rows
            if row["tenant_key"] != self.registration.tenant_key
        ]
        if others:
            raise TenantAlreadyExistsError(
                self.registration.tenant_name,
                self.shard.database_name,
                self.catalog.raw_key(others[0]).hex,
            )

    async def _seed(self) -> None:
        """Write the tenant profile row into the new shard"""
        async with TracedOperation("provisioning.seed", self._span_attributes):
            registration = self.registration
            await self.transport.execute(
                ConnectionTarget(self.shard.server_name, self.shard.database_name),
                SEED_STATEMENTS,
                [
                    {},
                    {
                        "tenant_key": registration.tenant_key,
                        "tenant_name": registration.tenant_name,
                        "tenant_type": registration.tenant_type,
                        "admin_email": registration.admin_email,
                        "postal_code": registration.postal_code,
                        "country_code": registration.country_code,
                    },
                ],
            )
            self._transition(ProvisioningState.SEEDED)

    async def _register(self) -> tuple[Mapping, TenantMetadata]:
        """Register shard, mapping and metadata; each sub-step is idempotent"""
        async with TracedOperation("provisioning.register", self._span_attributes):
            registration = self.registration
            await self.catalog.add_shard(self.shard)
            mapping = await self.catalog.add_mapping(registration.tenant_key, self.shard)
            metadata = await self.catalog.metadata.upsert(
                self.raw_key.hex,
                {
                    "tenant_name": registration.tenant_name,
                    "tenant_type": registration.tenant_type,
                    "postal_code": registration.postal_code,
                    "country_code": registration.country_code,
                },
            )
            self._transition(ProvisioningState.REGISTERED)
            return mapping, metadata


class TenantProvisioningService:
    """
    Service for provisioning tenant shards and registering them in the catalog.

    Holds no per-tenant state; concurrent registrations of different tenants
    are independent workflows.
    """

    def __init__(
        self,
        catalog: Catalog,
        provisioner: IResourceProvisioner,
        transport: ISqlTransport,
        settings: Settings,
    ) -> None:
        self.catalog = catalog
        self.provisioner = provisioner
        self.transport = transport
        self.settings = settings

    def new_workflow(
        self,
        tenant_name: str,
        tenant_key: int,
        *,
        server_name: str | None = None,
        tenant_type: str | None = None,
        postal_code: str | None = None,
        country_code: str | None = None,
        admin_email: str | None = None,
    ) -> ProvisioningWorkflow:
        """
        Build the workflow for one registration attempt.

        Raises:
            ValidationException: tenant name or server missing or malformed
            InvalidKeyError: tenant key outside the supported key domain
        """
        try:
            name = TenantName(tenant_name)
        except ValueError as e:
            raise ValidationException(str(e), "tenant_name") from e

        server = server_name or self.settings.default_server
        if not server:
            raise ValidationException("No server given and no default_server configured", "server")

        registration = TenantRegistration(
            tenant_name=name.value,
            tenant_key=tenant_key,
            server_name=server,
            tenant_type=tenant_type or self.settings.default_tenant_type,
            postal_code=postal_code or self.settings.default_postal_code,
            country_code=country_code or self.settings.default_country_code,
            admin_email=admin_email or f"admin@{name.database_name}.com",
        )
        return ProvisioningWorkflow(
            registration=registration,
            catalog=self.catalog,
            provisioner=self.provisioner,
            transport=self.transport,
            template_ref=self.settings.template_ref,
        )

    @traced("tenant.register")
    async def register_tenant(
        self, tenant_name: str, tenant_key: int, **options: Any
    ) -> ProvisioningResult:
        """
        Provision a tenant database and register it in the catalog.

        Args:
            tenant_name: Display name; its normalized form names the database
            tenant_key: Logical tenant key
            **options: server_name, tenant_type, postal_code, country_code, admin_email

        Returns:
            ProvisioningResult in state DONE

        Raises:
            ServerNotFoundError, TenantAlreadyExistsError, MappingConflictError:
                precondition or conflict, nothing was provisioned
            ProvisioningAbortedError: database creation failed
            TransportError: ambiguous failure, safe to resubmit
        """
        workflow = self.new_workflow(tenant_name, tenant_key, **options)
        result = await workflow.run()
        add_span_attributes(
            **{"tenant.key": result.raw_key.hex, "tenant.shard": result.shard.location}
        )
        return result
