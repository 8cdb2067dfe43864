"""Multi-tenant shard catalog: tenant key to shard directory and tenant provisioning."""

__version__ = "1.0.0"
