"""Domain layer: shard map entities, key encoding and business rules."""
