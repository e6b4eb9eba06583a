"""Pure domain layer: entities, codec and verification. No I/O."""
