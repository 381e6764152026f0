"""High-level workflows composing ingest, validation and commit."""
