"""Domain models and entities.

Why:
- Pure, strict data structures (Pydantic v2) live here.
- The domain knows nothing about HTTP, S3 SDKs or the CLI: only batches,
  outcomes and tallies.
"""
