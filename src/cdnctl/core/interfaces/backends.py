"""Backend contracts (storage, edge cache, status feed).

Why Protocol:
- Structural contract (duck typing) without rigid inheritance.
- boto3/httpx adapters and the in-memory fakes used by tests are
  interchangeable without coupling the Core to either.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from cdnctl.core.domain.models import Incident, ObjectMetadata, PurgeResponse


@runtime_checkable
class ObjectStorage(Protocol):
    """Object storage bound to a single bucket.

    Design rules:
    - Every method is async because it does network I/O.
    - A missing key raises `ObjectNotFoundError`; other failures raise
      `StorageError` (or whatever the SDK raises). Stages turn both into
      per-item outcomes.
    """

    async def get_object_metadata(self, key: str) -> ObjectMetadata:
        ...

    async def delete_object(self, key: str) -> None:
        ...

    async def put_object(self, key: str, path: Path, content_type: str | None = None) -> None:
        ...

    async def check_bucket(self) -> None:
        ...


@runtime_checkable
class CachePurger(Protocol):
    """Edge cache able to drop a single URL."""

    async def purge(self, url: str) -> PurgeResponse:
        ...


@runtime_checkable
class StatusFeed(Protocol):
    """Third-party incident feed (advisory only)."""

    async def list_unresolved_incidents(self) -> list[Incident]:
        ...
