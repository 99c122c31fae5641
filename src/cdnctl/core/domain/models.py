"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation and self-documenting fields (Field) without coupling the
  Core to boto3/httpx.
- `model_dump(mode="json")` gives the JSON report for free.

Note:
- These models describe *what* a batch produced, not *how* it was obtained.
- Everything is created fresh per command and discarded on exit.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable, Sequence

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Stage(str, Enum):
    PROBE = "probe"
    DELETE = "delete"
    PURGE = "purge"
    UPLOAD = "upload"


class CompletionState(str, Enum):
    """Tri-state classification of a stage once every item has settled."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


class ObjectMetadata(BaseModel):
    """Metadata returned by a storage backend for one key."""

    size_bytes: int | None = None
    last_modified: datetime | None = None
    content_type: str | None = None


class RemoteObjectRef(BaseModel):
    """An identifier that was found on the bucket.

    Created by the prober on a successful metadata fetch and never mutated
    afterwards.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(
        ...,
        min_length=1,
        description="Identifier exactly as supplied by the user.",
    )
    storage_key: str = Field(
        ...,
        min_length=1,
        description="Object key on the bucket.",
    )
    url: str = Field(
        ...,
        description="Public URL of the file (used for cache purges).",
    )
    size_bytes: int | None = Field(default=None, ge=0)
    last_modified: datetime | None = None
    content_type: str | None = None


class StageError(BaseModel):
    """A structured failure cause (`code: message`)."""

    model_config = ConfigDict(frozen=True)

    code: int | str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class StageOutcome(BaseModel):
    """Result of one item passing through one stage."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    stage: Stage
    succeeded: bool
    errors: list[StageError] = Field(default_factory=list)

    @property
    def error(self) -> StageError | None:
        return self.errors[0] if self.errors else None

    @classmethod
    def ok(cls, identifier: str, stage: Stage) -> "StageOutcome":
        return cls(identifier=identifier, stage=stage, succeeded=True)

    @classmethod
    def failed(
        cls,
        identifier: str,
        stage: Stage,
        errors: Iterable[StageError],
    ) -> "StageOutcome":
        return cls(identifier=identifier, stage=stage, succeeded=False, errors=list(errors))


def classify(outcomes: Sequence[StageOutcome]) -> CompletionState:
    """All succeeded / partially succeeded / all failed.

    An empty stage counts as complete: nothing was asked of it.
    """

    succeeded = sum(1 for o in outcomes if o.succeeded)
    if succeeded == len(outcomes):
        return CompletionState.COMPLETE
    if succeeded == 0:
        return CompletionState.FAILED
    return CompletionState.PARTIAL


class BatchTally(BaseModel):
    """Aggregate counters, always recomputed from the outcome lists."""

    model_config = ConfigDict(frozen=True)

    requested: int = Field(default=0, ge=0)
    found: int = Field(default=0, ge=0)
    mutated: int = Field(default=0, ge=0)
    purged: int = Field(default=0, ge=0)

    @property
    def not_found(self) -> int:
        return self.requested - self.found

    @classmethod
    def from_outcomes(
        cls,
        *,
        requested: int,
        probe: Sequence[StageOutcome] = (),
        mutate: Sequence[StageOutcome] = (),
        purge: Sequence[StageOutcome] = (),
    ) -> "BatchTally":
        return cls(
            requested=requested,
            found=sum(1 for o in probe if o.succeeded),
            mutated=sum(1 for o in mutate if o.succeeded),
            purged=sum(1 for o in purge if o.succeeded),
        )


class PurgeResponse(BaseModel):
    """Reply of the Cloudflare `purge_cache` endpoint."""

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    errors: list[StageError] = Field(default_factory=list)


class IncidentComponent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    status: str | None = None


class Incident(BaseModel):
    """An unresolved incident from the Cloudflare status page."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    status: str = Field(..., description="investigating, identified, monitoring, ...")
    impact: str = Field(default="none", description="none, minor, major, critical.")
    started_at: datetime | None = None
    shortlink: str | None = None
    components: list[IncidentComponent] = Field(default_factory=list)

    @property
    def affected_component_ids(self) -> list[str]:
        return [c.id for c in self.components]

    @property
    def affected_component_names(self) -> list[str]:
        return [c.name for c in self.components]
