"""Batch lifecycle orchestration (probe, confirm, delete, purge).

The `delete` and `info` commands delegate every state transition to these
helpers so that side effects (spinners, tables, prompts) stay in the CLI
layer and the pipeline is reusable by tests and future entry points.

Stages are strictly ordered and each one is a barrier: the probe fully
settles before any delete starts, and deletes fully settle before any purge.
Inside a stage items run concurrently (bounded) and fail independently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from cdnctl.core.domain.models import (
    BatchTally,
    CompletionState,
    RemoteObjectRef,
    Stage,
    StageError,
    StageOutcome,
    classify,
)
from cdnctl.core.errors import BackendError, ResolutionEmptyError, UserCancelledError
from cdnctl.core.interfaces.backends import CachePurger, ObjectStorage
from cdnctl.core.services.confirmation import GateSummary, Prompt, confirm
from cdnctl.core.services.fanout import settle_all
from cdnctl.core.services.identifiers import extract_key, public_url

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 16

PURGE_PROMPT = "Purge the Cloudflare cache so the deleted files stop being served immediately?"


@dataclass
class DeleteRequest:
    """Parameters of one delete batch."""

    identifiers: Sequence[str]
    force: bool = False
    # None means "not specified on the command line": ask, default yes.
    purge_cache: bool | None = None
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (spinners, summaries)."""

    stage_started: Callable[[Stage, int], None] | None = None
    stage_finished: Callable[[Stage, list[StageOutcome]], None] | None = None
    present: Callable[[GateSummary], None] | None = None

    def started(self, stage: Stage, count: int) -> None:
        if self.stage_started:
            self.stage_started(stage, count)

    def finished(self, stage: Stage, outcomes: list[StageOutcome]) -> None:
        if self.stage_finished:
            self.stage_finished(stage, outcomes)


@dataclass
class ProbeResult:
    found: list[RemoteObjectRef]
    not_found: list[str]
    outcomes: list[StageOutcome]


@dataclass
class BatchResult:
    """Output of a batch invocation. Every list is final once returned."""

    identifiers: list[str]
    probe: ProbeResult
    deletions: list[StageOutcome] = field(default_factory=list)
    purges: list[StageOutcome] = field(default_factory=list)
    purge_requested: bool = False

    @property
    def tally(self) -> BatchTally:
        return BatchTally.from_outcomes(
            requested=len(self.identifiers),
            probe=self.probe.outcomes,
            mutate=self.deletions,
            purge=self.purges,
        )

    @property
    def deleted(self) -> list[RemoteObjectRef]:
        return _succeeded_refs(self.probe.found, self.deletions)

    def state(self, stage: Stage) -> CompletionState:
        outcomes = {
            Stage.PROBE: self.probe.outcomes,
            Stage.DELETE: self.deletions,
            Stage.PURGE: self.purges,
        }[stage]
        return classify(outcomes)

    def failures(self) -> list[StageOutcome]:
        return [
            o
            for o in (*self.probe.outcomes, *self.deletions, *self.purges)
            if not o.succeeded
        ]


def error_from_exception(exc: Exception) -> StageError:
    """Map an exception raised inside a stage to a `code: message` value."""

    if isinstance(exc, BackendError):
        return StageError(code=exc.code, message=str(exc))
    return StageError(code=exc.__class__.__name__, message=str(exc) or repr(exc))


def _succeeded_refs(
    refs: Sequence[RemoteObjectRef],
    outcomes: Sequence[StageOutcome],
) -> list[RemoteObjectRef]:
    ok = {o.identifier for o in outcomes if o.succeeded}
    return [ref for ref in refs if ref.identifier in ok]


async def probe(
    identifiers: Sequence[str],
    *,
    storage: ObjectStorage,
    domain: str,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> ProbeResult:
    """Split identifiers into found refs and not-found identifiers.

    Any metadata error counts as "not found"; the cause is kept on the
    probe outcome.
    """

    async def probe_one(identifier: str) -> tuple[RemoteObjectRef | None, StageOutcome]:
        key = extract_key(identifier, domain)
        meta = await storage.get_object_metadata(key)
        ref = RemoteObjectRef(
            identifier=identifier,
            storage_key=key,
            url=public_url(identifier, domain),
            size_bytes=meta.size_bytes,
            last_modified=meta.last_modified,
            content_type=meta.content_type,
        )
        return ref, StageOutcome.ok(identifier, Stage.PROBE)

    def probe_failed(identifier: str, exc: Exception) -> tuple[RemoteObjectRef | None, StageOutcome]:
        logger.info("skipping %s: %s", identifier, exc)
        return None, StageOutcome.failed(identifier, Stage.PROBE, [error_from_exception(exc)])

    settled = await settle_all(
        list(identifiers),
        probe_one,
        on_error=probe_failed,
        max_concurrency=max_concurrency,
    )

    found = [ref for ref, _ in settled if ref is not None]
    not_found = [outcome.identifier for ref, outcome in settled if ref is None]
    return ProbeResult(found=found, not_found=not_found, outcomes=[o for _, o in settled])


async def execute_deletes(
    found: Sequence[RemoteObjectRef],
    *,
    storage: ObjectStorage,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> list[StageOutcome]:
    """Delete every found object; one outcome per ref, no short-circuit."""

    async def delete_one(ref: RemoteObjectRef) -> StageOutcome:
        await storage.delete_object(ref.storage_key)
        logger.info("deleted %s", ref.storage_key)
        return StageOutcome.ok(ref.identifier, Stage.DELETE)

    def delete_failed(ref: RemoteObjectRef, exc: Exception) -> StageOutcome:
        logger.warning("could not delete %s: %s", ref.storage_key, exc)
        return StageOutcome.failed(ref.identifier, Stage.DELETE, [error_from_exception(exc)])

    return await settle_all(
        list(found),
        delete_one,
        on_error=delete_failed,
        max_concurrency=max_concurrency,
    )


async def invalidate(
    mutated: Sequence[RemoteObjectRef],
    *,
    purger: CachePurger,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> list[StageOutcome]:
    """Purge the edge cache for every ref, recording upstream errors."""

    async def purge_one(ref: RemoteObjectRef) -> StageOutcome:
        response = await purger.purge(ref.url)
        if response.success:
            return StageOutcome.ok(ref.identifier, Stage.PURGE)
        errors = response.errors or [
            StageError(code="unknown", message="purge request was not successful")
        ]
        logger.warning("purge failed for %s: %s", ref.url, "; ".join(str(e) for e in errors))
        return StageOutcome.failed(ref.identifier, Stage.PURGE, errors)

    def purge_failed(ref: RemoteObjectRef, exc: Exception) -> StageOutcome:
        return StageOutcome.failed(ref.identifier, Stage.PURGE, [error_from_exception(exc)])

    return await settle_all(
        list(mutated),
        purge_one,
        on_error=purge_failed,
        max_concurrency=max_concurrency,
    )


def _wants_purge(request: DeleteRequest, prompt: Prompt) -> bool:
    if request.purge_cache is not None:
        return request.purge_cache
    if request.force:
        return True
    return prompt(PURGE_PROMPT, True)


async def run_delete(
    *,
    request: DeleteRequest,
    storage: ObjectStorage,
    purger: CachePurger,
    domain: str,
    prompt: Prompt,
    hooks: PipelineHooks | None = None,
) -> BatchResult:
    """Resolve -> probe -> confirm -> delete -> purge.

    Raises `ResolutionEmptyError` when there is nothing to do and
    `UserCancelledError` when the gate is declined (nothing deleted).
    """

    hooks = hooks or PipelineHooks()
    identifiers = list(request.identifiers)
    if not identifiers:
        raise ResolutionEmptyError("files to delete")

    hooks.started(Stage.PROBE, len(identifiers))
    probed = await probe(
        identifiers,
        storage=storage,
        domain=domain,
        max_concurrency=request.max_concurrency,
    )
    hooks.finished(Stage.PROBE, probed.outcomes)

    result = BatchResult(identifiers=identifiers, probe=probed)
    if not probed.found:
        logger.info("none of the %d identifiers exist, nothing to delete", len(identifiers))
        return result

    summary = GateSummary(action="delete", items=probed.found, skipped=probed.not_found)
    if not confirm(summary, skip=request.force, prompt=prompt, present=hooks.present):
        raise UserCancelledError("Cancelled. No files were deleted.")

    result.purge_requested = _wants_purge(request, prompt)

    hooks.started(Stage.DELETE, len(probed.found))
    result.deletions = await execute_deletes(
        probed.found,
        storage=storage,
        max_concurrency=request.max_concurrency,
    )
    hooks.finished(Stage.DELETE, result.deletions)

    deleted = result.deleted
    if result.purge_requested and deleted:
        hooks.started(Stage.PURGE, len(deleted))
        result.purges = await invalidate(
            deleted,
            purger=purger,
            max_concurrency=request.max_concurrency,
        )
        hooks.finished(Stage.PURGE, result.purges)

    return result


async def run_info(
    *,
    identifiers: Sequence[str],
    storage: ObjectStorage,
    domain: str,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    hooks: PipelineHooks | None = None,
) -> BatchResult:
    """Read-only mirror of `run_delete`: probe only."""

    hooks = hooks or PipelineHooks()
    identifiers = list(identifiers)
    if not identifiers:
        raise ResolutionEmptyError("files to fetch")

    hooks.started(Stage.PROBE, len(identifiers))
    probed = await probe(
        identifiers,
        storage=storage,
        domain=domain,
        max_concurrency=max_concurrency,
    )
    hooks.finished(Stage.PROBE, probed.outcomes)
    return BatchResult(identifiers=identifiers, probe=probed)
