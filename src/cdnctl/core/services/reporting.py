"""Outcome reporting.

Builds the job overview from a `BatchTally` and the failure detail rows,
and filters the external incident feed down to what can affect the CDN.
Rendering (rich) happens in `cdnctl.cli.ui_components`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from cdnctl.core.domain.models import BatchTally, Incident, StageOutcome
from cdnctl.core.interfaces.backends import StatusFeed
from cdnctl.core.services.batch_pipeline import BatchResult

# Cloudflare status page components the CDN depends on.
CDN_COMPONENT_IDS: tuple[str, ...] = (
    "5wnz34mhfhrk",
    "fbvx0hxhhdj0",
    "3q1jnbdbn845",
    "hb7g5sq2zz0h",
)


@dataclass(frozen=True)
class OverviewLine:
    label: str
    done: int
    total: int | None = None
    # A stage the user chose not to run is never a failure.
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.skipped or self.total is None or self.done == self.total

    def text(self) -> str:
        if self.total is None:
            return f"{self.label}: {self.done}"
        return f"{self.label}: {self.done}/{self.total}"


@dataclass(frozen=True)
class JobOverview:
    lines: tuple[OverviewLine, ...]
    skipped: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return all(line.ok for line in self.lines)


def build_overview(
    tally: BatchTally,
    *,
    purge_requested: bool = True,
    skipped: Sequence[str] = (),
) -> JobOverview:
    lines = [
        OverviewLine("URLs provided by user", tally.requested),
        OverviewLine("Files found", tally.found, tally.requested),
        OverviewLine("Files deleted successfully", tally.mutated, tally.found),
    ]
    if purge_requested:
        lines.append(OverviewLine("Files purged from cache", tally.purged, tally.mutated))
    else:
        lines.append(
            OverviewLine("Files purged from cache (skipped)", tally.purged, tally.mutated, skipped=True)
        )
    return JobOverview(lines=tuple(lines), skipped=tuple(skipped))


def build_result_overview(result: BatchResult) -> JobOverview:
    return build_overview(
        result.tally,
        purge_requested=result.purge_requested,
        skipped=result.probe.not_found,
    )


def needs_escalation(result: BatchResult) -> bool:
    """True when any stage was not 100% successful."""

    return bool(result.failures())


def detail_rows(outcomes: Sequence[StageOutcome]) -> list[tuple[str, str, str]]:
    """(identifier, stage, causes) for every failed outcome."""

    rows: list[tuple[str, str, str]] = []
    for outcome in outcomes:
        if outcome.succeeded:
            continue
        causes = "\n".join(str(e) for e in outcome.errors) or "-"
        rows.append((outcome.identifier, outcome.stage.value, causes))
    return rows


def filter_incidents(
    incidents: Sequence[Incident],
    component_ids: Sequence[str] = CDN_COMPONENT_IDS,
) -> list[Incident]:
    wanted = set(component_ids)
    return [i for i in incidents if wanted.intersection(i.affected_component_ids)]


async def relevant_incidents(
    feed: StatusFeed,
    component_ids: Sequence[str] = CDN_COMPONENT_IDS,
) -> list[Incident]:
    """Unresolved incidents touching the CDN components. Advisory only."""

    return filter_incidents(await feed.list_unresolved_incidents(), component_ids)
