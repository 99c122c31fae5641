"""UI components for the CLI (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Tables and panels are shared by delete, info and upload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.text import Text

from cdnctl.core.domain.models import (
    CompletionState,
    Incident,
    RemoteObjectRef,
    Stage,
    StageOutcome,
    classify,
)
from cdnctl.core.services.confirmation import GateSummary
from cdnctl.core.services.reporting import JobOverview


def pretty_bytes(size: int | None) -> str:
    if size is None:
        return "-"
    value = float(size)
    for unit in ("B", "kB", "MB", "GB", "TB"):
        if abs(value) < 1000 or unit == "TB":
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.3g} {unit}"
        value /= 1000
    return f"{size} B"


def local_time(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def print_banner(console: Console) -> None:
    title = Text("cdnctl", style="bold cyan")
    subtitle = Text("Upload • Delete • Inspect • Purge cache", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def print_warning(console: Console, message: str) -> None:
    console.print(f"[bold dark_orange]{message}[/bold dark_orange]")


def print_bye(console: Console) -> None:
    console.print("\n[bold bright_cyan]Bye![/bold bright_cyan]\n")


def build_files_table(refs: Sequence[RemoteObjectRef], *, with_type: bool = False) -> Table:
    table = Table(header_style="cyan")
    table.add_column("URL", style="white", overflow="fold")
    table.add_column("Size", no_wrap=True)
    table.add_column("Date uploaded (Local Timezone)")
    if with_type:
        table.add_column("Content Type", style="dim")
    for ref in refs:
        row = [ref.url, pretty_bytes(ref.size_bytes), local_time(ref.last_modified)]
        if with_type:
            row.append(ref.content_type or "-")
        table.add_row(*row)
    return table


def build_errors_table(rows: Sequence[tuple[str, str, str]]) -> Table:
    table = Table(header_style="cyan")
    table.add_column("URL", overflow="fold")
    table.add_column("Stage", no_wrap=True)
    table.add_column("Error", style="red", overflow="fold")
    for identifier, stage, causes in rows:
        table.add_row(identifier, stage, causes)
    return table


def build_incidents_table(incidents: Sequence[Incident]) -> Table:
    table = Table(header_style="cyan")
    table.add_column("Incident Name")
    table.add_column("Status")
    table.add_column("Impact")
    table.add_column("Since")
    table.add_column("Components Affected")
    for incident in incidents:
        table.add_row(
            incident.name,
            incident.status.capitalize(),
            incident.impact.capitalize(),
            local_time(incident.started_at),
            "\n".join(incident.affected_component_names),
        )
    return table


def render_gate_summary(console: Console, summary: GateSummary) -> None:
    if summary.action == "upload":
        ref = summary.items[0]
        console.print("[black on bright_white]Job overview: the following actions will be performed:[/]\n")
        console.print(f"The file {ref.identifier} will be uploaded:")
        console.print(f"- It is {pretty_bytes(ref.size_bytes)} large.")
        console.print(f"- Once uploaded, its name on the bucket will be: {ref.storage_key}\n")
        return

    if summary.action == "overwrite":
        print_warning(console, "The following file, with the same name, was found on the bucket:")
        console.print(build_files_table(summary.items))
        if summary.note:
            console.print(f"\n[bold dark_orange]{summary.note}[/bold dark_orange]\n")
        return

    console.print(build_files_table(summary.items))
    if summary.skipped:
        print_warning(console, f"{len(summary.skipped)} file(s) were not found and will be skipped:")
        for identifier in summary.skipped:
            console.print(f"  - {identifier}")
    console.print(
        f"\n[bold]{summary.count} file(s) will be {summary.action}d permanently.[/bold]"
    )


def render_overview(overview: JobOverview) -> Text:
    text = Text()
    text.append("\nJob overview:\n", style="bold black on bright_white")
    for line in overview.lines:
        text.append(line.text() + "\n", style="bright_white" if line.ok else "bright_red")
    if overview.skipped:
        text.append("Skipped (not found):\n", style="dark_orange")
        for identifier in overview.skipped:
            text.append(f"  - {identifier}\n", style="dark_orange")
    return text


_STAGE_LABELS: dict[Stage, tuple[str, str]] = {
    Stage.PROBE: ("Fetching file information...", "files"),
    Stage.DELETE: ("Deleting files...", "deletions"),
    Stage.PURGE: ("Purging Cloudflare cache...", "purges"),
    Stage.UPLOAD: ("Uploading file...", "uploads"),
}


class StageSpinner:
    """Spinner per stage, closed with a tri-state verdict."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self._status: Status | None = None

    def started(self, stage: Stage, count: int) -> None:
        label, _ = _STAGE_LABELS[stage]
        self._status = self._console.status(f"[green]{label}[/green] ({count})")
        self._status.start()

    def finished(self, stage: Stage, outcomes: list[StageOutcome]) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        _, noun = _STAGE_LABELS[stage]
        ok = sum(1 for o in outcomes if o.succeeded)
        state = classify(outcomes)
        if state is CompletionState.COMPLETE:
            self._console.print(f"[green]✔[/green] All {noun} succeeded ({ok}/{len(outcomes)})")
        elif state is CompletionState.PARTIAL:
            self._console.print(f"[blue]ℹ[/blue] Partially failed ({ok}/{len(outcomes)} {noun})")
        else:
            self._console.print(f"[red]✖[/red] All {noun} failed (0/{len(outcomes)})")
