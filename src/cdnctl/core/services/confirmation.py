"""Confirmation gate for destructive operations.

The gate only asks; it never touches remote state. Prompting and
presentation are injected so the CLI can use typer/rich while tests pass
plain callables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence

from cdnctl.core.domain.models import RemoteObjectRef

# (message, default) -> answer
Prompt = Callable[[str, bool], bool]


@dataclass(frozen=True)
class GateSummary:
    """What is about to happen, shown before asking."""

    action: str
    items: Sequence[RemoteObjectRef]
    skipped: Sequence[str] = field(default_factory=tuple)
    note: str | None = None

    @property
    def count(self) -> int:
        return len(self.items)


def _noun(count: int) -> str:
    return "file" if count == 1 else "files"


def confirm(
    summary: GateSummary,
    *,
    skip: bool,
    prompt: Prompt,
    present: Callable[[GateSummary], None] | None = None,
) -> bool:
    """Return whether the batch may proceed.

    `skip` (the force flag) proceeds without any interaction. Batches of
    more than one item get a second, reinforcing prompt.
    """

    if skip:
        return True

    if present is not None:
        present(summary)

    count = summary.count
    if not prompt(f"Do you want to {summary.action} {count} {_noun(count)}?", False):
        return False

    if count > 1:
        return prompt(
            f"Are you sure? This will {summary.action} {count} {_noun(count)} permanently.",
            False,
        )
    return True
