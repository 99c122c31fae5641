"""JSON export of a batch result.

Why JSON:
- Lets scripts consume what a batch did (per-item outcomes, tally).
- Keeps a record of the job without re-rendering the terminal tables.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from cdnctl.core.services.batch_pipeline import BatchResult


def batch_payload(result: BatchResult, *, command: str) -> dict[str, object]:
    return {
        "command": command,
        "generated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "identifiers": list(result.identifiers),
        "tally": result.tally.model_dump(mode="json"),
        "found": [ref.model_dump(mode="json") for ref in result.probe.found],
        "not_found": list(result.probe.not_found),
        "purge_requested": result.purge_requested,
        "outcomes": [
            o.model_dump(mode="json")
            for o in (*result.probe.outcomes, *result.deletions, *result.purges)
        ],
    }


def export_batch_json(*, result: BatchResult, command: str, output_path: Path) -> Path:
    """Export a `BatchResult` as UTF-8 JSON with a stable layout."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = batch_payload(result, command=command)
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
