from __future__ import annotations

from conftest import ScriptedPrompt

from cdnctl.core.domain.models import RemoteObjectRef
from cdnctl.core.services.confirmation import GateSummary, confirm


def _refs(*keys: str) -> list[RemoteObjectRef]:
    return [
        RemoteObjectRef(identifier=k, storage_key=k, url=f"https://cdn.example.com/{k}")
        for k in keys
    ]


def test_force_skips_every_interaction():
    presented = []
    prompt = ScriptedPrompt()

    assert confirm(GateSummary("delete", _refs("a.png", "b.png")), skip=True, prompt=prompt, present=presented.append)
    assert prompt.asked == []
    assert presented == []


def test_single_item_asks_once_and_defaults_to_no():
    prompt = ScriptedPrompt(True)

    assert confirm(GateSummary("delete", _refs("a.png")), skip=False, prompt=prompt)
    assert prompt.asked == [("Do you want to delete 1 file?", False)]


def test_batch_needs_a_second_confirmation():
    prompt = ScriptedPrompt(True, False)
    summary = GateSummary("delete", _refs("a.png", "b.png"), skipped=["c.png"])
    presented = []

    assert not confirm(summary, skip=False, prompt=prompt, present=presented.append)
    assert len(prompt.asked) == 2
    assert "permanently" in prompt.asked[1][0]
    assert presented == [summary]


def test_first_decline_stops_immediately():
    prompt = ScriptedPrompt(False)

    assert not confirm(GateSummary("delete", _refs("a.png", "b.png")), skip=False, prompt=prompt)
    assert len(prompt.asked) == 1
