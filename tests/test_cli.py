from __future__ import annotations

import json

import pytest
from conftest import FakePurger, FakeStatusFeed, FakeStorage, meta
from rich.console import Console
from typer.testing import CliRunner

from cdnctl import __version__
from cdnctl.cli import backends
from cdnctl.cli import main as cli_main
from cdnctl.core import config
from cdnctl.core.config import CREDENTIAL_FIELDS, AppSettings, env_var_name, read_user_env_vars
from cdnctl.core.domain.models import Incident, IncidentComponent, PurgeResponse, StageError
from cdnctl.core.errors import ConfigurationError

runner = CliRunner()


class Backends:
    """What the commands were wired to during one invocation."""

    def __init__(self) -> None:
        self.storage = FakeStorage()
        self.purger = FakePurger()
        self.feed = FakeStatusFeed()


@pytest.fixture
def wired(monkeypatch, settings):
    fakes = Backends()
    monkeypatch.setattr(backends, "load_settings", lambda: settings)
    monkeypatch.setattr(backends, "build_storage", lambda credentials, s: fakes.storage)
    monkeypatch.setattr(backends, "build_purger", lambda client, credentials, s: fakes.purger)
    monkeypatch.setattr(backends, "build_status_feed", lambda client, s: fakes.feed)
    monkeypatch.setattr(
        cli_main,
        "_console",
        Console(force_terminal=False, no_color=True, highlight=False, width=200),
    )
    return fakes


@pytest.fixture
def url_file(tmp_path):
    def write(*lines: str):
        path = tmp_path / "urls.txt"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(path)

    return write


def test_delete_existing_and_missing_file(wired, url_file):
    wired.storage = FakeStorage({"a.png": meta(size=1024)})
    path = url_file("https://cdn.example.com/a.png", "missing.png")

    # delete? purge? show details? check status?
    result = runner.invoke(cli_main.app, ["delete", "--file", path], input="y\ny\nn\nn\n")

    assert result.exit_code == 0, result.output
    assert "URLs provided by user: 2" in result.output
    assert "Files found: 1/2" in result.output
    assert "Files deleted successfully: 1/1" in result.output
    assert "Files purged from cache: 1/1" in result.output
    assert "missing.png" in result.output
    assert wired.storage.deleted == ["a.png"]
    assert wired.purger.purged == ["https://cdn.example.com/a.png"]
    assert wired.feed.calls == 0


def test_declining_delete_leaves_the_bucket_alone(wired, url_file):
    wired.storage = FakeStorage({"a.png": meta(), "b.png": meta()})

    result = runner.invoke(cli_main.app, ["delete", "--file", url_file("a.png", "b.png")], input="n\n")

    assert result.exit_code == 0
    assert "Cancelled. No files were deleted." in result.output
    assert wired.storage.delete_calls == []
    assert wired.purger.purged == []


def test_forced_delete_writes_a_report(wired, tmp_path):
    wired.storage = FakeStorage({"a.png": meta(), "b.png": meta()})
    report = tmp_path / "out" / "report.json"

    result = runner.invoke(
        cli_main.app,
        ["delete", "a.png", "b.png", "--force", "--no-purge-cache", "--report", str(report)],
        input="",
    )

    assert result.exit_code == 0, result.output
    assert "Files purged from cache (skipped): 0/2" in result.output
    assert wired.purger.purged == []
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["command"] == "delete"
    assert payload["tally"] == {"requested": 2, "found": 2, "mutated": 2, "purged": 0}


@pytest.mark.parametrize(
    ("flags", "purged"),
    [
        (["-p"], ["https://cdn.example.com/a.png"]),
        (["--no-purge-cache"], []),
        (["--no-purge-cache", "--purge-cache"], ["https://cdn.example.com/a.png"]),
        (["--purge-cache", "--no-purge-cache"], []),
    ],
)
def test_purge_flag_is_a_single_toggle(wired, flags, purged):
    wired.storage = FakeStorage({"a.png": meta()})

    result = runner.invoke(cli_main.app, ["delete", "a.png", "--force", *flags], input="")

    assert result.exit_code == 0, result.output
    assert wired.purger.purged == purged


def test_delete_without_any_input_fails(wired):
    result = runner.invoke(cli_main.app, ["delete"], input="")

    assert result.exit_code == 1
    assert "You haven't provided any URLs of files to delete." in result.output


def test_delete_with_missing_credentials_exits_69(wired, monkeypatch):
    for name in CREDENTIAL_FIELDS:
        monkeypatch.delenv(env_var_name(name), raising=False)
    monkeypatch.setattr(backends, "load_settings", lambda: AppSettings(_env_file=None))

    result = runner.invoke(cli_main.app, ["delete", "a.png"], input="")

    assert result.exit_code == 69
    assert "cdnctl configure" in result.output
    assert wired.storage.metadata_calls == []


def test_info_offers_details_and_status_check(wired, url_file):
    wired.storage = FakeStorage({"a.png": meta(size=2048)})
    wired.feed = FakeStatusFeed(
        [
            Incident(
                id="inc1",
                name="Cache purge delays",
                status="investigating",
                impact="minor",
                components=[IncidentComponent(id="hb7g5sq2zz0h", name="Cache purge")],
            )
        ]
    )

    result = runner.invoke(cli_main.app, ["info", "--file", url_file("a.png", "b.png")], input="y\ny\n")

    assert result.exit_code == 0, result.output
    assert "https://cdn.example.com/a.png" in result.output
    assert "2.05 kB" in result.output
    assert "NotFound: No object found with key 'b.png'" in result.output
    assert "Cache purge delays" in result.output
    assert wired.feed.calls == 1
    assert wired.storage.delete_calls == []


def test_upload_with_force(wired, tmp_path):
    source = tmp_path / "photo.png"
    source.write_bytes(b"0" * 64)

    result = runner.invoke(cli_main.app, ["upload", str(source), "--force", "--name", "img/p.png"])

    assert result.exit_code == 0, result.output
    assert "Uploaded one file named img/p.png" in result.output
    assert "https://cdn.example.com/img/p.png" in result.output
    assert wired.storage.uploaded[0][0] == "img/p.png"


def test_upload_missing_local_file(wired, tmp_path):
    result = runner.invoke(cli_main.app, ["upload", str(tmp_path / "nope.png")])

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_cachepurge_success(wired):
    result = runner.invoke(cli_main.app, ["cachepurge", "https://cdn.example.com/a.png", "--force"])

    assert result.exit_code == 0, result.output
    assert "Purged https://cdn.example.com/a.png from the cache." in result.output
    assert wired.purger.purged == ["https://cdn.example.com/a.png"]


def test_cachepurge_failure_shows_the_upstream_error(wired):
    wired.purger = FakePurger(
        default=PurgeResponse(success=False, errors=[StageError(code=7003, message="rate limited")])
    )

    result = runner.invoke(cli_main.app, ["cp", "https://cdn.example.com/a.png", "--force"])

    assert result.exit_code == 1
    assert "7003: rate limited" in result.output


def test_cachepurge_can_be_declined(wired):
    result = runner.invoke(cli_main.app, ["cachepurge", "https://cdn.example.com/a.png"], input="n\n")

    assert result.exit_code == 0
    assert "Cache not touched" in result.output
    assert wired.purger.purged == []


def test_configure_writes_user_env_file(wired, monkeypatch, tmp_path):
    monkeypatch.setattr(config, "get_user_config_dir", lambda: tmp_path / "cdnctl")
    answers = [
        "https://s3.example.com",
        "AKIAEXAMPLE",
        "secret-example-key",
        "assets",
        "cdn.example.com",
        "cf-token-example",
        "zone123",
    ]

    result = runner.invoke(cli_main.app, ["configure"], input="\n".join(answers) + "\n")

    assert result.exit_code == 0, result.output
    assert "Credentials saved to:" in result.output
    stored = read_user_env_vars(tmp_path / "cdnctl" / ".env")
    assert stored["CDNCTL_BUCKET_NAME"] == "assets"
    assert stored["CDNCTL_CLOUDFLARE_API_KEY"] == "cf-token-example"
    assert len(stored) == len(CREDENTIAL_FIELDS)


def test_no_command_prints_banner_and_help(wired):
    result = runner.invoke(cli_main.app, [])

    assert result.exit_code == 0
    assert "cdnctl" in result.output
    assert "delete" in result.output


def test_version(wired):
    result = runner.invoke(cli_main.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_doctor_reports_configuration_and_connectivity(wired, monkeypatch):
    from cdnctl.cli import doctor

    monkeypatch.setattr(
        doctor,
        "_console",
        Console(force_terminal=False, no_color=True, highlight=False, width=200),
    )

    result = runner.invoke(cli_main.app, ["doctor", "run"])

    assert result.exit_code == 0, result.output
    assert "Bucket 'assets' is accessible" in result.output
    assert "0 unresolved incident(s)" in result.output
    assert "secret-example-key" not in result.output
    assert wired.feed.calls == 1


def test_configure_works_when_stored_settings_are_invalid(wired, monkeypatch, tmp_path):
    def broken_settings():
        raise ConfigurationError("Invalid configuration: max_concurrency")

    monkeypatch.setattr(backends, "load_settings", broken_settings)
    monkeypatch.setattr(config, "get_user_config_dir", lambda: tmp_path / "cdnctl")

    result = runner.invoke(cli_main.app, ["configure"], input="\n".join(["x"] * len(CREDENTIAL_FIELDS)) + "\n")

    assert result.exit_code == 0, result.output
    assert read_user_env_vars(tmp_path / "cdnctl" / ".env")["CDNCTL_DOMAIN"] == "x"
    assert runner.invoke(cli_main.app, ["delete", "a.png"], input="").exit_code == 69
