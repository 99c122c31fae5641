"""cdnctl command-line interface (Typer + Rich).

Commands only parse options, print and prompt. Every state transition of a
job is delegated to `cdnctl.core.services`.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn, Sequence

import httpx
import typer
from rich.console import Console

from cdnctl import __version__
from cdnctl.adapters.http_client import build_async_client
from cdnctl.adapters.json_exporter import export_batch_json
from cdnctl.cli import backends, doctor
from cdnctl.cli.ui_components import (
    StageSpinner,
    build_errors_table,
    build_files_table,
    build_incidents_table,
    print_banner,
    print_bye,
    print_warning,
    render_gate_summary,
    render_overview,
)
from cdnctl.core.config import (
    CREDENTIAL_FIELDS,
    SECRET_FIELDS,
    AppSettings,
    env_var_name,
    read_user_env_vars,
    write_user_env_vars,
)
from cdnctl.core.domain.models import CompletionState, Stage, StageOutcome
from cdnctl.core.errors import CdnError, ResolutionEmptyError, UserCancelledError
from cdnctl.core.interfaces.backends import StatusFeed
from cdnctl.core.services.batch_pipeline import (
    BatchResult,
    DeleteRequest,
    PipelineHooks,
    error_from_exception,
    run_delete,
    run_info,
)
from cdnctl.core.services.identifiers import resolve_identifiers
from cdnctl.core.services.reporting import (
    build_result_overview,
    detail_rows,
    needs_escalation,
    relevant_incidents,
)
from cdnctl.core.services.upload import UploadRequest, run_upload

app = typer.Typer(
    help="Manage files on your S3-compatible CDN bucket behind Cloudflare.",
    add_completion=False,
)
app.add_typer(doctor.app, name="doctor")

_console = Console()

logger = logging.getLogger(__name__)

_FILE_HELP = "Provide a .txt file of URLs (one on every line) for batch jobs."

_CONFIGURE_LABELS: dict[str, str] = {
    "endpoint": "CDN Endpoint",
    "access_key_id": "Access Key ID",
    "secret_access_key": "Secret Access Key",
    "bucket_name": "Bucket Name",
    "domain": "Domain (e.g. cdn.example.com)",
    "cloudflare_api_key": "Cloudflare API Token (needs the Purge Cache permission for the zone)",
    "cloudflare_zone_id": "Cloudflare Zone ID",
}


def _prompt(message: str, default: bool) -> bool:
    return typer.confirm(message, default=default)


def _configure_logging(verbose: bool, settings_level: str | None = None) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    if settings_level and not verbose:
        level = logging.getLevelName(settings_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # boto is chatty at DEBUG.
    for noisy in ("botocore", "boto3", "urllib3", "httpcore"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))


def _exit_with(exc: CdnError) -> NoReturn:
    if isinstance(exc, UserCancelledError):
        _console.print(f"[green]{exc}[/green]")
        print_bye(_console)
    else:
        print_warning(_console, str(exc))
    raise typer.Exit(code=exc.exit_code)


def _version_callback(value: bool) -> None:
    if value:
        _console.print(f"cdnctl {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging on stderr."),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Output the current version.",
    ),
) -> None:
    # configure must stay usable when the stored settings are broken.
    if ctx.invoked_subcommand == "configure":
        _configure_logging(verbose)
        return

    try:
        settings = backends.load_settings()
    except CdnError as exc:
        _exit_with(exc)
    ctx.obj = settings
    _configure_logging(verbose, settings.log_level)

    if ctx.invoked_subcommand is None:
        print_banner(_console)
        _console.print(ctx.get_help())
        raise typer.Exit()


def _settings(ctx: typer.Context) -> AppSettings:
    settings = ctx.find_root().obj
    if isinstance(settings, AppSettings):
        return settings
    return backends.load_settings()


def _hooks(spinner: StageSpinner) -> PipelineHooks:
    return PipelineHooks(
        stage_started=spinner.started,
        stage_finished=spinner.finished,
        present=lambda summary: render_gate_summary(_console, summary),
    )


async def _offer_status_check(feed: StatusFeed) -> None:
    if not _prompt("Since there were errors, do you want to check Cloudflare status for incidents?", True):
        return

    try:
        with _console.status("[green]Querying the Cloudflare status API[/green]"):
            incidents = await relevant_incidents(feed)
    except (httpx.HTTPError, ValueError) as exc:
        logger.debug("status query failed", exc_info=True)
        print_warning(_console, f"Could not query the Cloudflare status API: {exc}")
        return

    if incidents:
        _console.print(
            "\n[dark_orange]The following active Cloudflare incidents may be affecting this job:[/dark_orange]"
        )
        _console.print(build_incidents_table(incidents))
    else:
        _console.print(
            "\n[bright_green]It looks like the components required for the CDN are operational.[/bright_green]"
        )
        _console.print("Please check the job again, since the errors are not on Cloudflare's side.\n")


async def _offer_escalation(outcomes: Sequence[StageOutcome], feed: StatusFeed) -> None:
    rows = detail_rows(outcomes)
    if rows and _prompt("There were errors. Show details?", True):
        print_warning(_console, "The following files had errors. The errors are described below:")
        _console.print(build_errors_table(rows))
    await _offer_status_check(feed)


def _export(result: BatchResult, command: str, report: Path | None) -> None:
    if report is None:
        return
    path = export_batch_json(result=result, command=command, output_path=report)
    _console.print(f"[dim]Report written to {path}[/dim]")


def delete(
    ctx: typer.Context,
    identifiers: list[str] | None = typer.Argument(None, help="URLs or keys of the files to delete."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt and delete immediately."),
    purge_cache: bool | None = typer.Option(
        None,
        "--purge-cache/--no-purge-cache",
        "-p",
        help="Purge Cloudflare cache to stop serving the files immediately. Asked when omitted.",
        show_default=False,
    ),
    file: Path | None = typer.Option(None, "--file", help=_FILE_HELP),
    concurrency: int | None = typer.Option(None, "--concurrency", min=1, max=256, help="Max requests in flight."),
    report: Path | None = typer.Option(None, "--report", help="Write a JSON report of the job."),
) -> None:
    """Delete one or more files from the CDN by URL."""

    settings = _settings(ctx)
    try:
        credentials = settings.credentials()
        urls = resolve_identifiers(identifiers or [], file)
        if not urls:
            raise ResolutionEmptyError("files to delete")
    except CdnError as exc:
        _exit_with(exc)

    request = DeleteRequest(
        identifiers=urls,
        force=force,
        purge_cache=purge_cache,
        max_concurrency=concurrency or settings.max_concurrency,
    )
    storage = backends.build_storage(credentials, settings)
    spinner = StageSpinner(_console)

    async def _run() -> BatchResult:
        async with build_async_client(settings) as client:
            purger = backends.build_purger(client, credentials, settings)
            result = await run_delete(
                request=request,
                storage=storage,
                purger=purger,
                domain=credentials.domain,
                prompt=_prompt,
                hooks=_hooks(spinner),
            )
            if not result.probe.found:
                print_warning(_console, "None of the provided files were found on the bucket.")
            _console.print(render_overview(build_result_overview(result)))
            if needs_escalation(result):
                await _offer_escalation(result.failures(), backends.build_status_feed(client, settings))
            return result

    try:
        result = asyncio.run(_run())
    except CdnError as exc:
        _exit_with(exc)

    _export(result, "delete", report)
    print_bye(_console)


def info(
    ctx: typer.Context,
    identifiers: list[str] | None = typer.Argument(None, help="URLs or keys of the files."),
    file: Path | None = typer.Option(None, "--file", help=_FILE_HELP),
    concurrency: int | None = typer.Option(None, "--concurrency", min=1, max=256, help="Max requests in flight."),
    report: Path | None = typer.Option(None, "--report", help="Write a JSON report of the job."),
) -> None:
    """Get information about one or more files."""

    settings = _settings(ctx)
    try:
        credentials = settings.credentials()
        urls = resolve_identifiers(identifiers or [], file)
        if not urls:
            raise ResolutionEmptyError("files to try and fetch")
    except CdnError as exc:
        _exit_with(exc)

    storage = backends.build_storage(credentials, settings)
    spinner = StageSpinner(_console)

    async def _run() -> BatchResult:
        async with build_async_client(settings) as client:
            result = await run_info(
                identifiers=urls,
                storage=storage,
                domain=credentials.domain,
                max_concurrency=concurrency or settings.max_concurrency,
                hooks=_hooks(spinner),
            )
            if result.probe.found:
                _console.print(build_files_table(result.probe.found, with_type=True))
            if result.state(Stage.PROBE) is not CompletionState.COMPLETE:
                await _offer_escalation(result.failures(), backends.build_status_feed(client, settings))
            return result

    try:
        result = asyncio.run(_run())
    except CdnError as exc:
        _exit_with(exc)

    _export(result, "info", report)
    print_bye(_console)


def upload(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Local file to upload."),
    name: str | None = typer.Option(
        None,
        "--name",
        help="Custom path, including name. For example `myfolder/test/file.png`.",
    ),
    random_name: bool = typer.Option(False, "--random", help="Give the file a random name."),
    force: bool = typer.Option(False, "--force", help="Do not ask before uploading."),
) -> None:
    """Upload a file to the CDN."""

    settings = _settings(ctx)
    try:
        credentials = settings.credentials()
    except CdnError as exc:
        _exit_with(exc)

    if not file.is_file():
        print_warning(_console, "File not found. Check the name again.")
        raise typer.Exit(code=1)

    storage = backends.build_storage(credentials, settings)
    spinner = StageSpinner(_console)
    request = UploadRequest(source=file, name=name, random_name=random_name, force=force)

    async def _run() -> bool:
        result = await run_upload(
            request=request,
            storage=storage,
            domain=credentials.domain,
            prompt=_prompt,
            hooks=_hooks(spinner),
        )
        if not result.outcome.succeeded:
            if _prompt("Show error details?", False):
                _console.print(build_errors_table(detail_rows([result.outcome])))
            async with build_async_client(settings) as client:
                await _offer_status_check(backends.build_status_feed(client, settings))
            print_warning(_console, f"The file {file} could not be uploaded.")
            return False

        verb = "Overwrote" if result.overwrote else "Uploaded"
        _console.print("\n[bold black on bright_white]Job overview:[/]")
        _console.print(f"[bright_white]{verb} one file named {result.key}[/bright_white]")
        _console.print(f"The URL of the file is now: {result.url}\n")
        return True

    try:
        ok = asyncio.run(_run())
    except CdnError as exc:
        _exit_with(exc)

    print_bye(_console)
    if not ok:
        raise typer.Exit(code=1)


def cachepurge(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL of the file to purge."),
    force: bool = typer.Option(False, "--force", help="Do not ask before purging."),
) -> None:
    """Purge the Cloudflare cache for a file you've already deleted."""

    settings = _settings(ctx)
    try:
        credentials = settings.credentials()
    except CdnError as exc:
        _exit_with(exc)

    _console.print(f"You are about to manually purge the cache for this file: {url}")
    if not force and not _prompt("Do you actually want to purge cache?", False):
        _exit_with(UserCancelledError("Cancelled. Cache not touched."))

    async def _run() -> StageOutcome:
        async with build_async_client(settings) as client:
            purger = backends.build_purger(client, credentials, settings)
            with _console.status("[green]Purging Cloudflare cache...[/green]"):
                try:
                    response = await purger.purge(url)
                except CdnError as exc:
                    return StageOutcome.failed(url, Stage.PURGE, [error_from_exception(exc)])
            if response.success:
                return StageOutcome.ok(url, Stage.PURGE)
            return StageOutcome.failed(url, Stage.PURGE, response.errors)

    outcome = asyncio.run(_run())
    if outcome.succeeded:
        _console.print(f"[green]✔[/green] Purged {url} from the cache.")
        print_bye(_console)
        return

    _console.print("[red]✖[/red] Cache purge failed.")
    _console.print(build_errors_table(detail_rows([outcome])))
    raise typer.Exit(code=1)


@app.command()
def configure() -> None:
    """Configure your CDN credentials (stored in the user config .env)."""

    existing = read_user_env_vars()
    values: dict[str, str | None] = {}
    for field in CREDENTIAL_FIELDS:
        var = env_var_name(field)
        current = existing.get(var, "")
        secret = field in SECRET_FIELDS
        answer = typer.prompt(
            _CONFIGURE_LABELS[field],
            default=current,
            show_default=not secret,
            hide_input=secret,
        ).strip()
        values[var] = answer

    env_path = write_user_env_vars(values)
    _console.print(f"[green]✔ Credentials saved to:[/green] {env_path}")


app.command("delete")(delete)
app.command("d", hidden=True)(delete)
app.command("info")(info)
app.command("i", hidden=True)(info)
app.command("upload")(upload)
app.command("u", hidden=True)(upload)
app.command("cachepurge")(cachepurge)
app.command("cp", hidden=True)(cachepurge)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
