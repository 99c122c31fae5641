"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from cdnctl.adapters.http_client import build_async_client
from cdnctl.cli import backends
from cdnctl.core.config import CREDENTIAL_FIELDS, SECRET_FIELDS, AppSettings, mask_secret
from cdnctl.core.errors import CdnError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_status_api(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            incidents = await backends.build_status_feed(client, settings).list_unresolved_incidents()
        return True, f"{len(incidents)} unresolved incident(s)"
    except Exception as exc:
        return False, str(exc)


async def _check_bucket(settings: AppSettings) -> tuple[bool, str]:
    try:
        credentials = settings.credentials()
        storage = backends.build_storage(credentials, settings)
        await storage.check_bucket()
        return True, f"Bucket '{credentials.bucket_name}' is accessible"
    except CdnError as exc:
        return False, str(exc)
    except Exception as exc:
        return False, f"{exc.__class__.__name__}: {exc}"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    try:
        settings = backends.load_settings()
    except CdnError as exc:
        _console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=exc.exit_code)

    table = Table(title="cdnctl Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    missing = settings.missing_credentials()
    for field in CREDENTIAL_FIELDS:
        value = getattr(settings, field)
        shown = mask_secret(value) if field in SECRET_FIELDS else (value or "-")
        table.add_row(field, "MISSING" if field in missing else "OK", shown)

    # Connectivity (best-effort)
    ok_bucket, detail_bucket = asyncio.run(_check_bucket(settings))
    table.add_row("Bucket access", "OK" if ok_bucket else "FAIL", detail_bucket)

    ok_status, detail_status = asyncio.run(_check_status_api(settings))
    table.add_row("Cloudflare status API", "OK" if ok_status else "FAIL", detail_status)

    _console.print(table)

    if missing:
        _console.print("\n[yellow]Note:[/yellow] run `cdnctl configure` to fill in the missing credentials.")
