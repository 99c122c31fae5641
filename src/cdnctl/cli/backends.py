"""Construction of settings and backends for the commands.

Commands call these through the module (`backends.build_storage(...)`) so
tests can swap in fakes with a single monkeypatch.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from cdnctl.adapters.cloudflare import CloudflareCachePurger
from cdnctl.adapters.cloudflare_status import CloudflareStatusFeed
from cdnctl.adapters.s3_storage import S3ObjectStorage
from cdnctl.core.config import AppSettings, CdnCredentials
from cdnctl.core.errors import ConfigurationError
from cdnctl.core.interfaces.backends import CachePurger, ObjectStorage, StatusFeed


def load_settings() -> AppSettings:
    try:
        return AppSettings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def build_storage(credentials: CdnCredentials, settings: AppSettings) -> ObjectStorage:
    return S3ObjectStorage.from_credentials(credentials, max_concurrency=settings.max_concurrency)


def build_purger(
    client: httpx.AsyncClient,
    credentials: CdnCredentials,
    settings: AppSettings,
) -> CachePurger:
    return CloudflareCachePurger(
        client,
        zone_id=credentials.cloudflare_zone_id,
        api_key=credentials.cloudflare_api_key,
        api_base=settings.cloudflare_api_base,
    )


def build_status_feed(client: httpx.AsyncClient, settings: AppSettings) -> StatusFeed:
    return CloudflareStatusFeed(client, url=settings.status_api_url)
