"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts and headers for the Cloudflare APIs.
- Eases testing: tests pass an `httpx.MockTransport`.
"""

from __future__ import annotations

import httpx

from cdnctl.core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with safe defaults.

    Why a builder:
    - Every Cloudflare call behaves the same (timeouts, User-Agent).
    - One place for future policies (retries, proxies).
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )
