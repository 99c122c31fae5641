"""Cloudflare cache management."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from cdnctl.core.domain.models import PurgeResponse, StageError
from cdnctl.core.errors import BackendError

logger = logging.getLogger(__name__)


class CloudflareCachePurger:
    """Purge single URLs from a Cloudflare zone's cache.

    Upstream failures come back in the JSON body (`success: false` plus
    `errors: [{code, message}]`), also on 4xx replies, so the body is parsed
    regardless of the status code. Only transport errors and unreadable
    bodies raise.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        zone_id: str,
        api_key: str,
        api_base: str = "https://api.cloudflare.com/client/v4",
    ) -> None:
        self._client = client
        self._zone_id = zone_id
        self._api_key = api_key
        self._api_base = api_base.rstrip("/")

    @property
    def endpoint(self) -> str:
        return f"{self._api_base}/zones/{self._zone_id}/purge_cache"

    async def purge(self, url: str) -> PurgeResponse:
        try:
            response = await self._client.post(
                self.endpoint,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={"files": [url]},
            )
        except httpx.HTTPError as exc:
            raise BackendError(str(exc) or exc.__class__.__name__, code="network") from exc

        try:
            parsed = PurgeResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise BackendError(
                f"unexpected reply from Cloudflare (HTTP {response.status_code})",
                code=response.status_code,
            ) from exc

        if not parsed.success and not parsed.errors and response.is_error:
            parsed = PurgeResponse(
                success=False,
                errors=[StageError(code=response.status_code, message=response.reason_phrase)],
            )
        logger.debug("purge %s -> success=%s", url, parsed.success)
        return parsed
