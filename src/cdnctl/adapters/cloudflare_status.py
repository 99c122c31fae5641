"""Cloudflare status page (statuspage.io incidents API)."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from cdnctl.core.domain.models import Incident

logger = logging.getLogger(__name__)

UNRESOLVED_INCIDENTS_URL = "https://www.cloudflarestatus.com/api/v2/incidents/unresolved.json"


class _IncidentsPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    incidents: list[Incident] = Field(default_factory=list)


class CloudflareStatusFeed:
    def __init__(self, client: httpx.AsyncClient, *, url: str = UNRESOLVED_INCIDENTS_URL) -> None:
        self._client = client
        self._url = url

    async def list_unresolved_incidents(self) -> list[Incident]:
        response = await self._client.get(self._url)
        response.raise_for_status()
        payload = _IncidentsPayload.model_validate(response.json())
        logger.debug("%d unresolved incidents on the status page", len(payload.incidents))
        return payload.incidents
