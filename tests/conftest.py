from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from cdnctl.core.config import AppSettings
from cdnctl.core.domain.models import Incident, ObjectMetadata, PurgeResponse
from cdnctl.core.errors import ObjectNotFoundError

DOMAIN = "cdn.example.com"


class FakeStorage:
    """In-memory `ObjectStorage` that records every call."""

    def __init__(
        self,
        objects: dict[str, ObjectMetadata] | None = None,
        *,
        probe_errors: dict[str, Exception] | None = None,
        delete_errors: dict[str, Exception] | None = None,
        put_error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.objects = dict(objects or {})
        self.probe_errors = dict(probe_errors or {})
        self.delete_errors = dict(delete_errors or {})
        self.put_error = put_error
        self.delay = delay
        self.metadata_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.deleted: list[str] = []
        self.uploaded: list[tuple[str, Path, str | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _tick(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    async def get_object_metadata(self, key: str) -> ObjectMetadata:
        self.metadata_calls.append(key)
        await self._tick()
        if key in self.probe_errors:
            raise self.probe_errors[key]
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        return self.objects[key]

    async def delete_object(self, key: str) -> None:
        self.delete_calls.append(key)
        await self._tick()
        if key in self.delete_errors:
            raise self.delete_errors[key]
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        del self.objects[key]
        self.deleted.append(key)

    async def put_object(self, key: str, path: Path, content_type: str | None = None) -> None:
        await self._tick()
        if self.put_error is not None:
            raise self.put_error
        self.objects[key] = ObjectMetadata(size_bytes=path.stat().st_size, content_type=content_type)
        self.uploaded.append((key, path, content_type))

    async def check_bucket(self) -> None:
        return None


class FakePurger:
    def __init__(
        self,
        responses: dict[str, PurgeResponse] | None = None,
        *,
        default: PurgeResponse | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.responses = dict(responses or {})
        self.default = default or PurgeResponse(success=True)
        self.errors = dict(errors or {})
        self.purged: list[str] = []

    async def purge(self, url: str) -> PurgeResponse:
        self.purged.append(url)
        await asyncio.sleep(0)
        if url in self.errors:
            raise self.errors[url]
        return self.responses.get(url, self.default)


class FakeStatusFeed:
    def __init__(self, incidents: list[Incident] | None = None) -> None:
        self.incidents = list(incidents or [])
        self.calls = 0

    async def list_unresolved_incidents(self) -> list[Incident]:
        self.calls += 1
        return list(self.incidents)


class ScriptedPrompt:
    """Answers prompts in order and remembers what was asked."""

    def __init__(self, *answers: bool) -> None:
        self.answers = list(answers)
        self.asked: list[tuple[str, bool]] = []

    def __call__(self, message: str, default: bool) -> bool:
        self.asked.append((message, default))
        if not self.answers:
            raise AssertionError(f"unexpected prompt: {message}")
        return self.answers.pop(0)


def meta(size: int = 1024, content_type: str | None = "image/png") -> ObjectMetadata:
    return ObjectMetadata(size_bytes=size, content_type=content_type)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        endpoint="https://s3.example.com",
        access_key_id="AKIAEXAMPLE",
        secret_access_key="secret-example-key",
        bucket_name="assets",
        domain=DOMAIN,
        cloudflare_api_key="cf-token-example",
        cloudflare_zone_id="zone123",
    )
