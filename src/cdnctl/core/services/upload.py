"""Single-file upload flow.

Same stages as a batch, in miniature: plan -> confirm -> existence probe ->
overwrite confirmation -> put. The outcome is returned as a value; only a
declined prompt raises (`UserCancelledError`).
"""

from __future__ import annotations

import logging
import mimetypes
import secrets
import string
from dataclasses import dataclass
from pathlib import Path

from cdnctl.core.domain.models import RemoteObjectRef, Stage, StageOutcome
from cdnctl.core.errors import ObjectNotFoundError, UserCancelledError
from cdnctl.core.interfaces.backends import ObjectStorage
from cdnctl.core.services.batch_pipeline import PipelineHooks, error_from_exception
from cdnctl.core.services.confirmation import GateSummary, Prompt, confirm
from cdnctl.core.services.identifiers import construct_file_url

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits


def generate_random_id(length: int = 10) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def get_filename_extension(filename: str) -> str:
    """Extension without the dot; empty for no extension or dotfiles."""

    base = filename.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    if dot <= 0:
        return ""
    return base[dot + 1:]


def choose_key(source: Path, *, name: str | None = None, random_name: bool = False) -> str:
    if name:
        return name.lstrip("/")
    if random_name:
        ext = get_filename_extension(source.name)
        return generate_random_id(10) + (f".{ext}" if ext else "")
    return source.name


@dataclass
class UploadRequest:
    source: Path
    name: str | None = None
    random_name: bool = False
    force: bool = False


@dataclass
class UploadResult:
    key: str
    url: str
    outcome: StageOutcome
    existing: RemoteObjectRef | None = None

    @property
    def overwrote(self) -> bool:
        return self.existing is not None and self.outcome.succeeded


async def run_upload(
    *,
    request: UploadRequest,
    storage: ObjectStorage,
    domain: str,
    prompt: Prompt,
    hooks: PipelineHooks | None = None,
) -> UploadResult:
    """Upload one local file.

    `--force` skips the initial confirmation but an existing object is never
    overwritten without an explicit yes.
    """

    hooks = hooks or PipelineHooks()
    source = request.source
    if not source.is_file():
        raise FileNotFoundError(str(source))

    key = choose_key(source, name=request.name, random_name=request.random_name)
    url = construct_file_url(key, domain)

    planned = RemoteObjectRef(
        identifier=str(source.resolve()),
        storage_key=key,
        url=url,
        size_bytes=source.stat().st_size,
    )
    plan = GateSummary(action="upload", items=[planned])
    if not confirm(plan, skip=request.force, prompt=prompt, present=hooks.present):
        raise UserCancelledError()

    existing: RemoteObjectRef | None = None
    try:
        meta = await storage.get_object_metadata(key)
    except ObjectNotFoundError:
        meta = None
    except Exception as exc:
        # Same ambiguity as the batch prober: treated as absent.
        logger.warning("could not check whether %s exists: %s", key, exc)
        meta = None

    if meta is not None:
        existing = RemoteObjectRef(
            identifier=url,
            storage_key=key,
            url=url,
            size_bytes=meta.size_bytes,
            last_modified=meta.last_modified,
            content_type=meta.content_type,
        )
        overwrite = GateSummary(
            action="overwrite",
            items=[existing],
            note="Use --name to pick a different name, or --random to generate one.",
        )
        if not confirm(overwrite, skip=False, prompt=prompt, present=hooks.present):
            raise UserCancelledError()

    content_type = mimetypes.guess_type(source.name)[0]
    hooks.started(Stage.UPLOAD, 1)
    try:
        await storage.put_object(key, source, content_type)
        outcome = StageOutcome.ok(key, Stage.UPLOAD)
        logger.info("uploaded %s as %s", source, key)
    except Exception as exc:
        logger.warning("upload of %s failed: %s", source, exc)
        outcome = StageOutcome.failed(key, Stage.UPLOAD, [error_from_exception(exc)])
    hooks.finished(Stage.UPLOAD, [outcome])

    return UploadResult(key=key, url=url, outcome=outcome, existing=existing)
