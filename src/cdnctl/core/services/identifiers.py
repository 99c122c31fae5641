"""Identifier resolution.

Turns the heterogeneous inputs of a batch command (inline arguments, a
`--file` with one URL per line, piped stdin) into one deduplicated list, and
maps identifiers to bucket keys and public URLs.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence, TextIO

logger = logging.getLogger(__name__)


def _clean_lines(lines: Iterable[str]) -> list[str]:
    out: list[str] = []
    for raw in lines:
        line = raw.strip()
        if line:
            out.append(line)
    return out


def dedupe(values: Iterable[str]) -> list[str]:
    """Exact-match dedupe keeping the first occurrence."""

    return list(dict.fromkeys(values))


def resolve_identifiers(
    inline: Sequence[str],
    file_path: Path | None = None,
    *,
    stdin: TextIO | None = None,
) -> list[str]:
    """Collect identifiers from every input source.

    Precedence:
    - An existing `file_path` is used exclusively; inline arguments and stdin
      are ignored.
    - Otherwise inline arguments, followed by the lines of stdin when it is
      not an interactive terminal.

    An empty result is valid; the caller decides how to report it.
    """

    if file_path is not None:
        if file_path.is_file():
            content = file_path.read_text(encoding="utf-8")
            identifiers = dedupe(_clean_lines(content.split("\n")))
            logger.debug("read %d identifiers from %s", len(identifiers), file_path)
            return identifiers
        logger.warning("file %s does not exist, falling back to arguments/stdin", file_path)

    collected = list(inline)

    stream = stdin if stdin is not None else sys.stdin
    if stream is not None and not stream.isatty():
        piped = _clean_lines(stream)
        logger.debug("read %d identifiers from stdin", len(piped))
        collected.extend(piped)

    return dedupe(collected)


def _strip_query(value: str) -> str:
    for sep in ("?", "#"):
        idx = value.find(sep)
        if idx != -1:
            value = value[:idx]
    return value


def extract_key(identifier: str, domain: str) -> str:
    """Bucket key for an identifier.

    `https://cdn.example.com/img/a.png` -> `img/a.png` when the domain is
    `cdn.example.com`; bare keys are returned without a leading slash.
    """

    marker = domain.rstrip("/") + "/"
    idx = identifier.find(marker)
    if idx != -1:
        return _strip_query(identifier[idx + len(marker):])
    return identifier.lstrip("/")


def construct_file_url(key: str, domain: str) -> str:
    return f"https://{domain.rstrip('/')}/{key.lstrip('/')}"


def public_url(identifier: str, domain: str) -> str:
    """URL to purge for an identifier: itself when it is a URL of the CDN."""

    if identifier.startswith(("http://", "https://")) and domain in identifier:
        return identifier
    return construct_file_url(extract_key(identifier, domain), domain)
