"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without polluting
  the CLI.
- Credentials are read once into `AppSettings`, turned into a
  `CdnCredentials` value and handed to each adapter explicitly.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from cdnctl.core.errors import MissingCredentialsError

logger = logging.getLogger(__name__)

ENV_PREFIX = "CDNCTL_"

CREDENTIAL_FIELDS: tuple[str, ...] = (
    "endpoint",
    "access_key_id",
    "secret_access_key",
    "bucket_name",
    "domain",
    "cloudflare_api_key",
    "cloudflare_zone_id",
)

SECRET_FIELDS: frozenset[str] = frozenset({"secret_access_key", "cloudflare_api_key"})


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "cdnctl"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "cdnctl"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "cdnctl"
    return Path.home() / ".config" / "cdnctl"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def read_user_env_vars(env_path: Path | None = None) -> dict[str, str]:
    env_path = env_path or get_user_env_file()
    if not env_path.exists():
        return {}
    return _parse_env_lines(env_path.read_text(encoding="utf-8"))


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing = read_user_env_vars(env_path)
    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# cdnctl user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    # Holds API secrets.
    if not sys.platform.startswith("win"):
        env_path.chmod(0o600)
    logger.debug("wrote %d settings to %s", len(existing), env_path)
    return env_path


def env_var_name(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


class CdnCredentials(BaseModel):
    """Everything needed to talk to the bucket and the Cloudflare zone."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(..., min_length=1, description="S3-compatible endpoint URL.")
    access_key_id: str = Field(..., min_length=1)
    secret_access_key: str = Field(..., min_length=1, repr=False)
    bucket_name: str = Field(..., min_length=1)
    domain: str = Field(..., min_length=1, description="Public CDN domain, e.g. cdn.example.com.")
    cloudflare_api_key: str = Field(
        ...,
        min_length=1,
        repr=False,
        description="API token with the Purge Cache permission for the zone.",
    )
    cloudflare_zone_id: str = Field(..., min_length=1)


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typed and validated at the edge (env vars, .env files).
    - A single configuration contract for the CLI and the adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    endpoint: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = Field(default=None, repr=False)
    bucket_name: str | None = None
    domain: str | None = None
    cloudflare_api_key: str | None = Field(default=None, repr=False)
    cloudflare_zone_id: str | None = None

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per HTTP request (seconds).",
    )
    user_agent: str = Field(
        default="cdnctl/0.1",
        min_length=1,
        description="User-Agent for Cloudflare API calls.",
    )
    max_concurrency: int = Field(
        default=16,
        ge=1,
        le=256,
        description="Upper bound of in-flight requests per batch stage.",
    )
    cloudflare_api_base: str = Field(
        default="https://api.cloudflare.com/client/v4",
        min_length=8,
    )
    status_api_url: str = Field(
        default="https://www.cloudflarestatus.com/api/v2/incidents/unresolved.json",
        min_length=8,
    )
    log_level: str | None = Field(
        default=None,
        description="Logging level name; overrides the CLI default (WARNING).",
    )

    def missing_credentials(self) -> list[str]:
        return [name for name in CREDENTIAL_FIELDS if not (getattr(self, name) or "").strip()]

    def credentials(self) -> CdnCredentials:
        """Return the credentials or raise `MissingCredentialsError`."""

        missing = self.missing_credentials()
        if missing:
            raise MissingCredentialsError(missing)
        return CdnCredentials(**{name: getattr(self, name).strip() for name in CREDENTIAL_FIELDS})


def mask_secret(value: str | None) -> str:
    if not value:
        return "-"
    if len(value) <= 6:
        return "*" * len(value)
    return value[:3] + "*" * (len(value) - 6) + value[-3:]
