"""Errors of the Core.

Only process-level conditions are exceptions here. Per-item failures inside a
batch stage (probe, delete, purge) are returned as `StageOutcome` values and
never raised past their stage.
"""

from __future__ import annotations


class CdnError(Exception):
    """Base class for every error raised by cdnctl."""

    exit_code: int = 1


class ConfigurationError(CdnError):
    """Configuration is unusable; nothing can run."""

    exit_code = 69


class MissingCredentialsError(ConfigurationError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        fields = ", ".join(self.missing) if self.missing else "all fields"
        super().__init__(
            f"No credentials found or some are missing ({fields}). "
            "Run `cdnctl configure` first."
        )


class ResolutionEmptyError(CdnError):
    """No identifiers were left after resolving every input source."""

    def __init__(self, what: str = "files") -> None:
        super().__init__(f"You haven't provided any URLs of {what}.")


class UserCancelledError(CdnError):
    """The user declined a confirmation prompt. Benign."""

    exit_code = 0

    def __init__(self, message: str = "Cancelled") -> None:
        super().__init__(message)


class BackendError(CdnError):
    """A remote call failed. `code` is what the per-item outcome records."""

    def __init__(self, message: str, *, code: int | str = "backend") -> None:
        self.code = code
        super().__init__(message)


class StorageError(BackendError):
    def __init__(self, message: str, *, code: int | str = "storage") -> None:
        super().__init__(message, code=code)


class ObjectNotFoundError(StorageError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No object found with key '{key}'", code="NotFound")
