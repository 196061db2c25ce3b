from __future__ import annotations


class AppError(Exception):
    """Base class for errors surfaced to callers of the service layer."""


class ConfigurationError(AppError):
    """Gateway credentials or a verified phone number are missing."""


class UpstreamFetchError(AppError):
    """The record store could not be queried."""


class ValidationError(AppError):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class RecordNotFoundError(AppError):
    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class CorruptRecordError(UpstreamFetchError):
    """A stored row holds a value that cannot be read back."""
