from __future__ import annotations


class DraftStoreError(Exception):
    """Base error for draftstore."""


class ValidationError(DraftStoreError):
    """Malformed or out-of-enumeration input; never retried."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ConflictError(DraftStoreError):
    """Uniqueness violation; the caller must pick a different identifying value."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(DraftStoreError):
    """Reference to a row that does not exist."""


class StorageUnavailableError(DraftStoreError):
    """Transient storage failure; safe to retry with backoff at the calling layer."""


class AuditWriteError(StorageUnavailableError):
    """Audit append failed; never a signal to reverse the audited operation."""


class ImmutableRecordError(DraftStoreError):
    """Attempted change to a write-once row."""
