"""
Custom exceptions and error handling for the Deal Sync engine.

Provides:
- Typed exception hierarchy for the CRM client, storage and sync stages
- Error context preservation for debugging
- Classification of raw driver errors into the storage hierarchy
"""

from typing import Any


class DealSyncError(Exception):
    """Base exception for all deal sync errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Client Errors
# =============================================================================


class ClientError(DealSyncError):
    """Base class for collaborator (CRM / storage) errors."""

    pass


class PipedriveError(ClientError):
    """Error from Pipedrive API calls."""

    pass


class PipedriveNotFoundError(PipedriveError):
    """Requested Pipedrive entity does not exist (404 or null data)."""

    pass


class PipedriveRequestError(PipedriveError):
    """Pipedrive rejected the request (non-retryable 4xx)."""

    pass


class PipedriveTransportError(PipedriveError):
    """Network failure, timeout or 5xx/429 after retries were exhausted."""

    pass


class StorageError(ClientError):
    """Error from Postgres operations."""

    pass


class StorageConnectionError(StorageError):
    """Failed to connect to Postgres."""

    pass


class StorageConstraintError(StorageError):
    """Constraint violation (unique key, foreign key, not null)."""

    pass


class StorageQueryError(StorageError):
    """Error executing a SQL statement."""

    pass


# =============================================================================
# Sync Errors
# =============================================================================


class SyncError(DealSyncError):
    """Base class for sync orchestration errors."""

    pass


class ValidationError(SyncError):
    """Input validation failed (e.g. non-positive deal id)."""

    pass


class SessionReconcileError(SyncError):
    """Session reconciliation could not read the state it needs."""

    pass


# =============================================================================
# Error Handling Utilities
# =============================================================================


def wrap_storage_error(exc: Exception, context: dict[str, Any] | None = None) -> StorageError:
    """
    Wrap a SQLAlchemy / asyncpg exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed StorageError subclass
    """
    if isinstance(exc, StorageError):
        return exc

    error_str = str(exc).lower()
    ctx = dict(context or {})
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if 'connection' in error_str or 'connect' in error_str:
        return StorageConnectionError(
            f"Postgres connection failed: {exc}",
            context=ctx,
        )
    elif 'constraint' in error_str or 'unique' in error_str or 'violates' in error_str:
        return StorageConstraintError(
            f"Postgres constraint violation: {exc}",
            context=ctx,
        )
    else:
        return StorageQueryError(
            f"Postgres query error: {exc}",
            context=ctx,
        )
