"""
Deal Sync

Reconciles Pipedrive deals, with their organization, contact person, notes,
files and training line items, into a local Postgres database.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    DealSyncPipeline,
    DealSyncResult,
    SessionReconciler,
    SessionReconcileResult,
)
from .clients import PipedriveClient, PostgresClient
from .formation_hours import (
    resolve_formation_recommended_hours,
    resolve_formation_recommended_hours_from_list,
)
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    SyncTimer,
)
from .errors import (
    DealSyncError,
    PipedriveError,
    StorageError,
    SyncError,
    ValidationError,
)

__all__ = [
    # Version
    '__version__',
    # Main Pipeline
    'DealSyncPipeline',
    'DealSyncResult',
    'SessionReconciler',
    'SessionReconcileResult',
    # Clients
    'PipedriveClient',
    'PostgresClient',
    # Formation hours
    'resolve_formation_recommended_hours',
    'resolve_formation_recommended_hours_from_list',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'SyncTimer',
    # Errors
    'DealSyncError',
    'PipedriveError',
    'StorageError',
    'SyncError',
    'ValidationError',
]
