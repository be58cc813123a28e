"""
Sync orchestration: entity upserts and session reconciliation.
"""

from .pipeline import DealSyncPipeline, DealSyncResult
from .sessions import SessionReconciler, SessionReconcileResult, sessions_to_create

__all__ = [
    # Main Pipeline
    'DealSyncPipeline',
    'DealSyncResult',
    # Sessions
    'SessionReconciler',
    'SessionReconcileResult',
    'sessions_to_create',
]
