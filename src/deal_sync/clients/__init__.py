"""
External service clients for the Deal Sync engine.
"""

from .pipedrive_client import PipedriveClient
from .postgres_client import PostgresClient

__all__ = [
    'PipedriveClient',
    'PostgresClient',
]
