"""
Data models for the Deal Sync engine.
"""

from .records import (
    DealPayload,
    DealRecord,
    DocumentRecord,
    NoteRecord,
    OrganizationRecord,
    PersonRecord,
    SessionDefaults,
    SessionRecord,
)
from .remote import (
    PipedriveDeal,
    PipedriveDealProduct,
    PipedriveEntity,
    PipedriveFile,
    PipedriveNote,
    PipedriveOrganization,
    PipedrivePerson,
    PipedriveProduct,
)

__all__ = [
    # Remote (Pipedrive)
    'PipedriveEntity',
    'PipedriveDeal',
    'PipedriveOrganization',
    'PipedrivePerson',
    'PipedriveProduct',
    'PipedriveDealProduct',
    'PipedriveNote',
    'PipedriveFile',
    # Local
    'OrganizationRecord',
    'PersonRecord',
    'DealPayload',
    'DealRecord',
    'NoteRecord',
    'DocumentRecord',
    'SessionDefaults',
    'SessionRecord',
]
