"""
Mapping layer: loosely-typed Pipedrive payloads → well-typed local records.
"""

from .extractors import (
    derive_status,
    extract_deal_payload,
    extract_document_record,
    extract_note_record,
    extract_organization_payload,
    extract_person_payload,
)
from .fields import DEFAULT_CUSTOM_FIELDS, CustomFieldMap, DealFields, OrganizationFields
from .products import (
    ProductClassification,
    build_extras_summary,
    build_training_summary,
    calculate_sessions_needed,
    classify_deal_products,
)
from .resolvers import resolve_boolean, resolve_entity_id, resolve_primary_value, resolve_text

__all__ = [
    # Resolvers
    'resolve_boolean',
    'resolve_primary_value',
    'resolve_entity_id',
    'resolve_text',
    # Field table
    'CustomFieldMap',
    'OrganizationFields',
    'DealFields',
    'DEFAULT_CUSTOM_FIELDS',
    # Extractors
    'extract_organization_payload',
    'extract_person_payload',
    'extract_deal_payload',
    'extract_note_record',
    'extract_document_record',
    'derive_status',
    # Products
    'ProductClassification',
    'classify_deal_products',
    'calculate_sessions_needed',
    'build_training_summary',
    'build_extras_summary',
]
