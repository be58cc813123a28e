"""
Payload extractors: Pipedrive entities → local records.

Each extractor reads a fixed set of attributes and custom-field keys from one
remote entity and projects it onto the local row shape. Value-shape handling
is delegated to the resolvers; extractors only decide *which* remote value
feeds *which* column.
"""

from datetime import datetime, timezone
from typing import Any

from ..models.records import (
    DealPayload,
    DocumentRecord,
    NoteRecord,
    OrganizationRecord,
    PersonRecord,
)
from ..models.remote import (
    PipedriveDeal,
    PipedriveFile,
    PipedriveNote,
    PipedriveOrganization,
    PipedrivePerson,
)
from .fields import DEFAULT_CUSTOM_FIELDS, CustomFieldMap
from .resolvers import resolve_boolean, resolve_entity_id, resolve_primary_value, resolve_text


def extract_organization_payload(
    organization: PipedriveOrganization,
    fields: CustomFieldMap = DEFAULT_CUSTOM_FIELDS,
) -> OrganizationRecord:
    """Project a Pipedrive organization onto the organizations row."""
    return OrganizationRecord(
        pipedrive_id=organization.id,
        name=resolve_text(organization.name),
        cif=resolve_text(organization.custom_field(fields.organization.cif)),
        phone=resolve_text(organization.custom_field(fields.organization.phone)),
        address=resolve_text(organization.address),
    )


def extract_person_payload(person: PipedrivePerson, org_id: int | None) -> PersonRecord:
    """
    Project a Pipedrive person onto the persons row.

    Args:
        person: Remote person
        org_id: Local organizations.id the person belongs to, already resolved
    """
    return PersonRecord(
        pipedrive_id=person.id,
        org_id=org_id,
        first_name=resolve_text(person.first_name),
        last_name=resolve_text(person.last_name),
        email=resolve_primary_value(person.email),
        phone=resolve_primary_value(person.phone),
    )


def derive_status(deal: PipedriveDeal) -> str | None:
    """
    The deal's human status, falling back to its stage id.

    Pipedrive may omit ``status`` while always supplying ``stage_id``.
    """
    if isinstance(deal.status, str) and deal.status.strip():
        return deal.status

    return resolve_text(deal.stage_id)


def extract_deal_payload(
    deal: PipedriveDeal,
    fields: CustomFieldMap = DEFAULT_CUSTOM_FIELDS,
) -> DealPayload:
    """Project a Pipedrive deal onto the deals row (remote ids still unresolved)."""
    deal_fields = fields.deal
    return DealPayload(
        pipedrive_id=deal.id,
        org_pipedrive_id=resolve_entity_id(deal.org_id),
        person_pipedrive_id=resolve_entity_id(deal.person_id),
        pipeline_id=resolve_entity_id(deal.pipeline_id),
        title=resolve_text(deal.title),
        hours=resolve_text(deal.custom_field(deal_fields.hours)),
        direction=resolve_text(deal.custom_field(deal_fields.direction)),
        site=resolve_text(deal.custom_field(deal_fields.site)),
        caes=resolve_boolean(deal.custom_field(deal_fields.caes)),
        fundae=resolve_boolean(deal.custom_field(deal_fields.fundae)),
        hotel_night=resolve_boolean(deal.custom_field(deal_fields.hotel_night)),
        status=derive_status(deal),
    )


# =============================================================================
# Notes and documents
# =============================================================================


def parse_remote_timestamp(value: Any) -> datetime | None:
    """
    Parse a Pipedrive timestamp ("2024-03-01 09:15:00", UTC) to an aware datetime.

    Unparseable values count as absent.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _resolve_timestamps(add_time: Any, update_time: Any, now: datetime) -> tuple[datetime, datetime]:
    created_at = parse_remote_timestamp(add_time) or now
    updated_at = parse_remote_timestamp(update_time) or created_at
    return created_at, updated_at


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    return str(value) if value is not None else None


def extract_note_record(note: PipedriveNote, deal_id: int, now: datetime) -> NoteRecord:
    """
    Project a Pipedrive note onto the notes row.

    Created falls back to ``now``; updated falls back to the resolved created time.
    """
    created_at, updated_at = _resolve_timestamps(note.add_time, note.update_time, now)
    return NoteRecord(
        pipedrive_id=note.id,
        deal_id=deal_id,
        comment=_as_text(note.content) or '',
        created_at=created_at,
        updated_at=updated_at,
    )


def resolve_download_url(file: PipedriveFile) -> str | None:
    """Prefer a string ``file_url``, then a string ``url``, then either stringified."""
    candidates = (file.file_url, file.url)
    for candidate in candidates:
        if isinstance(candidate, str):
            return candidate
    for candidate in candidates:
        if candidate is not None:
            return str(candidate)
    return None


def extract_document_record(file: PipedriveFile, deal_id: int, now: datetime) -> DocumentRecord:
    """Project a Pipedrive file onto the documents row, same timestamp rule as notes."""
    created_at, updated_at = _resolve_timestamps(file.add_time, file.update_time, now)
    return DocumentRecord(
        pipedrive_id=file.id,
        deal_id=deal_id,
        name=_as_text(file.name),
        download_url=resolve_download_url(file),
        created_at=created_at,
        updated_at=updated_at,
    )
