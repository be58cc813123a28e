"""
Local record models written to Postgres.

Each record is the flat, already-normalised shape of one row. Optional fields
default to None and are always written (as NULL) so that a value cleared in
Pipedrive is cleared locally as well.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class OrganizationRecord(BaseModel):
    pipedrive_id: int
    name: str | None = None
    cif: str | None = None
    phone: str | None = None
    address: str | None = None


class PersonRecord(BaseModel):
    pipedrive_id: int
    org_id: int | None = Field(default=None, description='Local organizations.id, already resolved')
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None


class DealPayload(BaseModel):
    """
    A Pipedrive deal projected onto local columns.

    Organization and person are still remote ids here; the orchestrator
    resolves them into local ids when it builds the DealRecord.
    """

    pipedrive_id: int
    org_pipedrive_id: int | None = None
    person_pipedrive_id: int | None = None
    pipeline_id: int | None = None
    title: str | None = None
    hours: str | None = None
    direction: str | None = None
    site: str | None = None
    caes: bool = False
    fundae: bool = False
    hotel_night: bool = False
    status: str | None = None


class DealRecord(BaseModel):
    """A deal row ready to upsert: payload + local links + product summaries."""

    payload: DealPayload
    org_id: int | None = None
    person_id: int | None = None
    training: str | None = None
    prod_extra: str | None = None
    training_names: list[str] = Field(default_factory=list)
    extra_names: list[str] = Field(default_factory=list)
    recommended_hours: float | None = None


class NoteRecord(BaseModel):
    pipedrive_id: int
    deal_id: int
    comment: str = ''
    created_at: datetime
    updated_at: datetime


class DocumentRecord(BaseModel):
    pipedrive_id: int
    deal_id: int
    name: str | None = None
    download_url: str | None = None
    created_at: datetime
    updated_at: datetime


class SessionDefaults(BaseModel):
    """Values copied from the parent deal into every newly created session."""

    site: str | None = None
    address: str | None = None


class SessionRecord(BaseModel):
    deal_id: int
    status: str = 'pending'
    start_at: datetime | None = None
    end_at: datetime | None = None
    site: str | None = None
    address: str | None = None
    comment: str = ''
