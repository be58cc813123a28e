"""
Deal sync orchestrator.

Reconciles one Pipedrive deal into the local database end-to-end:
1. Fetch the remote deal, its organization, person and line items
2. UPSERT Organization → Person → Deal (each write needs the previous local id)
3. UPSERT the deal's notes and documents (each batch written concurrently)
4. Append any missing Sessions
5. Return local ids, counts and stage timings

There is no cross-entity transaction. Every write is idempotent, so a sync
that fails partway is recovered by running it again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..clients.pipedrive_client import PipedriveClient
from ..clients.postgres_client import PostgresClient
from ..errors import ValidationError
from ..formation_hours import resolve_formation_recommended_hours_from_list
from ..logging import SyncTimer, get_logger, logging_context, new_trace_id
from ..mapping.extractors import (
    extract_deal_payload,
    extract_document_record,
    extract_note_record,
    extract_organization_payload,
    extract_person_payload,
)
from ..mapping.fields import CustomFieldMap
from ..mapping.products import ProductClassification, classify_deal_products
from ..models.records import DealPayload, DealRecord
from ..models.remote import PipedriveOrganization, PipedrivePerson
from .sessions import SessionReconciler, SessionReconcileResult

logger = get_logger(__name__)


@dataclass
class DealSyncResult:
    """Result of synchronising one deal."""

    # Identifiers
    pipedrive_deal_id: int
    deal_id: int
    organization_id: int | None = None
    person_id: int | None = None
    trace_id: str | None = None

    # Child rows
    note_ids: list[int] = field(default_factory=list)
    document_ids: list[int] = field(default_factory=list)
    sessions: SessionReconcileResult | None = None

    # Timing
    processing_time_ms: int | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def sessions_created(self) -> int:
        return self.sessions.created if self.sessions else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'pipedrive_deal_id': self.pipedrive_deal_id,
            'deal_id': self.deal_id,
            'organization_id': self.organization_id,
            'person_id': self.person_id,
            'trace_id': self.trace_id,
            'notes_synced': len(self.note_ids),
            'documents_synced': len(self.document_ids),
            'sessions_needed': self.sessions.needed if self.sessions else 0,
            'sessions_existing': self.sessions.existing if self.sessions else 0,
            'sessions_created': self.sessions_created,
            'processing_time_ms': self.processing_time_ms,
            'stage_timings': self.stage_timings,
        }


class DealSyncPipeline:
    """
    Pulls a Pipedrive deal and its related entities into Postgres.

    The storage handle is owned by the caller, which is responsible for
    closing it on every exit path.

    Usage:
        async with PostgresClient() as storage, PipedriveClient() as crm:
            result = await DealSyncPipeline(crm, storage).sync_deal(123)
    """

    def __init__(
        self,
        crm: PipedriveClient,
        storage: PostgresClient,
        fields: CustomFieldMap | None = None,
    ):
        """
        Args:
            crm: Pipedrive client used for every remote read
            storage: Connected Postgres client used for every write
            fields: Custom-field key table (defaults to env overrides / built-ins)
        """
        self.crm = crm
        self.storage = storage
        self.fields = fields or CustomFieldMap.from_env()
        self.sessions = SessionReconciler(storage, crm)

    async def sync_deal(self, deal_id: int) -> DealSyncResult:
        """
        Synchronise one deal and everything hanging off it.

        Args:
            deal_id: Pipedrive deal id (positive integer)

        Returns:
            DealSyncResult with local ids and counts

        Raises:
            ValidationError: If deal_id is not a positive integer
            PipedriveError: If a remote read fails (no retry here)
            StorageError: If a write fails
        """
        if isinstance(deal_id, bool) or not isinstance(deal_id, int) or deal_id <= 0:
            raise ValidationError(
                'Deal id must be a positive integer',
                context={'deal_id': deal_id},
            )

        timer = SyncTimer()
        trace_id = new_trace_id()

        with logging_context(deal_id=deal_id, trace_id=trace_id):
            logger.info('pipeline.started')

            with timer.stage('fetch'):
                deal = await self.crm.get_deal(deal_id)
                payload = extract_deal_payload(deal, self.fields)
                organization, person = await self._fetch_related(payload)
                products = await self.crm.get_deal_products(deal_id)

            classification = classify_deal_products(products)

            with timer.stage('upsert_entities'):
                organization_id = await self._upsert_organization(organization)
                person_id = await self._upsert_person(person, organization_id)
                local_deal_id = await self.storage.upsert_deal(
                    self._build_deal_record(payload, classification, organization_id, person_id)
                )

            logger.info(
                'pipeline.deal_upserted',
                local_deal_id=local_deal_id,
                organization_id=organization_id,
                person_id=person_id,
            )

            result = DealSyncResult(
                pipedrive_deal_id=deal_id,
                deal_id=local_deal_id,
                organization_id=organization_id,
                person_id=person_id,
                trace_id=trace_id,
            )

            with timer.stage('notes'):
                result.note_ids = await self._sync_notes(deal_id, local_deal_id)

            with timer.stage('documents'):
                result.document_ids = await self._sync_documents(deal_id, local_deal_id)

            with timer.stage('sessions'):
                result.sessions = await self.sessions.reconcile(
                    local_deal_id, deal_id, products=products
                )

            result.processing_time_ms = int(timer.total_ms)
            result.stage_timings = timer.stages.copy()

            logger.info(
                'pipeline.completed',
                local_deal_id=local_deal_id,
                notes=len(result.note_ids),
                documents=len(result.document_ids),
                sessions_created=result.sessions_created,
                **timer.summary(),
            )
            return result

    # =========================================================================
    # Fetch
    # =========================================================================

    async def _fetch_related(
        self, payload: DealPayload
    ) -> tuple[PipedriveOrganization | None, PipedrivePerson | None]:
        organization = None
        person = None
        if payload.org_pipedrive_id is not None:
            organization = await self.crm.get_organization(payload.org_pipedrive_id)
        if payload.person_pipedrive_id is not None:
            person = await self.crm.get_person(payload.person_pipedrive_id)
        return organization, person

    # =========================================================================
    # Entity writes
    # =========================================================================

    async def _upsert_organization(self, organization: PipedriveOrganization | None) -> int | None:
        if organization is None:
            return None
        record = extract_organization_payload(organization, self.fields)
        return await self.storage.upsert_organization(record)

    async def _upsert_person(self, person: PipedrivePerson | None, organization_id: int | None) -> int | None:
        if person is None:
            return None
        return await self.storage.upsert_person(extract_person_payload(person, organization_id))

    @staticmethod
    def _build_deal_record(
        payload: DealPayload,
        classification: ProductClassification,
        organization_id: int | None,
        person_id: int | None,
    ) -> DealRecord:
        recommended_hours = resolve_formation_recommended_hours_from_list(
            [*classification.training_names, payload.title]
        )
        return DealRecord(
            payload=payload,
            org_id=organization_id,
            person_id=person_id,
            training=classification.training_summary or None,
            prod_extra=classification.extras_summary or None,
            training_names=list(classification.training_names),
            extra_names=list(classification.extra_names),
            recommended_hours=recommended_hours,
        )

    # =========================================================================
    # Notes / documents
    # =========================================================================

    async def _sync_notes(self, deal_id: int, local_deal_id: int) -> list[int]:
        notes = await self.crm.get_deal_notes(deal_id)
        now = datetime.now(timezone.utc)
        note_ids = await _write_all(
            self.storage.upsert_note(extract_note_record(note, local_deal_id, now)) for note in notes
        )
        logger.debug('pipeline.notes_synced', count=len(note_ids))
        return note_ids

    async def _sync_documents(self, deal_id: int, local_deal_id: int) -> list[int]:
        files = await self.crm.get_deal_files(deal_id)
        now = datetime.now(timezone.utc)
        document_ids = await _write_all(
            self.storage.upsert_document(extract_document_record(file, local_deal_id, now))
            for file in files
        )
        logger.debug('pipeline.documents_synced', count=len(document_ids))
        return document_ids


async def _write_all(writes: Iterable[Awaitable[int]]) -> list[int]:
    """
    Run a batch of writes concurrently and return their ids in input order.

    The first failure cancels the writes still in flight, waits for them to
    unwind, then propagates. Writes that already finished stay written.
    """
    tasks = [asyncio.ensure_future(write) for write in writes]
    try:
        return list(await asyncio.gather(*tasks))
    except Exception:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
