"""
Pytest configuration and shared fixtures.

Key fixtures:
- fake_storage: in-memory stand-in for PostgresClient with UPSERT semantics
- fake_crm: in-memory stand-in for PipedriveClient serving one deal graph
- deal_graph: raw Pipedrive payloads for a representative deal

No test needs a live Pipedrive account or database.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from deal_sync.errors import PipedriveNotFoundError  # noqa: E402
from deal_sync.mapping.fields import DEFAULT_CUSTOM_FIELDS  # noqa: E402
from deal_sync.models.records import SessionDefaults  # noqa: E402
from deal_sync.models.remote import (  # noqa: E402
    PipedriveDeal,
    PipedriveDealProduct,
    PipedriveFile,
    PipedriveNote,
    PipedriveOrganization,
    PipedrivePerson,
)

DEAL_FIELDS = DEFAULT_CUSTOM_FIELDS.deal
ORG_FIELDS = DEFAULT_CUSTOM_FIELDS.organization


# =============================================================================
# In-memory collaborators
# =============================================================================


class FakeStorage:
    """Keeps rows in dicts keyed by pipedrive_id, like ON CONFLICT upserts."""

    def __init__(self):
        self.tables: dict[str, dict[int, dict]] = {
            'organizations': {},
            'persons': {},
            'deals': {},
            'notes': {},
            'documents': {},
        }
        self.sessions: list[dict] = []
        self._next_id: dict[str, int] = {}
        self.closed = False

    def _upsert(self, table: str, pipedrive_id: int, row: dict) -> int:
        existing = self.tables[table].get(pipedrive_id)
        if existing is not None:
            existing.update(row)
            return existing['id']
        local_id = self._next_id.get(table, 0) + 1
        self._next_id[table] = local_id
        self.tables[table][pipedrive_id] = {'id': local_id, **row}
        return local_id

    def deal_row(self, local_id: int) -> dict | None:
        return next((row for row in self.tables['deals'].values() if row['id'] == local_id), None)

    async def upsert_organization(self, record) -> int:
        return self._upsert('organizations', record.pipedrive_id, record.model_dump())

    async def upsert_person(self, record) -> int:
        return self._upsert('persons', record.pipedrive_id, record.model_dump())

    async def upsert_deal(self, record) -> int:
        row = record.model_dump(exclude={'payload'})
        row.update(record.payload.model_dump())
        return self._upsert('deals', record.payload.pipedrive_id, row)

    async def upsert_note(self, record) -> int:
        return self._upsert('notes', record.pipedrive_id, record.model_dump())

    async def upsert_document(self, record) -> int:
        return self._upsert('documents', record.pipedrive_id, record.model_dump())

    async def count_sessions(self, deal_id: int) -> int:
        return sum(1 for session in self.sessions if session['deal_id'] == deal_id)

    async def get_session_defaults(self, deal_id: int) -> SessionDefaults | None:
        row = self.deal_row(deal_id)
        if row is None:
            return None
        return SessionDefaults(site=row['site'], address=row['direction'])

    async def insert_sessions(self, records) -> int:
        self.sessions.extend(record.model_dump() for record in records)
        return len(records)

    async def close(self) -> None:
        self.closed = True


class FakeCRM:
    """Serves a fixed set of Pipedrive payloads and records every call."""

    def __init__(self, graph: dict):
        self.graph = graph
        self.calls: list[tuple[str, int]] = []

    async def get_deal(self, deal_id: int) -> PipedriveDeal:
        self.calls.append(('get_deal', deal_id))
        deal = self.graph['deals'].get(deal_id)
        if deal is None:
            raise PipedriveNotFoundError(f"Deal {deal_id} not found in Pipedrive")
        return PipedriveDeal.model_validate(deal)

    async def get_organization(self, organization_id: int) -> PipedriveOrganization:
        self.calls.append(('get_organization', organization_id))
        return PipedriveOrganization.model_validate(self.graph['organizations'][organization_id])

    async def get_person(self, person_id: int) -> PipedrivePerson:
        self.calls.append(('get_person', person_id))
        return PipedrivePerson.model_validate(self.graph['persons'][person_id])

    async def get_deal_products(self, deal_id: int) -> list[PipedriveDealProduct]:
        self.calls.append(('get_deal_products', deal_id))
        return [PipedriveDealProduct.model_validate(p) for p in self.graph['products'].get(deal_id, [])]

    async def get_deal_notes(self, deal_id: int) -> list[PipedriveNote]:
        self.calls.append(('get_deal_notes', deal_id))
        return [PipedriveNote.model_validate(n) for n in self.graph['notes'].get(deal_id, [])]

    async def get_deal_files(self, deal_id: int) -> list[PipedriveFile]:
        self.calls.append(('get_deal_files', deal_id))
        return [PipedriveFile.model_validate(f) for f in self.graph['files'].get(deal_id, [])]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def deal_graph() -> dict:
    """Deal 123 for Acme Formación with two training products and one extra."""
    return {
        'deals': {
            123: {
                'id': 123,
                'title': 'Formación básica contra incendios - Acme',
                'org_id': {'value': 45, 'name': 'Acme Formación SL'},
                'person_id': {'value': 67, 'name': 'Lucía Martín'},
                'pipeline_id': 3,
                'status': 'open',
                'stage_id': 12,
                DEAL_FIELDS.hours: '8',
                DEAL_FIELDS.direction: 'Calle Mayor 1, Madrid',
                DEAL_FIELDS.site: 'Madrid',
                DEAL_FIELDS.caes: 'yes',
                DEAL_FIELDS.fundae: None,
                DEAL_FIELDS.hotel_night: [{'value': '0'}],
            },
        },
        'organizations': {
            45: {
                'id': 45,
                'name': 'Acme Formación SL',
                'address': 'Calle Mayor 1, Madrid',
                ORG_FIELDS.cif: 'B12345678',
                ORG_FIELDS.phone: '+34 910 000 000',
            },
        },
        'persons': {
            67: {
                'id': 67,
                'org_id': {'value': 45},
                'first_name': 'Lucía',
                'last_name': 'Martín',
                'email': [
                    {'value': 'lucia@old.es', 'primary': False},
                    {'value': 'lucia@acme.es', 'primary': True},
                ],
                'phone': [{'value': '600000000', 'primary': True}],
            },
        },
        'products': {
            123: [
                {'id': 1, 'quantity': 3, 'product': {'code': 'FORM-INC-01', 'name': 'Formación básica contra incendios'}},
                {'id': 2, 'quantity': '2', 'product': {'code': 'form-pa-02', 'name': 'Primeros auxilios'}},
                {'id': 3, 'quantity': 1, 'product': {'code': 'EXT-HOTEL', 'name': 'Noche de hotel'}},
            ],
        },
        'notes': {
            123: [
                {'id': 901, 'content': 'Cliente confirma fechas', 'add_time': '2024-03-01 09:15:00', 'update_time': None},
                {'id': 902, 'content': None, 'add_time': None, 'update_time': None},
            ],
        },
        'files': {
            123: [
                {
                    'id': 801,
                    'name': 'presupuesto.pdf',
                    'file_url': 'https://files.example.com/801',
                    'url': 'https://app.pipedrive.com/files/801',
                    'add_time': '2024-03-02 10:00:00',
                    'update_time': '2024-03-03 11:00:00',
                },
            ],
        },
    }


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def fake_crm(deal_graph) -> FakeCRM:
    return FakeCRM(deal_graph)
