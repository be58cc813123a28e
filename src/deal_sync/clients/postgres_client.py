"""
Postgres storage client for the Deal Sync engine.

Writes synced Pipedrive entities using SQLAlchemy 2.0 async engine + asyncpg
with raw, parameterised SQL.

Tables written:
- organizations (UPSERT on pipedrive_id)
- persons (UPSERT on pipedrive_id)
- deals (UPSERT on pipedrive_id)
- notes (UPSERT on pipedrive_id)
- documents (UPSERT on pipedrive_id)
- sessions (INSERT only, never updated or deleted here)

Every UPSERT overwrites all mapped columns on conflict, writes absent optional
values as NULL and refreshes updated_at. Each statement runs in its own
transaction; there is no cross-entity transaction.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..config import config
from ..errors import wrap_storage_error
from ..models.records import (
    DealRecord,
    DocumentRecord,
    NoteRecord,
    OrganizationRecord,
    PersonRecord,
    SessionDefaults,
    SessionRecord,
)
from ..schema import SCHEMA_STATEMENTS, SYNCED_TABLES

logger = structlog.get_logger(__name__)

_SSL_MODES = {'require', 'verify-ca', 'verify-full'}


def _sanitize_url(url: str) -> tuple[str, bool]:
    """Remove URL query params that asyncpg does not understand.

    Neon URLs include ``channel_binding=require`` and ``sslmode=require``
    which are libpq parameters. asyncpg rejects unknown connection params, so
    they are stripped and SSL is passed through ``connect_args`` instead.

    Returns:
        (sanitized_url, ssl_requested)
    """
    _STRIP_PARAMS = {'channel_binding', 'sslmode'}
    parsed = urlparse(url)
    if not parsed.query:
        return url, False
    params = parse_qs(parsed.query)
    ssl_requested = any(mode in _SSL_MODES for mode in params.get('sslmode', []))
    filtered = {k: v for k, v in params.items() if k not in _STRIP_PARAMS}
    new_query = urlencode(filtered, doseq=True)
    return urlunparse(parsed._replace(query=new_query)), ssl_requested


def _normalize_driver(url: str) -> str:
    """Force the asyncpg driver prefix."""
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+asyncpg://', 1)
    if url.startswith('postgresql://') and '+asyncpg' not in url:
        return url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return url


class PostgresClient:
    """
    Async Postgres client used as the storage handle of a sync.

    Acquire it with ``async with`` so the connection pool is released on every
    exit path::

        async with PostgresClient(url) as storage:
            await DealSyncPipeline(pipedrive, storage).sync_deal(123)
    """

    def __init__(self, database_url: str | None = None, ssl: bool | None = None):
        """
        Initialize with a Postgres connection URL.

        Args:
            database_url: Postgres connection URL (defaults to DATABASE_URL).
                          'postgres://' and 'postgresql://' are converted to
                          use asyncpg.
            ssl: Force TLS on/off (defaults to DATABASE_SSL / Neon detection)
        """
        self._engine: AsyncEngine | None = None
        self._database_url = database_url or config.DATABASE_URL
        self._ssl = ssl

    async def connect(self) -> None:
        """Create the async engine. No-op if already connected."""
        if self._engine is not None:
            return

        if not self._database_url:
            raise ValueError('DATABASE_URL (or POSTGRES_URL/NEON_DATABASE_URL) is required')

        url, ssl_requested = _sanitize_url(self._database_url)
        url = _normalize_driver(url)

        use_ssl = self._ssl if self._ssl is not None else (ssl_requested or config.use_ssl())
        connect_args: dict[str, Any] = {
            # Neon pooler (PgBouncer) doesn't support prepared statements.
            'prepared_statement_cache_size': 0,
        }
        if use_ssl:
            connect_args['ssl'] = 'require'

        self._engine = create_async_engine(
            url,
            pool_size=config.DATABASE_POOL_SIZE,
            max_overflow=5,
            pool_pre_ping=True,
            pool_timeout=30,
            connect_args=connect_args,
        )
        logger.info('postgres_client.connected', ssl=use_ssl)

    async def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info('postgres_client.closed')

    async def __aenter__(self) -> PostgresClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError('PostgresClient not connected, call connect() first')
        return self._engine

    async def verify_connectivity(self) -> bool:
        """Return True if we can execute a simple query."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text('SELECT 1'))
            return True
        except (SQLAlchemyError, OSError):
            logger.exception('postgres_client.connectivity_check_failed')
            return False

    # =========================================================================
    # Execution helpers
    # =========================================================================

    async def _fetch_one(self, sql: str, params: dict[str, Any], operation: str) -> Any:
        """Execute a statement in its own transaction and return the first row."""
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(text(sql), params)
                return result.fetchone()
        except (SQLAlchemyError, OSError) as exc:
            raise wrap_storage_error(exc, context={'operation': operation}) from exc

    async def _upsert_returning_id(self, sql: str, params: dict[str, Any], operation: str) -> int:
        row = await self._fetch_one(sql, params, operation)
        if row is None:
            raise wrap_storage_error(
                RuntimeError(f'{operation} returned no id'),
                context={'operation': operation, 'pipedrive_id': params.get('pipedrive_id')},
            )
        local_id = int(row[0])
        logger.debug(
            'postgres_client.upserted',
            operation=operation,
            pipedrive_id=params.get('pipedrive_id'),
            local_id=local_id,
        )
        return local_id

    # =========================================================================
    # Schema
    # =========================================================================

    async def ensure_schema(self) -> None:
        """Create the synced tables and indexes if they do not exist."""
        try:
            async with self.engine.begin() as conn:
                for statement in SCHEMA_STATEMENTS:
                    await conn.execute(text(statement))
        except (SQLAlchemyError, OSError) as exc:
            raise wrap_storage_error(exc, context={'operation': 'ensure_schema'}) from exc
        logger.info('postgres_client.schema_ready', tables=list(SYNCED_TABLES))

    # =========================================================================
    # Organization / Person / Deal UPSERT
    # =========================================================================

    async def upsert_organization(self, record: OrganizationRecord) -> int:
        """UPSERT an organization on pipedrive_id and return its local id."""
        sql = """
        INSERT INTO organizations (pipedrive_id, name, cif, phone, address, created_at, updated_at)
        VALUES (:pipedrive_id, :name, :cif, :phone, :address, now(), now())
        ON CONFLICT (pipedrive_id) DO UPDATE SET
            name = EXCLUDED.name,
            cif = EXCLUDED.cif,
            phone = EXCLUDED.phone,
            address = EXCLUDED.address,
            updated_at = now()
        RETURNING id
        """
        return await self._upsert_returning_id(sql, record.model_dump(), 'upsert_organization')

    async def upsert_person(self, record: PersonRecord) -> int:
        """UPSERT a person on pipedrive_id and return its local id."""
        sql = """
        INSERT INTO persons (
            pipedrive_id, org_id, first_name, last_name, email, phone, created_at, updated_at
        ) VALUES (
            :pipedrive_id, :org_id, :first_name, :last_name, :email, :phone, now(), now()
        )
        ON CONFLICT (pipedrive_id) DO UPDATE SET
            org_id = EXCLUDED.org_id,
            first_name = EXCLUDED.first_name,
            last_name = EXCLUDED.last_name,
            email = EXCLUDED.email,
            phone = EXCLUDED.phone,
            updated_at = now()
        RETURNING id
        """
        return await self._upsert_returning_id(sql, record.model_dump(), 'upsert_person')

    async def upsert_deal(self, record: DealRecord) -> int:
        """
        UPSERT a deal on pipedrive_id and return its local id.

        Product summaries and name lists are regenerated by the caller on every
        sync and overwritten here in full.
        """
        sql = """
        INSERT INTO deals (
            pipedrive_id, org_id, person_id, pipeline_id, title,
            training, prod_extra, training_names, extra_names,
            hours, recommended_hours, deal_direction, site,
            caes, fundae, hotel_night, status,
            created_at, updated_at
        ) VALUES (
            :pipedrive_id, :org_id, :person_id, :pipeline_id, :title,
            :training, :prod_extra, CAST(:training_names AS jsonb), CAST(:extra_names AS jsonb),
            :hours, :recommended_hours, :deal_direction, :site,
            :caes, :fundae, :hotel_night, :status,
            now(), now()
        )
        ON CONFLICT (pipedrive_id) DO UPDATE SET
            org_id = EXCLUDED.org_id,
            person_id = EXCLUDED.person_id,
            pipeline_id = EXCLUDED.pipeline_id,
            title = EXCLUDED.title,
            training = EXCLUDED.training,
            prod_extra = EXCLUDED.prod_extra,
            training_names = EXCLUDED.training_names,
            extra_names = EXCLUDED.extra_names,
            hours = EXCLUDED.hours,
            recommended_hours = EXCLUDED.recommended_hours,
            deal_direction = EXCLUDED.deal_direction,
            site = EXCLUDED.site,
            caes = EXCLUDED.caes,
            fundae = EXCLUDED.fundae,
            hotel_night = EXCLUDED.hotel_night,
            status = EXCLUDED.status,
            updated_at = now()
        RETURNING id
        """
        payload = record.payload
        params = {
            'pipedrive_id': payload.pipedrive_id,
            'org_id': record.org_id,
            'person_id': record.person_id,
            'pipeline_id': payload.pipeline_id,
            'title': payload.title,
            'training': record.training,
            'prod_extra': record.prod_extra,
            'training_names': json.dumps(record.training_names, ensure_ascii=False),
            'extra_names': json.dumps(record.extra_names, ensure_ascii=False),
            'hours': payload.hours,
            'recommended_hours': record.recommended_hours,
            'deal_direction': payload.direction,
            'site': payload.site,
            'caes': payload.caes,
            'fundae': payload.fundae,
            'hotel_night': payload.hotel_night,
            'status': payload.status,
        }
        return await self._upsert_returning_id(sql, params, 'upsert_deal')

    # =========================================================================
    # Notes / Documents UPSERT
    # =========================================================================

    async def upsert_note(self, record: NoteRecord) -> int:
        """UPSERT a note on pipedrive_id, keeping Pipedrive's own timestamps."""
        sql = """
        INSERT INTO notes (pipedrive_id, deal_id, comment, created_at, updated_at)
        VALUES (:pipedrive_id, :deal_id, :comment, :created_at, :updated_at)
        ON CONFLICT (pipedrive_id) DO UPDATE SET
            deal_id = EXCLUDED.deal_id,
            comment = EXCLUDED.comment,
            created_at = EXCLUDED.created_at,
            updated_at = EXCLUDED.updated_at
        RETURNING id
        """
        return await self._upsert_returning_id(sql, record.model_dump(), 'upsert_note')

    async def upsert_document(self, record: DocumentRecord) -> int:
        """UPSERT a document on pipedrive_id, keeping Pipedrive's own timestamps."""
        sql = """
        INSERT INTO documents (pipedrive_id, deal_id, name, download_url, created_at, updated_at)
        VALUES (:pipedrive_id, :deal_id, :name, :download_url, :created_at, :updated_at)
        ON CONFLICT (pipedrive_id) DO UPDATE SET
            deal_id = EXCLUDED.deal_id,
            name = EXCLUDED.name,
            download_url = EXCLUDED.download_url,
            created_at = EXCLUDED.created_at,
            updated_at = EXCLUDED.updated_at
        RETURNING id
        """
        return await self._upsert_returning_id(sql, record.model_dump(), 'upsert_document')

    # =========================================================================
    # Sessions
    # =========================================================================

    async def count_sessions(self, deal_id: int) -> int:
        """Number of session rows currently attached to a local deal."""
        row = await self._fetch_one(
            'SELECT COUNT(*) FROM sessions WHERE deal_id = :deal_id',
            {'deal_id': deal_id},
            'count_sessions',
        )
        return int(row[0]) if row is not None else 0

    async def get_session_defaults(self, deal_id: int) -> SessionDefaults | None:
        """Site and address to copy into new sessions, or None if the deal row is missing."""
        row = await self._fetch_one(
            'SELECT site, deal_direction FROM deals WHERE id = :deal_id',
            {'deal_id': deal_id},
            'get_session_defaults',
        )
        if row is None:
            return None
        return SessionDefaults(site=row[0], address=row[1])

    async def insert_sessions(self, records: list[SessionRecord]) -> int:
        """
        INSERT new session rows in a single transaction.

        Returns:
            Number of rows inserted
        """
        if not records:
            return 0

        sql = text("""
        INSERT INTO sessions (
            deal_id, status, start_at, end_at, site, address, comment, created_at, updated_at
        ) VALUES (
            :deal_id, :status, :start_at, :end_at, :site, :address, :comment, now(), now()
        )
        """)
        try:
            async with self.engine.begin() as conn:
                await conn.execute(sql, [record.model_dump() for record in records])
        except (SQLAlchemyError, OSError) as exc:
            raise wrap_storage_error(
                exc,
                context={'operation': 'insert_sessions', 'deal_id': records[0].deal_id},
            ) from exc

        logger.info(
            'postgres_client.sessions_inserted',
            local_deal_id=records[0].deal_id,
            count=len(records),
        )
        return len(records)
