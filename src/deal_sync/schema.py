"""
Postgres schema for the synced CRM tables.

Statements are idempotent (``IF NOT EXISTS``) and run in order by
``PostgresClient.ensure_schema()`` / ``deal-sync init-db``. Every table keyed
by a Pipedrive id carries a UNIQUE constraint on ``pipedrive_id``, the conflict
target of the sync upserts. Child rows of a deal cascade on delete.
"""

SCHEMA_STATEMENTS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS organizations (
        id SERIAL PRIMARY KEY,
        pipedrive_id BIGINT NOT NULL UNIQUE,
        name VARCHAR(255),
        cif VARCHAR(64),
        phone VARCHAR(64),
        address VARCHAR(255),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS persons (
        id SERIAL PRIMARY KEY,
        pipedrive_id BIGINT NOT NULL UNIQUE,
        org_id INTEGER REFERENCES organizations(id) ON DELETE SET NULL,
        first_name VARCHAR(255),
        last_name VARCHAR(255),
        email VARCHAR(255),
        phone VARCHAR(64),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS deals (
        id SERIAL PRIMARY KEY,
        pipedrive_id BIGINT NOT NULL UNIQUE,
        org_id INTEGER REFERENCES organizations(id) ON DELETE SET NULL,
        person_id INTEGER REFERENCES persons(id) ON DELETE SET NULL,
        pipeline_id INTEGER,
        title VARCHAR(255),
        training TEXT,
        prod_extra TEXT,
        training_names JSONB NOT NULL DEFAULT '[]'::jsonb,
        extra_names JSONB NOT NULL DEFAULT '[]'::jsonb,
        hours VARCHAR(64),
        recommended_hours NUMERIC(6, 2),
        deal_direction VARCHAR(255),
        site VARCHAR(255),
        caes BOOLEAN NOT NULL DEFAULT FALSE,
        fundae BOOLEAN NOT NULL DEFAULT FALSE,
        hotel_night BOOLEAN NOT NULL DEFAULT FALSE,
        status VARCHAR(64),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    'CREATE INDEX IF NOT EXISTS idx_deals_pipeline ON deals (pipeline_id)',
    'CREATE INDEX IF NOT EXISTS idx_deals_updated_at ON deals (updated_at)',
    """
    CREATE TABLE IF NOT EXISTS notes (
        id SERIAL PRIMARY KEY,
        pipedrive_id BIGINT NOT NULL UNIQUE,
        deal_id INTEGER NOT NULL REFERENCES deals(id) ON DELETE CASCADE,
        comment TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    'CREATE INDEX IF NOT EXISTS idx_notes_deal ON notes (deal_id)',
    """
    CREATE TABLE IF NOT EXISTS documents (
        id SERIAL PRIMARY KEY,
        pipedrive_id BIGINT NOT NULL UNIQUE,
        deal_id INTEGER NOT NULL REFERENCES deals(id) ON DELETE CASCADE,
        name VARCHAR(255),
        download_url TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    'CREATE INDEX IF NOT EXISTS idx_documents_deal ON documents (deal_id)',
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id SERIAL PRIMARY KEY,
        deal_id INTEGER NOT NULL REFERENCES deals(id) ON DELETE CASCADE,
        status VARCHAR(64) NOT NULL DEFAULT 'pending',
        start_at TIMESTAMPTZ,
        end_at TIMESTAMPTZ,
        site VARCHAR(255),
        address VARCHAR(255),
        comment VARCHAR(4000) NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    'CREATE INDEX IF NOT EXISTS idx_sessions_deal ON sessions (deal_id)',
]

SYNCED_TABLES: tuple[str, ...] = (
    'organizations',
    'persons',
    'deals',
    'notes',
    'documents',
    'sessions',
)
