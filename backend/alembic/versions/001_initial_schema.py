"""Initial schema — users, stores, ratings.

Creates the three tables, the shared updated_at trigger function and one
trigger per table. One rating per (user, store) is enforced by a unique
constraint so rating submission can use INSERT ... ON CONFLICT.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("users", "stores", "ratings")


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(sa.text("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
    """))

    conn.execute(sa.text("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            name VARCHAR(60) NOT NULL,
            email VARCHAR(255) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            address VARCHAR(400),
            role VARCHAR(20) NOT NULL DEFAULT 'normal_user'
                CONSTRAINT user_role CHECK (role IN ('system_admin', 'normal_user', 'store_owner')),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        )
    """))

    conn.execute(sa.text("""
        CREATE TABLE IF NOT EXISTS stores (
            id SERIAL PRIMARY KEY,
            name VARCHAR(60) NOT NULL,
            email VARCHAR(255) NOT NULL UNIQUE,
            address VARCHAR(400),
            owner_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        )
    """))

    conn.execute(sa.text("""
        CREATE TABLE IF NOT EXISTS ratings (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            store_id INTEGER NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
            rating SMALLINT NOT NULL
                CONSTRAINT ck_ratings_rating_range CHECK (rating BETWEEN 1 AND 5),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_ratings_user_store UNIQUE (user_id, store_id)
        )
    """))

    conn.execute(sa.text("CREATE INDEX IF NOT EXISTS ix_users_email ON users(email)"))
    conn.execute(sa.text("CREATE INDEX IF NOT EXISTS ix_stores_email ON stores(email)"))
    conn.execute(sa.text("CREATE INDEX IF NOT EXISTS ix_stores_owner_id ON stores(owner_id)"))
    conn.execute(sa.text("CREATE INDEX IF NOT EXISTS ix_ratings_user_id ON ratings(user_id)"))
    conn.execute(sa.text("CREATE INDEX IF NOT EXISTS ix_ratings_store_id ON ratings(store_id)"))

    # Trigger for auto-updating updated_at
    for table in TABLES:
        conn.execute(sa.text(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}"))
        conn.execute(sa.text(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        """))


def downgrade() -> None:
    op.drop_table("ratings")
    op.drop_table("stores")
    op.drop_table("users")
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")
