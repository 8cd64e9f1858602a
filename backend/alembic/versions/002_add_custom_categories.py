"""Add custom_categories table and custom_category_id column on tasks

Revision ID: 002
Revises: 001
Create Date: 2025-07-26

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS custom_categories (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            color TEXT NOT NULL DEFAULT '#6B7280',
            created_at TEXT NOT NULL
        )
    """))

    # Check existing columns
    columns = {row[1] for row in conn.execute(text("PRAGMA table_info(tasks)")).fetchall()}

    if "custom_category_id" not in columns:
        conn.execute(text("ALTER TABLE tasks ADD COLUMN custom_category_id TEXT"))


def downgrade() -> None:
    # SQLite doesn't support DROP COLUMN easily; the column stays but is unused
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS custom_categories"))
