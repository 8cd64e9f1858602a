"""Initial schema - tasks with stakeholder, link and recurrence child tables

Revision ID: 001
Revises: None
Create Date: 2025-07-18

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            notes TEXT DEFAULT '',
            category TEXT NOT NULL DEFAULT 'personal',
            estimated_hours REAL NOT NULL DEFAULT 1,
            start_date TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_date TEXT NOT NULL,
            end_time TEXT NOT NULL,
            priority TEXT NOT NULL DEFAULT 'medium',
            completed INTEGER DEFAULT 0,
            completed_at TEXT,
            is_recurring INTEGER DEFAULT 0,
            parent_task_id TEXT,
            created_at TEXT NOT NULL
        )
    """))

    # Child collections, keyed by task id
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS task_stakeholders (
            id INTEGER PRIMARY KEY,
            task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            stakeholder_name TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS task_links (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            url TEXT NOT NULL,
            title TEXT DEFAULT ''
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS task_recurrence (
            task_id TEXT PRIMARY KEY REFERENCES tasks(id) ON DELETE CASCADE,
            recurrence_type TEXT NOT NULL,
            interval_value INTEGER NOT NULL DEFAULT 1,
            days_of_week TEXT,
            end_date TEXT,
            max_occurrences INTEGER
        )
    """))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS task_recurrence"))
    conn.execute(text("DROP TABLE IF EXISTS task_links"))
    conn.execute(text("DROP TABLE IF EXISTS task_stakeholders"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
