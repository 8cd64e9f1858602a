"""
Shared pytest fixtures for backend tests.
Uses a temporary SQLite database per test and a scripted language model.
"""
import json
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database


class FakeModel:
    """Language model stand-in that replays queued replies.

    A queued dict is returned as JSON, a string as-is, and an exception is raised.
    """

    def __init__(self):
        self.replies = []
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)

    async def complete(self, prompt, *, system=None, max_tokens, temperature):
        self.calls.append({
            "prompt": prompt,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            notes TEXT DEFAULT '',
            category TEXT NOT NULL DEFAULT 'personal',
            custom_category_id TEXT,
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
        );

        CREATE TABLE task_stakeholders (
            id INTEGER PRIMARY KEY,
            task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            stakeholder_name TEXT NOT NULL
        );

        CREATE TABLE task_links (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            url TEXT NOT NULL,
            title TEXT DEFAULT ''
        );

        CREATE TABLE task_recurrence (
            task_id TEXT PRIMARY KEY REFERENCES tasks(id) ON DELETE CASCADE,
            recurrence_type TEXT NOT NULL,
            interval_value INTEGER NOT NULL DEFAULT 1,
            days_of_week TEXT,
            end_date TEXT,
            max_occurrences INTEGER
        );

        CREATE TABLE custom_categories (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            color TEXT NOT NULL DEFAULT '#6B7280',
            created_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db, fake_model, monkeypatch):
    """
    Create a test client for the FastAPI app.
    The language model is replaced by the scripted fake_model.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(database, "init_db", lambda: None)
    main.app.dependency_overrides[main.get_language_model] = lambda: fake_model

    with TestClient(main.app) as client:
        yield client

    main.app.dependency_overrides.clear()
