"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database per test for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
import assistant


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
            title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND 100),
            description TEXT,
            completed INTEGER NOT NULL DEFAULT 0,
            priority TEXT NOT NULL DEFAULT 'medium'
                CHECK (priority IN ('high', 'medium', 'low')),
            category TEXT NOT NULL DEFAULT 'personal'
                CHECK (category IN ('work', 'personal', 'health', 'shopping', 'learning')),
            due_date TEXT,
            order_index INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db):
    """
    Create a test client for the FastAPI app.
    init_db is already replaced by test_db, so alembic never runs.
    """
    from fastapi.testclient import TestClient
    import main

    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def fake_model(monkeypatch):
    """
    Replace the model call with canned replies.
    Append strings (returned in order) or exceptions (raised) to `replies`;
    every call's arguments are recorded in `calls`.
    """
    class FakeModel:
        def __init__(self):
            self.replies = []
            self.calls = []

        async def __call__(self, system, messages, temperature, max_tokens):
            self.calls.append({
                "system": system,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            })
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply

    model = FakeModel()
    monkeypatch.setattr(assistant, "complete", model)
    return model
