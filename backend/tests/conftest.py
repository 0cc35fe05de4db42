"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database for isolation.
"""
import pytest
import random
import sqlite3
import sys
import os
from datetime import date

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from models import Task


# Saturday. Weekday arithmetic in tests is written against this anchor.
TODAY = date(2026, 10, 17)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def rng():
    return random.Random(7)


@pytest.fixture
def make_task():
    """Build an existing Task without touching the database."""
    counter = {"n": 0}

    def _make(title="Existing", day="2026-10-18", start="10:00", end="11:00", completed=False, **extra):
        counter["n"] += 1
        return Task(
            id=extra.pop("id", f"task-{counter['n']}"),
            title=title,
            date=day,
            start_time=start,
            end_time=end,
            completed=completed,
            created_at="2026-10-17T08:00:00",
            **extra,
        )

    return _make


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
            description TEXT DEFAULT '',
            date TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            priority TEXT DEFAULT 'medium',
            color TEXT NOT NULL,
            completed INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TABLE conversations (
            session_id TEXT PRIMARY KEY,
            messages TEXT DEFAULT '[]',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE dialogue_states (
            session_id TEXT PRIMARY KEY,
            state TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Skips alembic and the assistant service.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "get_generator", lambda: None)

    with TestClient(main.app) as client:
        yield client
