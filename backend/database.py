import sqlite3
import json
import os
from datetime import datetime
from enum import Enum
from typing import Optional
from contextlib import contextmanager

from models import DialogueState, Task, TaskDraft

DATABASE_PATH = os.getenv("POPSICLES_DB", "popsicles.db")

TASK_COLUMNS = (
    "title", "description", "date", "start_time", "end_time",
    "priority", "color", "completed",
)


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )


def _row_to_task(row) -> Task:
    """Convert a database row (snake_case columns) to a Task model."""
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        date=row["date"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        priority=row["priority"] or "medium",
        color=row["color"],
        completed=bool(row["completed"]),
        created_at=row["created_at"],
    )


def _to_column(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Enum):
        return value.value
    return value


# Task operations
def get_all_tasks() -> list[Task]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks ORDER BY date, start_time, created_at"
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def get_tasks_for_date(target_date: str) -> list[Task]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE date = ? ORDER BY start_time, created_at",
            (target_date,)
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row:
            return _row_to_task(row)
    return None


def create_task_db(task_id: str, draft: TaskDraft) -> Task:
    """Store a draft under task_id. New tasks always start incomplete."""
    created_at = datetime.now().isoformat()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks
               (id, title, description, date, start_time, end_time, priority, color, completed, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?)""",
            (task_id, draft.title, draft.description, draft.date, draft.start_time, draft.end_time,
             _to_column(draft.priority), draft.color, created_at)
        )
        conn.commit()

    return Task(
        id=task_id,
        created_at=created_at,
        **draft.model_dump(exclude={"completed"}),
        completed=False,
    )


def update_task_db(task_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only updates fields that differ from current values.

    Args:
        task_id: Task ID to update
        **updates: snake_case field names and values (title, date, start_time, completed, ...)
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None

        # Filter updates: only include known fields that differ from current values
        changes = {}
        for field, new_value in updates.items():
            if field not in TASK_COLUMNS:
                continue
            new_value = _to_column(new_value)
            if new_value != row[field]:
                changes[field] = new_value

        # Execute UPDATE only if there are actual changes
        if changes:
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)
            conn.commit()

        # Return updated task (re-fetch to get current state)
        updated_row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(updated_row)


def toggle_task_completed_db(task_id: str) -> Optional[Task]:
    task = get_task_db(task_id)
    if task is None:
        return None
    return update_task_db(task_id, completed=not task.completed)


def delete_task_db(task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.commit()
        return cursor.rowcount > 0


# Conversation operations
def get_conversation(session_id: str) -> list[dict]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT messages FROM conversations WHERE session_id = ?", (session_id,)
        ).fetchone()
        if row:
            return json.loads(row["messages"])
        return []


def save_conversation(session_id: str, messages: list[dict]):
    """Save conversation messages for the session, creating the row if needed."""
    now = datetime.now().isoformat()
    messages_json = json.dumps(messages)
    with get_db() as conn:
        conn.execute(
            """INSERT INTO conversations (session_id, messages, created_at, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(session_id) DO UPDATE SET messages = excluded.messages, updated_at = excluded.updated_at""",
            (session_id, messages_json, now, now)
        )
        conn.commit()


# Dialogue state operations
def get_dialogue_state(session_id: str) -> DialogueState:
    with get_db() as conn:
        row = conn.execute(
            "SELECT state FROM dialogue_states WHERE session_id = ?", (session_id,)
        ).fetchone()
        if row:
            return DialogueState.model_validate_json(row["state"])
        return DialogueState(session_id=session_id)


def save_dialogue_state(state: DialogueState):
    now = datetime.now().isoformat()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO dialogue_states (session_id, state, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(session_id) DO UPDATE SET state = excluded.state, updated_at = excluded.updated_at""",
            (state.session_id, state.model_dump_json(), now)
        )
        conn.commit()
