import asyncio
import json
import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from errors import UpstreamError
from models import CustomCategory, Recurrence, Task, TaskLink
from recurrence import generate_occurrences

DATABASE_PATH = os.getenv("DATABASE_PATH", "simplytasked.db")

# Columns on the tasks table that update_task_db may change directly.
# stakeholders and links live in child tables and are replaced wholesale.
TASK_COLUMNS = (
    "title", "notes", "category", "custom_category_id", "estimated_hours",
    "start_date", "start_time", "end_date", "end_time", "priority", "completed",
)

FILTER_TYPES = ("all", "today", "upcoming", "overdue", "completed")


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
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
        env={**os.environ, "DATABASE_PATH": os.path.abspath(DATABASE_PATH)},
        check=True
    )


def _row_to_task(conn, row) -> Task:
    """Convert a tasks row plus its child rows to a Task model."""
    task_id = row["id"]
    stakeholders = [
        r["stakeholder_name"]
        for r in conn.execute(
            "SELECT stakeholder_name FROM task_stakeholders WHERE task_id = ? ORDER BY id", (task_id,)
        ).fetchall()
    ]
    links = [
        TaskLink(id=r["id"], url=r["url"], title=r["title"])
        for r in conn.execute("SELECT id, url, title FROM task_links WHERE task_id = ?", (task_id,)).fetchall()
    ]
    recurrence = None
    rec = conn.execute("SELECT * FROM task_recurrence WHERE task_id = ?", (task_id,)).fetchone()
    if rec:
        recurrence = Recurrence(
            type=rec["recurrence_type"],
            interval=rec["interval_value"],
            days_of_week=json.loads(rec["days_of_week"]) if rec["days_of_week"] else None,
            end_date=rec["end_date"],
            max_occurrences=rec["max_occurrences"],
        )

    return Task(
        id=task_id,
        title=row["title"],
        notes=row["notes"] or "",
        category=row["category"],
        custom_category_id=row["custom_category_id"],
        stakeholders=stakeholders,
        estimated_hours=row["estimated_hours"],
        start_date=row["start_date"],
        start_time=row["start_time"],
        end_date=row["end_date"],
        end_time=row["end_time"],
        priority=row["priority"],
        completed=bool(row["completed"]),
        completed_at=row["completed_at"],
        links=links,
        is_recurring=bool(row["is_recurring"]),
        recurrence=recurrence,
        parent_task_id=row["parent_task_id"],
        created_at=row["created_at"],
    )


def _write_stakeholders(conn, task_id: str, names: list[str]):
    conn.execute("DELETE FROM task_stakeholders WHERE task_id = ?", (task_id,))
    conn.executemany(
        "INSERT INTO task_stakeholders (task_id, stakeholder_name) VALUES (?, ?)",
        [(task_id, name) for name in names]
    )


def _write_links(conn, task_id: str, links: list[TaskLink]):
    conn.execute("DELETE FROM task_links WHERE task_id = ?", (task_id,))
    conn.executemany(
        "INSERT INTO task_links (id, task_id, url, title) VALUES (?, ?, ?, ?)",
        [(link.id or str(uuid.uuid4()), task_id, link.url, link.title) for link in links]
    )


def _insert_task(conn, task: Task, task_id: str, parent_task_id: Optional[str] = None) -> str:
    created_at = datetime.now().isoformat()
    completed_at = task.completed_at or (created_at if task.completed else None)
    conn.execute(
        """INSERT INTO tasks
           (id, title, notes, category, custom_category_id, estimated_hours, start_date, start_time,
            end_date, end_time, priority, completed, completed_at, is_recurring, parent_task_id, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (task_id, task.title, task.notes, task.category, task.custom_category_id, task.estimated_hours,
         task.start_date, task.start_time, task.end_date, task.end_time, task.priority,
         int(task.completed), completed_at, int(task.is_recurring),
         parent_task_id or task.parent_task_id, created_at)
    )
    _write_stakeholders(conn, task_id, task.stakeholders)
    _write_links(conn, task_id, task.links)
    if task.is_recurring and task.recurrence:
        rule = task.recurrence
        conn.execute(
            """INSERT INTO task_recurrence
               (task_id, recurrence_type, interval_value, days_of_week, end_date, max_occurrences)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (task_id, rule.type, rule.interval,
             json.dumps(rule.days_of_week) if rule.days_of_week else None,
             rule.end_date, rule.max_occurrences)
        )
    return task_id


def create_task_db(task: Task, task_id: Optional[str] = None) -> Task:
    """Store a finalized task with its stakeholders, links and recurrence rule.

    The id is generated unless one is given; `task.id` on a draft is ignored.
    """
    task_id = task_id or str(uuid.uuid4())
    with get_db() as conn:
        _insert_task(conn, task, task_id)
        conn.commit()
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(conn, row)


def create_task_series(task: Task) -> list[Task]:
    """Store a task and, when it recurs, every generated instance after it.

    The head comes first in the returned list.
    """
    head_id = str(uuid.uuid4())
    instances = generate_occurrences(task.model_copy(update={"id": head_id}))
    ids = [head_id]
    with get_db() as conn:
        _insert_task(conn, task, head_id)
        for instance in instances:
            ids.append(_insert_task(conn, instance, str(uuid.uuid4()), parent_task_id=head_id))
        conn.commit()
        placeholders = ", ".join("?" for _ in ids)
        rows = conn.execute(
            f"SELECT * FROM tasks WHERE id IN ({placeholders}) ORDER BY start_date, start_time", ids
        ).fetchall()
        tasks = [_row_to_task(conn, row) for row in rows]
    tasks.sort(key=lambda t: t.id != head_id)
    return tasks


def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row:
            return _row_to_task(conn, row)
    return None


def _is_overdue(task: Task, now: datetime) -> bool:
    if task.completed:
        return False
    return datetime.fromisoformat(f"{task.end_date}T{task.end_time}") < now


def filter_tasks(tasks: list[Task], filter_type: str, now: Optional[datetime] = None) -> list[Task]:
    """Filter tasks the way the task list views do. "all" means all open tasks."""
    now = now or datetime.now()
    today = now.date().isoformat()

    if filter_type == "today":
        return [t for t in tasks if not t.completed and today in (t.start_date, t.end_date)]
    if filter_type == "upcoming":
        return [
            t for t in tasks
            if not t.completed and datetime.fromisoformat(f"{t.start_date}T{t.start_time}") > now
        ]
    if filter_type == "overdue":
        return [t for t in tasks if _is_overdue(t, now)]
    if filter_type == "completed":
        return [t for t in tasks if t.completed]
    return [t for t in tasks if not t.completed]


def get_all_tasks(filter_type: Optional[str] = None, now: Optional[datetime] = None) -> list[Task]:
    with get_db() as conn:
        rows = conn.execute("""
            SELECT * FROM tasks
            ORDER BY start_date, start_time, created_at
        """).fetchall()
        tasks = [_row_to_task(conn, row) for row in rows]
    if filter_type:
        return filter_tasks(tasks, filter_type, now)
    return tasks


def update_task_db(task_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only updates columns that differ from current values.

    Args:
        task_id: Task ID to update
        **updates: Task fields to update; stakeholders and links replace the child rows
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None

        changes = {}
        for field, new_value in updates.items():
            if field not in TASK_COLUMNS:
                continue
            # Convert bool to int for comparison with SQLite storage
            if isinstance(new_value, bool):
                new_value = int(new_value)
            if new_value != row[field]:
                changes[field] = new_value

        if "completed" in changes:
            changes["completed_at"] = datetime.now().isoformat() if changes["completed"] else None

        # Execute UPDATE only if there are actual changes
        if changes:
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)

        if updates.get("stakeholders") is not None:
            _write_stakeholders(conn, task_id, updates["stakeholders"])
        if updates.get("links") is not None:
            links = [link if isinstance(link, TaskLink) else TaskLink.model_validate(link) for link in updates["links"]]
            _write_links(conn, task_id, links)
        conn.commit()

        # Return updated task (re-fetch to get current state)
        updated_row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(conn, updated_row)


def delete_task_db(task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.commit()
        return cursor.rowcount > 0


# Custom category operations
def get_categories_db() -> list[CustomCategory]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM custom_categories ORDER BY name").fetchall()
        return [CustomCategory(id=r["id"], name=r["name"], color=r["color"], created_at=r["created_at"]) for r in rows]


def create_category_db(name: str, color: str) -> CustomCategory:
    category = CustomCategory(
        id=str(uuid.uuid4()),
        name=name.strip(),
        color=color,
        created_at=datetime.now().isoformat(),
    )
    with get_db() as conn:
        conn.execute(
            "INSERT INTO custom_categories (id, name, color, created_at) VALUES (?, ?, ?, ?)",
            (category.id, category.name, category.color, category.created_at)
        )
        conn.commit()
    return category


def delete_category_db(category_id: str) -> bool:
    """Delete a custom category; its tasks fall back to the personal category."""
    with get_db() as conn:
        conn.execute(
            "UPDATE tasks SET category = 'personal', custom_category_id = NULL WHERE custom_category_id = ?",
            (category_id,)
        )
        cursor = conn.execute("DELETE FROM custom_categories WHERE id = ?", (category_id,))
        conn.commit()
        return cursor.rowcount > 0


class SQLiteTaskStore:
    """Async adapter over the functions above, used by the scheduling conversation."""

    async def create_task(self, task: Task) -> Task:
        try:
            return await asyncio.to_thread(create_task_db, task)
        except sqlite3.Error as e:
            raise UpstreamError(f"Failed to create task: {e}") from e

    async def list_tasks(self) -> list[Task]:
        try:
            return await asyncio.to_thread(get_all_tasks)
        except sqlite3.Error as e:
            raise UpstreamError(f"Failed to load tasks: {e}") from e
