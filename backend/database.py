import logging
import os
import sqlite3
import subprocess
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Optional

from dotenv import load_dotenv

from errors import StoreError
from filtering import casefold
from models import (
    CategoryEquals,
    CompletedEquals,
    DueToday,
    Task,
    TaskCondition,
    TaskCreate,
    TaskFilters,
    TitleContains,
)

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("DATABASE_PATH", "tasks.db")

UPDATABLE_COLUMNS = frozenset(
    {"title", "description", "completed", "priority", "category", "due_date", "order_index"}
)

# ORDER BY expressions for each sort field; priority sorts by rank, not alphabetically
SORT_EXPRESSIONS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "due_date": "due_date",
    "priority": "CASE priority WHEN 'high' THEN 3 WHEN 'medium' THEN 2 ELSE 1 END",
}


@contextmanager
def get_db():
    """Context manager for database connections. sqlite3 errors surface as StoreError."""
    conn = None
    try:
        conn = sqlite3.connect(DATABASE_PATH)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, casefold, deterministic=True)
        yield conn
    except sqlite3.Error as e:
        logger.error("Database error: %s", e)
        raise StoreError() from e
    finally:
        if conn is not None:
            conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    env = {**os.environ, "DATABASE_PATH": os.path.abspath(DATABASE_PATH)}
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env=env,
        check=True
    )


def _now() -> str:
    return datetime.now().isoformat()


def _to_column(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        completed=bool(row["completed"]),
        priority=row["priority"],
        category=row["category"],
        due_date=row["due_date"],
        order_index=row["order_index"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def get_all_tasks() -> list[Task]:
    """All tasks, newest first."""
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM tasks ORDER BY created_at DESC, id").fetchall()
        return [_row_to_task(row) for row in rows]


def list_tasks_db(filters: TaskFilters) -> list[Task]:
    """
    Tasks matching the filters, ordered by filters.sort_by, then incomplete
    before completed, then id. Tasks without a due date sort last.
    filtering.filter_tasks is the in-memory equivalent.
    """
    clauses = []
    params: list = []

    if filters.status == "completed":
        clauses.append("completed = 1")
    elif filters.status == "pending":
        clauses.append("completed = 0")

    if filters.priority:
        clauses.append("priority = ?")
        params.append(filters.priority)

    if filters.category:
        clauses.append("category = ?")
        params.append(filters.category)

    if filters.search:
        clauses.append(
            "(instr(casefold(title), casefold(?)) > 0"
            " OR instr(casefold(COALESCE(description, '')), casefold(?)) > 0)"
        )
        params.extend([filters.search, filters.search])

    direction = "ASC" if filters.sort_order == "asc" else "DESC"
    order = f"{SORT_EXPRESSIONS[filters.sort_by]} {direction}"
    if filters.sort_by == "due_date":
        order = f"due_date IS NULL, {order}"

    sql = "SELECT * FROM tasks"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += f" ORDER BY {order}, completed ASC, id ASC"

    with get_db() as conn:
        rows = conn.execute(sql, params).fetchall()
        return [_row_to_task(row) for row in rows]


def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None


def get_max_order_index() -> int:
    with get_db() as conn:
        row = conn.execute("SELECT MAX(order_index) FROM tasks").fetchone()
        return row[0] if row[0] is not None else 0


def _insert_values(task_id: str, task_data: TaskCreate, order_index: int, now: str) -> tuple:
    values = task_data.model_dump(mode="json")
    return (
        task_id,
        values["title"],
        values["description"],
        values["priority"],
        values["category"],
        values["due_date"],
        order_index,
        now,
        now,
    )


INSERT_SQL = """INSERT INTO tasks
    (id, title, description, completed, priority, category, due_date, order_index, created_at, updated_at)
    VALUES (?, ?, ?, 0, ?, ?, ?, ?, ?, ?)"""


def create_task_db(task_data: TaskCreate, task_id: Optional[str] = None) -> Task:
    """
    Insert a task with order_index = current max + 1.
    The max is read on its own connection before the insert, with no lock:
    two concurrent creates can receive the same order_index.
    """
    if task_id is None:
        task_id = str(uuid.uuid4())
    order_index = get_max_order_index() + 1
    now = _now()

    with get_db() as conn:
        conn.execute(INSERT_SQL, _insert_values(task_id, task_data, order_index, now))
        conn.commit()

    return Task(
        id=task_id,
        **task_data.model_dump(),
        completed=False,
        order_index=order_index,
        created_at=now,
        updated_at=now,
    )


def create_tasks_db(items: list[TaskCreate]) -> list[Task]:
    """Bulk insert. Items get consecutive order_index values after the current max."""
    if not items:
        return []
    start = get_max_order_index() + 1
    now = _now()
    ids = [str(uuid.uuid4()) for _ in items]

    with get_db() as conn:
        conn.executemany(
            INSERT_SQL,
            [_insert_values(task_id, item, start + i, now) for i, (task_id, item) in enumerate(zip(ids, items))]
        )
        conn.commit()

    return [
        Task(id=task_id, **item.model_dump(), completed=False, order_index=start + i, created_at=now, updated_at=now)
        for i, (task_id, item) in enumerate(zip(ids, items))
    ]


def _set_clause(updates: dict) -> tuple[str, list]:
    changes = {field: _to_column(value) for field, value in updates.items() if field in UPDATABLE_COLUMNS}
    changes["updated_at"] = _now()
    clause = ", ".join(f"{field} = ?" for field in changes)
    return clause, list(changes.values())


def update_task_db(task_id: str, **updates) -> Optional[Task]:
    """
    Apply the given fields to one task and refresh updated_at.

    Args:
        task_id: Task ID to update
        **updates: Column values (title, description, completed, priority, category, due_date, order_index)

    Returns None when no task has this id.
    """
    clause, values = _set_clause(updates)
    with get_db() as conn:
        cursor = conn.execute(f"UPDATE tasks SET {clause} WHERE id = ?", values + [task_id])
        conn.commit()
        if cursor.rowcount == 0:
            return None
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row)


def update_tasks_db(task_ids: list[str], **updates) -> list[Task]:
    """Apply the same fields to several tasks in one statement."""
    if not task_ids:
        return []
    clause, values = _set_clause(updates)
    placeholders = ", ".join("?" for _ in task_ids)
    with get_db() as conn:
        conn.execute(f"UPDATE tasks SET {clause} WHERE id IN ({placeholders})", values + list(task_ids))
        conn.commit()
        rows = conn.execute(
            f"SELECT * FROM tasks WHERE id IN ({placeholders}) ORDER BY created_at DESC, id", list(task_ids)
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def delete_task_db(task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.commit()
        return cursor.rowcount > 0


def delete_tasks_db(task_ids: list[str]) -> int:
    if not task_ids:
        return 0
    placeholders = ", ".join("?" for _ in task_ids)
    with get_db() as conn:
        cursor = conn.execute(f"DELETE FROM tasks WHERE id IN ({placeholders})", list(task_ids))
        conn.commit()
        return cursor.rowcount


def _condition_sql(condition: TaskCondition, today: date) -> tuple[str, list]:
    if isinstance(condition, DueToday):
        return "due_date = ?", [today.isoformat()]
    if isinstance(condition, TitleContains):
        return "instr(casefold(title), casefold(?)) > 0", [condition.text]
    if isinstance(condition, CategoryEquals):
        return "category = ?", [condition.category]
    if isinstance(condition, CompletedEquals):
        return "completed = ?", [int(condition.completed)]
    raise TypeError(f"Unknown condition: {condition!r}")


def find_tasks_db(conditions: list[TaskCondition], today: Optional[date] = None) -> list[Task]:
    """Tasks matching every condition (AND). An empty list matches all tasks."""
    today = today or date.today()
    clauses = []
    params: list = []
    for condition in conditions:
        clause, values = _condition_sql(condition, today)
        clauses.append(clause)
        params.extend(values)

    sql = "SELECT * FROM tasks"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY created_at DESC, id"

    with get_db() as conn:
        rows = conn.execute(sql, params).fetchall()
        return [_row_to_task(row) for row in rows]
