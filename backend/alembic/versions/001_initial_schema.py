"""Initial schema - tasks table

Revision ID: 001
Revises: None
Create Date: 2026-10-18

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

    # Enum and length checks mirror the validation in models.py
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
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
        )
    """))

    # Not unique: concurrent creates may share an order_index
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_order_index ON tasks (order_index)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_due_date ON tasks (due_date)"))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP INDEX IF EXISTS ix_tasks_due_date"))
    conn.execute(text("DROP INDEX IF EXISTS ix_tasks_order_index"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
