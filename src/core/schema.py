"""SQLite schema definitions (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central mapping of all tables in the schema
TABLE_SCHEMAS: dict[str, str] = {
    "users": """CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        name TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'member' CHECK (role IN ('admin', 'member', 'child')),
        coins INTEGER NOT NULL DEFAULT 0 CHECK (coins >= 0),
        current_streak INTEGER NOT NULL DEFAULT 0,
        last_active_date TEXT
    )""",
    "rooms": """CREATE TABLE IF NOT EXISTS rooms (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        name TEXT NOT NULL,
        room_type TEXT NOT NULL DEFAULT 'other',
        color TEXT,
        sort_order INTEGER NOT NULL DEFAULT 0,
        assigned_user_id INTEGER REFERENCES users(id) ON DELETE SET NULL
    )""",
    "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        room_id INTEGER NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        notes TEXT NOT NULL DEFAULT '',
        frequency_days REAL NOT NULL DEFAULT 7 CHECK (frequency_days >= 1.0 / 24),
        effort INTEGER NOT NULL DEFAULT 1 CHECK (effort BETWEEN 1 AND 5),
        is_seasonal INTEGER NOT NULL DEFAULT 0,
        last_completed_at TEXT,
        assignment_mode TEXT NOT NULL DEFAULT 'first'
            CHECK (assignment_mode IN ('first', 'shared', 'custom')),
        assigned_to_children INTEGER NOT NULL DEFAULT 0
    )""",
    "task_assignees": """CREATE TABLE IF NOT EXISTS task_assignees (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        coin_percentage INTEGER NOT NULL DEFAULT 0,
        UNIQUE (task_id, user_id)
    )""",
    "task_completions": """CREATE TABLE IF NOT EXISTS task_completions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        completed_at TEXT NOT NULL,
        completed_on TEXT NOT NULL,
        coins_earned INTEGER NOT NULL DEFAULT 0,
        previous_last_completed_at TEXT,
        moved_anchor INTEGER NOT NULL DEFAULT 0,
        UNIQUE (task_id, user_id, completed_on)
    )""",
    "app_settings": """CREATE TABLE IF NOT EXISTS app_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        key TEXT NOT NULL UNIQUE,
        value TEXT NOT NULL
    )""",
    "task_due_notifications": """CREATE TABLE IF NOT EXISTS task_due_notifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        due_date TEXT NOT NULL,
        UNIQUE (task_id, due_date)
    )""",
    "user_achievement_notifications": """CREATE TABLE IF NOT EXISTS user_achievement_notifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        achievement_id TEXT NOT NULL,
        UNIQUE (user_id, achievement_id)
    )""",
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_room ON tasks(room_id)",
    "CREATE INDEX IF NOT EXISTS idx_task_assignees_task ON task_assignees(task_id)",
    "CREATE INDEX IF NOT EXISTS idx_task_completions_task ON task_completions(task_id, completed_on)",
    "CREATE INDEX IF NOT EXISTS idx_task_completions_user ON task_completions(user_id, completed_on)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    statements = [*TABLE_SCHEMAS.values(), *INDEXES]
    await db_client.execute_script(";\n".join(statements) + ";", db_path=db_path)
    logger.info("Database schema initialised", extra={"tables": list(TABLE_SCHEMAS)})
