"""Session store schema bootstrap and migration.

``ensure_schema`` is called once at startup; every SessionStore operation
assumes it has already run against the same path.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from discord_opencode.core.errors import SchemaError
from discord_opencode.log import get_logger

logger = get_logger(__name__)

REMOTE_ALLOWED_COLUMN = "remote_allowed"

CREATE_SESSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS sessions (
    id                  TEXT    PRIMARY KEY,
    project_path        TEXT,
    project_name        TEXT,
    discord_thread_id   TEXT,
    discord_channel_id  TEXT    NOT NULL,
    user_id             TEXT    NOT NULL,
    state               TEXT    NOT NULL DEFAULT 'idle',
    agent_type          TEXT    NOT NULL,
    created_at          INTEGER NOT NULL,
    updated_at          INTEGER NOT NULL,
    opencode_session_id TEXT,
    context_encrypted   TEXT,
    context_iv          TEXT,
    context_tag         TEXT,
    remote_allowed      INTEGER NOT NULL DEFAULT 0
)
"""

CREATE_INDEX_OPENCODE_SESSION_ID = (
    "CREATE INDEX IF NOT EXISTS idx_sessions_opencode_session_id "
    "ON sessions(opencode_session_id)"
)
CREATE_INDEX_DISCORD_THREAD_ID = (
    "CREATE INDEX IF NOT EXISTS idx_sessions_discord_thread_id "
    "ON sessions(discord_thread_id)"
)


@asynccontextmanager
async def open_database(db_path: str | Path) -> AsyncIterator[aiosqlite.Connection]:
    """Open the store at ``db_path``, creating its parent directory first.

    Directory or open failures raise SchemaError naming the path and cause.
    """
    path = Path(db_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SchemaError(
            f"Failed to create session database directory {path.parent}: {e}", path, e
        ) from e

    try:
        db = await aiosqlite.connect(path)
    except aiosqlite.Error as e:
        raise SchemaError(f"Failed to open session database at {path}: {e}", path, e) from e

    try:
        yield db
    finally:
        await db.close()


async def _run_writable(db: aiosqlite.Connection, db_path: str | Path, sql: str) -> None:
    try:
        await db.execute(sql)
        await db.commit()
    except aiosqlite.Error as e:
        raise SchemaError(f"Session database at {db_path} is not writable: {e}", db_path, e) from e


async def bootstrap_schema(db_path: str | Path) -> None:
    """Create the sessions table and its lookup indexes if absent. Idempotent."""
    async with open_database(db_path) as db:
        await _run_writable(db, db_path, "PRAGMA journal_mode = WAL")
        await _run_writable(db, db_path, CREATE_SESSIONS_TABLE)
        await _run_writable(db, db_path, CREATE_INDEX_OPENCODE_SESSION_ID)
        await _run_writable(db, db_path, CREATE_INDEX_DISCORD_THREAD_ID)
    logger.info("session_schema_bootstrapped", path=str(db_path))


async def _column_names(db: aiosqlite.Connection, db_path: str | Path) -> list[str]:
    try:
        cursor = await db.execute("PRAGMA table_info(sessions)")
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        raise SchemaError(f"Failed to read session schema at {db_path}: {e}", db_path, e) from e
    # table_info rows: (cid, name, type, notnull, dflt_value, pk)
    return [row[1] for row in rows]


async def migrate_schema(db_path: str | Path) -> bool:
    """Add the ``remote_allowed`` column to stores created before it existed.

    Returns True if a column was added, False if the schema was already current.
    """
    async with open_database(db_path) as db:
        columns = await _column_names(db, db_path)
        if REMOTE_ALLOWED_COLUMN in columns:
            return False

        await _run_writable(
            db,
            db_path,
            f"ALTER TABLE sessions ADD COLUMN {REMOTE_ALLOWED_COLUMN} INTEGER NOT NULL DEFAULT 0",
        )
    logger.info("session_schema_migrated", path=str(db_path), column=REMOTE_ALLOWED_COLUMN)
    return True


async def ensure_schema(db_path: str | Path) -> None:
    """Bootstrap then migrate. The single schema entry point used at startup."""
    await bootstrap_schema(db_path)
    await migrate_schema(db_path)
