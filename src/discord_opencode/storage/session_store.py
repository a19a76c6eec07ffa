"""Session registry: lookup, registration, and remote approval."""

from __future__ import annotations

import time
import uuid
from pathlib import Path
from typing import Optional

import aiosqlite

from discord_opencode.core.types import AgentType, SessionState
from discord_opencode.log import get_logger
from discord_opencode.storage.models import SessionBinding, SessionRecord, StoreResult

logger = get_logger(__name__)

UNKNOWN_USER = "unknown"
DISABLED_REASON = "Session store is disabled"


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """Record-level operations on the ``sessions`` table.

    Each call opens its own connection, runs one statement, and closes it.
    There is no long-lived handle. The schema must already exist
    (see ``storage.schema.ensure_schema``).
    """

    def __init__(self, db_path: str | Path, enabled: bool = True):
        self._db_path = Path(db_path)
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> aiosqlite.Connection:
        # mode=rw: a missing store is an error, never silently created
        return aiosqlite.connect(f"{self._db_path.absolute().as_uri()}?mode=rw", uri=True)

    async def lookup_by_session_key(self, key: Optional[str]) -> Optional[SessionBinding]:
        """Return the thread binding for a correlation key, or None.

        None covers a missing key, a disabled store, no matching row, and an
        unreachable store. Store errors are logged, never raised.
        If several rows share the key, the first one returned wins.
        """
        if not key or not self._enabled:
            return None

        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    """SELECT discord_thread_id, remote_allowed FROM sessions
                       WHERE opencode_session_id = ? LIMIT 1""",
                    (key,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("session_lookup_failed", key=key, error=str(e))
            return None

        if row is None:
            return None
        return SessionBinding(thread_id=row[0] or None, remote_allowed=row[1] == 1)

    async def register(
        self,
        thread_id: str,
        channel_id: Optional[str],
        owner_id: Optional[str],
        agent_type: AgentType | str,
    ) -> StoreResult[str]:
        """Insert a new idle, unapproved session for a freshly created thread.

        Returns the generated session id on success. Failures are reported in
        the result rather than raised.
        """
        if not self._enabled:
            return StoreResult.failure(DISABLED_REASON)

        try:
            agent_type = AgentType(agent_type)
        except ValueError:
            return StoreResult.failure(f"Unknown agent type: {agent_type}")

        now = _now_ms()
        record = SessionRecord(
            id=str(uuid.uuid4()),
            discord_thread_id=thread_id,
            discord_channel_id=channel_id,  # type: ignore[arg-type]
            user_id=owner_id or UNKNOWN_USER,
            state=SessionState.IDLE,
            agent_type=agent_type,
            created_at=now,
            updated_at=now,
        )

        try:
            async with self._connect() as db:
                await db.execute(
                    """INSERT INTO sessions (
                           id, discord_thread_id, discord_channel_id, user_id,
                           state, agent_type, created_at, updated_at,
                           opencode_session_id, project_path, project_name,
                           context_encrypted, context_iv, context_tag,
                           remote_allowed
                       ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        record.id,
                        record.discord_thread_id,
                        record.discord_channel_id,
                        record.user_id,
                        str(record.state),
                        str(record.agent_type),
                        record.created_at,
                        record.updated_at,
                        record.opencode_session_id,
                        record.project_path,
                        record.project_name,
                        record.context_encrypted,
                        record.context_iv,
                        record.context_tag,
                        int(record.remote_allowed),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            logger.error("session_register_failed", thread_id=thread_id, error=str(e))
            return StoreResult.failure(f"Failed to register session for thread {thread_id}: {e}")

        logger.info("session_registered", session_id=record.id, thread_id=thread_id)
        return StoreResult.success(record.id)

    async def approve(self, key: str) -> StoreResult[int]:
        """Mark every session with this correlation key as remotely approved.

        ``ok`` is True whenever the update ran, including when no row matched.
        ``value`` carries the number of rows updated.
        """
        if not self._enabled:
            return StoreResult.failure(DISABLED_REASON)

        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    "UPDATE sessions SET remote_allowed = 1 WHERE opencode_session_id = ?",
                    (key,),
                )
                await db.commit()
                updated = cursor.rowcount
        except aiosqlite.Error as e:
            logger.error("session_approve_failed", key=key, error=str(e))
            return StoreResult.failure(f"Failed to approve session {key}: {e}")

        if updated == 0:
            logger.warning("session_approve_no_match", key=key)
        else:
            logger.info("session_approved", key=key, rows=updated)
        return StoreResult.success(updated)
