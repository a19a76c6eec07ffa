"""Data models for the session store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from discord_opencode.core.types import AgentType, SessionState

T = TypeVar("T")


@dataclass
class SessionRecord:
    """One row of the ``sessions`` table.

    The project and context_* columns are reserved and passed through as-is.
    """

    id: str
    discord_channel_id: str
    user_id: str
    agent_type: AgentType
    created_at: int  # epoch milliseconds
    updated_at: int
    discord_thread_id: Optional[str] = None
    state: str = SessionState.IDLE
    opencode_session_id: Optional[str] = None
    project_path: Optional[str] = None
    project_name: Optional[str] = None
    context_encrypted: Optional[str] = None
    context_iv: Optional[str] = None
    context_tag: Optional[str] = None
    remote_allowed: bool = False


@dataclass(frozen=True, slots=True)
class SessionBinding:
    """What the resolver needs from a session record."""

    thread_id: Optional[str]
    remote_allowed: bool


@dataclass(frozen=True, slots=True)
class StoreResult(Generic[T]):
    """Outcome of a store write: success flag, value, and failure reason."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> StoreResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> StoreResult[T]:
        return cls(ok=False, error=error)

    def __bool__(self) -> bool:
        return self.ok
