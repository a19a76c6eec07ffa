"""Shared types and enumerations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping, Optional


class AgentType(StrEnum):
    ASK = "ask"
    PROJECT = "project"


class SessionState(StrEnum):
    IDLE = "idle"


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Caller-supplied context for a tool invocation.

    Every field is untrusted input. ``session_id`` is the correlation key used
    to look up the session record.
    """

    session_id: Optional[str] = None
    user_id: Optional[str] = None
    message_id: Optional[str] = None
    agent: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> ToolContext:
        """Build a context from a host-provided mapping.

        Accepts both the host's camelCase keys and snake_case keys. Values that
        are not non-empty strings are dropped.
        """
        if not data:
            return cls()

        def _pick(*keys: str) -> Optional[str]:
            for key in keys:
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
            return None

        return cls(
            session_id=_pick("session_id", "sessionID"),
            user_id=_pick("user_id", "userId"),
            message_id=_pick("message_id", "messageID"),
            agent=_pick("agent"),
        )
