"""Discord payload limits and argument validation."""

from __future__ import annotations

from typing import Optional

DISCORD_LIMITS = {
    "message_content": 2000,
    "thread_name": 100,
    "history_default": 20,
    "history_max": 50,
    "context_messages": 30,
}


def validate_content_length(
    content: str,
    limit: int = DISCORD_LIMITS["message_content"],
    label: str = "Content",
) -> Optional[str]:
    """Return an error string if content is over the limit, else None."""
    if len(content) > limit:
        return f"Error: {label} exceeds {limit} characters"
    return None


def clamp_history_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DISCORD_LIMITS["history_default"]
    return max(1, min(int(limit), DISCORD_LIMITS["history_max"]))
