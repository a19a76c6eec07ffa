"""Thread tools: create (and register), rename, read history."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

import discord

from discord_opencode.core.errors import ToolInputError
from discord_opencode.core.types import AgentType, ToolContext
from discord_opencode.log import get_logger
from discord_opencode.tools.base import Tool, optional_arg, require_arg
from discord_opencode.validation import DISCORD_LIMITS, clamp_history_limit

logger = get_logger(__name__)

THREAD_NAME_LIMIT = DISCORD_LIMITS["thread_name"]
AUTO_ARCHIVE_MINUTES = 60

_THREAD_ID_PROP = {
    "type": "string",
    "description": "Discord thread ID (optional - auto-detected from session)",
}


def _epoch_ms(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    return int(value.timestamp() * 1000)


async def _recent_messages(thread: discord.Thread, limit: int) -> list[discord.Message]:
    """Fetch up to ``limit`` messages, oldest first."""
    messages = [message async for message in thread.history(limit=limit)]
    messages.reverse()
    return messages


class CreateThreadTool(Tool):
    @property
    def name(self) -> str:
        return "create_thread_for_conversation"

    @property
    def description(self) -> str:
        return (
            "Create a Discord thread for multi-step work, debugging, extended discussion, "
            "or context-dependent questions."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "channel_id": {
                    "type": "string",
                    "description": "Parent channel ID where thread will be created",
                },
                "title": {
                    "type": "string",
                    "description": "Thread title (max 100 chars, should summarize the topic)",
                },
                "initial_message": {
                    "type": "string",
                    "description": "First message to send in the thread",
                },
                "agent_type": {
                    "type": "string",
                    "enum": [t.value for t in AgentType],
                    "description": "Session type: ask (default) for discussions, project for coding work",
                },
            },
            "required": ["channel_id", "title", "initial_message"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        channel_id = require_arg(kwargs, "channel_id")
        title = require_arg(kwargs, "title")[:THREAD_NAME_LIMIT]
        initial_message = require_arg(kwargs, "initial_message")
        try:
            agent_type = AgentType(kwargs.get("agent_type") or AgentType.ASK)
        except ValueError:
            raise ToolInputError(
                f"Error: agent_type must be one of {[t.value for t in AgentType]}"
            ) from None

        # Parent channel is used as given, without session resolution.
        channel = await self.gateway.get_channel(channel_id)
        if not isinstance(channel, discord.TextChannel):
            return json.dumps({"error": "Can only create threads in text channels"})

        thread = await channel.create_thread(
            name=title,
            auto_archive_duration=AUTO_ARCHIVE_MINUTES,
            type=discord.ChannelType.public_thread,
        )
        await thread.send(initial_message)

        owner_id = str(thread.owner_id) if thread.owner_id else None
        parent_id = str(thread.parent_id) if thread.parent_id else None
        registration = await self.store.register(str(thread.id), parent_id, owner_id, agent_type)
        if not registration.ok:
            logger.warning(
                "thread_session_not_registered",
                thread_id=str(thread.id),
                reason=registration.error,
            )

        return json.dumps({
            "thread_created": True,
            "thread_id": str(thread.id),
            "title": title,
            "session_id": registration.value,
            "session_registered": registration.ok,
        })


class RenameThreadTool(Tool):
    @property
    def name(self) -> str:
        return "rename_thread"

    @property
    def description(self) -> str:
        return "Rename a Discord thread"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "thread_id": _THREAD_ID_PROP,
                "name": {"type": "string", "description": "New thread name (max 100 chars)"},
            },
            "required": ["name"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        name = require_arg(kwargs, "name")[:THREAD_NAME_LIMIT]
        channel = await self.resolve_channel(
            context, optional_arg(kwargs, "thread_id"), require_approval=True, prefer_explicit=True
        )
        if not isinstance(channel, discord.Thread):
            return "Error: Not a thread"

        await channel.edit(name=name)
        return f"Thread renamed to: {name}"


class ThreadHistoryTool(Tool):
    @property
    def name(self) -> str:
        return "get_thread_history"

    @property
    def description(self) -> str:
        return "Get recent messages from a thread for context"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "thread_id": _THREAD_ID_PROP,
                "limit": {
                    "type": "integer",
                    "description": "Number of messages (default: 20, max: 50)",
                },
            },
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        try:
            limit = clamp_history_limit(kwargs.get("limit"))
        except (TypeError, ValueError):
            raise ToolInputError("Error: limit must be an integer") from None

        channel = await self.resolve_channel(
            context, optional_arg(kwargs, "thread_id"), require_approval=False, prefer_explicit=True
        )
        if not isinstance(channel, discord.Thread):
            return json.dumps({"error": "Not a thread"})

        messages = await _recent_messages(channel, limit)
        return json.dumps([
            {
                "author": message.author.name,
                "content": message.content,
                "timestamp": _epoch_ms(message.created_at),
            }
            for message in messages
        ])


class SessionContextTool(Tool):
    @property
    def name(self) -> str:
        return "get_session_context"

    @property
    def description(self) -> str:
        return (
            "Get context about the current conversation/session including recent message history"
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {"thread_id": _THREAD_ID_PROP}}

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        channel = await self.resolve_channel(
            context, optional_arg(kwargs, "thread_id"), require_approval=False, prefer_explicit=True
        )
        if not isinstance(channel, discord.Thread):
            return json.dumps({"error": "Not a thread"})

        messages = await _recent_messages(channel, DISCORD_LIMITS["context_messages"])
        return json.dumps({
            "thread_id": str(channel.id),
            "thread_name": channel.name,
            "created_at": _epoch_ms(channel.created_at),
            "message_count": len(messages),
            "history": [
                {
                    "author": "assistant" if message.author.bot else "user",
                    "username": message.author.name,
                    "content": message.content,
                    "timestamp": _epoch_ms(message.created_at),
                }
                for message in messages
            ],
        })
