"""Message tools: send, reply, edit, delete, react, typing, status."""

from __future__ import annotations

from typing import Any

from discord_opencode.core.errors import ToolInputError
from discord_opencode.core.types import ToolContext
from discord_opencode.messenger.discord_gateway import split_message_content
from discord_opencode.tools.base import Tool, optional_arg, require_arg
from discord_opencode.validation import DISCORD_LIMITS, validate_content_length

MESSAGE_LIMIT = DISCORD_LIMITS["message_content"]

_CHANNEL_ID_PROP = {
    "type": "string",
    "description": "Discord channel/thread ID (optional - auto-detected from session)",
}
_MESSAGE_ID_PROP = {"type": "string", "description": "Target message ID"}

STATE_PRESETS = {
    "processing": "🤖 Processing...",
    "thinking": "🧠 Thinking...",
    "searching": "🔍 Searching...",
    "writing": "✍️ Writing...",
    "done": "✅ Done",
    "error": "❌ Something went wrong",
    "waiting": "⏳ Waiting for input...",
}


def _message_id(kwargs: dict[str, Any]) -> int:
    raw = require_arg(kwargs, "message_id")
    try:
        return int(raw)
    except ValueError:
        raise ToolInputError(f"Error: invalid message_id '{raw}'") from None


class SendMessageTool(Tool):
    @property
    def name(self) -> str:
        return "send_discord_message"

    @property
    def description(self) -> str:
        return "Send a message to Discord. Channel is auto-detected from session context."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "content": {"type": "string", "description": "Message content"},
                "channel_id": _CHANNEL_ID_PROP,
            },
            "required": ["content"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        content = require_arg(kwargs, "content")
        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))

        chunks = split_message_content(content)
        message_ids: list[str] = []
        for chunk in chunks:
            message = await channel.send(chunk)
            message_ids.append(str(message.id))

        if len(chunks) == 1:
            return f"Message sent: {message_ids[0]}"
        return f"{len(chunks)} messages sent: {', '.join(message_ids)}"


class ReplyToMessageTool(Tool):
    @property
    def name(self) -> str:
        return "reply_to_message"

    @property
    def description(self) -> str:
        return "Reply to a specific message (shows reply preview)"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message_id": _MESSAGE_ID_PROP,
                "content": {"type": "string", "description": "Reply content (max 2000 chars)"},
                "channel_id": _CHANNEL_ID_PROP,
            },
            "required": ["message_id", "content"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        content = require_arg(kwargs, "content")
        if error := validate_content_length(content, MESSAGE_LIMIT, "Content"):
            return error

        message_id = _message_id(kwargs)
        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))
        target = await channel.fetch_message(message_id)
        reply = await target.reply(content)
        return f"Reply sent: {reply.id}"


class EditMessageTool(Tool):
    @property
    def name(self) -> str:
        return "edit_message"

    @property
    def description(self) -> str:
        return "Edit an existing Discord message"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message_id": _MESSAGE_ID_PROP,
                "content": {
                    "type": "string",
                    "description": "New message content (max 2000 chars)",
                },
                "channel_id": _CHANNEL_ID_PROP,
            },
            "required": ["message_id", "content"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        content = require_arg(kwargs, "content")
        message_id = _message_id(kwargs)
        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))
        message = await channel.fetch_message(message_id)
        await message.edit(content=content[:MESSAGE_LIMIT])
        return f"Message edited: {message.id}"


class DeleteMessageTool(Tool):
    @property
    def name(self) -> str:
        return "delete_message"

    @property
    def description(self) -> str:
        return "Delete a Discord message"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"message_id": _MESSAGE_ID_PROP, "channel_id": _CHANNEL_ID_PROP},
            "required": ["message_id"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        message_id = _message_id(kwargs)
        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))
        message = await channel.fetch_message(message_id)
        await message.delete()
        return f"Message deleted: {message_id}"


class AddReactionTool(Tool):
    @property
    def name(self) -> str:
        return "add_reaction"

    @property
    def description(self) -> str:
        return "Add an emoji reaction to a message"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message_id": _MESSAGE_ID_PROP,
                "emoji": {"type": "string", "description": "Emoji to add"},
                "channel_id": _CHANNEL_ID_PROP,
            },
            "required": ["message_id", "emoji"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        emoji = require_arg(kwargs, "emoji")
        message_id = _message_id(kwargs)
        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))
        message = await channel.fetch_message(message_id)
        await message.add_reaction(emoji)
        return f"Reaction {emoji} added"


class StartTypingTool(Tool):
    @property
    def name(self) -> str:
        return "start_typing"

    @property
    def description(self) -> str:
        return "Show typing indicator (lasts ~10 seconds)"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {"channel_id": _CHANNEL_ID_PROP}}

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))
        await channel.typing()
        return "Typing indicator started"


class UpdateStatusTool(Tool):
    @property
    def name(self) -> str:
        return "update_status"

    @property
    def description(self) -> str:
        return "Update a message with a status indicator"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message_id": _MESSAGE_ID_PROP,
                "state": {
                    "type": "string",
                    "enum": list(STATE_PRESETS),
                    "description": "Status state preset",
                },
                "custom": {
                    "type": "string",
                    "description": "Custom status text (overrides preset)",
                },
                "channel_id": _CHANNEL_ID_PROP,
            },
            "required": ["message_id", "state"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        state = require_arg(kwargs, "state")
        message_id = _message_id(kwargs)
        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))
        message = await channel.fetch_message(message_id)
        status_text = (
            optional_arg(kwargs, "custom")
            or STATE_PRESETS.get(state)
            or STATE_PRESETS["processing"]
        )
        await message.edit(content=status_text[:MESSAGE_LIMIT])
        return f"Status updated to: {state}"
