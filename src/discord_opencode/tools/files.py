"""File attachment tool guarded by the file-access sandbox."""

from __future__ import annotations

import io
import os
from typing import Any

import discord

from discord_opencode.core.types import ToolContext
from discord_opencode.security.file_access import validate_file_access
from discord_opencode.tools.base import Tool, optional_arg, require_arg
from discord_opencode.validation import DISCORD_LIMITS, validate_content_length


class SendFileTool(Tool):
    @property
    def name(self) -> str:
        return "send_file"

    @property
    def description(self) -> str:
        return "Send a file attachment to Discord. Files must be in allowed directories."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to file"},
                "message": {
                    "type": "string",
                    "description": "Message to include (max 2000 chars)",
                },
                "channel_id": {
                    "type": "string",
                    "description": "Discord channel/thread ID (optional - auto-detected from session)",
                },
            },
            "required": ["file_path"],
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        file_path = require_arg(kwargs, "file_path")
        message = optional_arg(kwargs, "message")
        if message:
            if error := validate_content_length(
                message, DISCORD_LIMITS["message_content"], "Message"
            ):
                return error

        result = validate_file_access(
            file_path, self.config.allowed_file_paths, self.config.max_file_size
        )
        if result.error:
            return result.error
        if result.buffer is None or result.real_path is None:
            return "Error: File validation failed"

        channel = await self.resolve_channel(context, optional_arg(kwargs, "channel_id"))
        attachment = discord.File(
            io.BytesIO(result.buffer), filename=os.path.basename(result.real_path)
        )
        sent = await channel.send(content=message, file=attachment)
        return f"File sent: {sent.id}"
