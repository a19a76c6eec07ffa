"""Remote session approval tool."""

from __future__ import annotations

from typing import Any

from discord_opencode.core.types import ToolContext
from discord_opencode.tools.base import Tool, optional_arg

APPROVED_MESSAGE = "Remote Discord continuation approved."


class ApproveRemoteSessionTool(Tool):
    """Sets the one-way remote approval flag for a session."""

    @property
    def name(self) -> str:
        return "approve_remote_session"

    @property
    def description(self) -> str:
        return "Approve the current session for remote Discord continuation"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "opencode_session_id": {
                    "type": "string",
                    "description": "Explicit OpenCode session ID (defaults to current session)",
                },
            },
        }

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        if not self.config.enable_session_store:
            return "Error: Session store is disabled; cannot approve session."

        session_key = optional_arg(kwargs, "opencode_session_id") or context.session_id
        if not session_key:
            return "Error: No session ID available to approve."

        result = await self.store.approve(session_key)
        return APPROVED_MESSAGE if result.ok else "Error: Approval failed."
