"""Discord connection health tool."""

from __future__ import annotations

import json
from typing import Any

from discord_opencode.core.types import ToolContext
from discord_opencode.tools.base import Tool


class DiscordHealthTool(Tool):
    @property
    def name(self) -> str:
        return "get_discord_health"

    @property
    def description(self) -> str:
        return "Check Discord client connection status"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        ready = self.gateway.is_ready
        return json.dumps({
            "status": "ok" if ready else "not_ready",
            "connected": ready,
            "user": self.gateway.user_tag,
        })
