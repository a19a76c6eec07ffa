"""Tool registry: registration, confirmation gating, and execution."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from discord_opencode.core.errors import DiscordOpencodeError
from discord_opencode.core.types import ToolContext
from discord_opencode.log import get_logger
from discord_opencode.tools.base import CONFIRMATION_ARG, Tool, ToolDeps

logger = get_logger(__name__)

CONFIRMATION_ERROR = (
    "Error: This tool requires explicit user confirmation (confirmed_by_user=true)."
)


class ToolRegistry:
    """Registry of all available tools.

    Tools outside ``allowed_tools`` only run when the call carries
    ``confirmed_by_user=true``.
    """

    def __init__(self, allowed_tools: Optional[Iterable[str]] = None):
        self._tools: dict[str, Tool] = {}
        self._allowed = set(allowed_tools or ())

    @property
    def allowed_tools(self) -> set[str]:
        return set(self._allowed)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool
        logger.debug("tool_registered", tool_name=tool.name)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def all_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def discover_and_register(self, deps: ToolDeps) -> None:
        """Import and register all built-in tools."""
        from discord_opencode.tools.files import SendFileTool
        from discord_opencode.tools.messages import (
            AddReactionTool,
            DeleteMessageTool,
            EditMessageTool,
            ReplyToMessageTool,
            SendMessageTool,
            StartTypingTool,
            UpdateStatusTool,
        )
        from discord_opencode.tools.sessions import ApproveRemoteSessionTool
        from discord_opencode.tools.system import DiscordHealthTool
        from discord_opencode.tools.threads import (
            CreateThreadTool,
            RenameThreadTool,
            SessionContextTool,
            ThreadHistoryTool,
        )

        for tool_cls in (
            SendMessageTool,
            ReplyToMessageTool,
            EditMessageTool,
            DeleteMessageTool,
            AddReactionTool,
            StartTypingTool,
            UpdateStatusTool,
            CreateThreadTool,
            RenameThreadTool,
            ThreadHistoryTool,
            SessionContextTool,
            SendFileTool,
            ApproveRemoteSessionTool,
            DiscordHealthTool,
        ):
            self.register(tool_cls(deps))

        logger.info("tools_registered", count=len(self._tools), allowed=sorted(self._allowed))

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        context: ToolContext | None = None,
    ) -> str:
        """Run a tool and always return a text result, never raise."""
        tool = self._tools.get(name)
        if tool is None:
            return f"Error: unknown tool '{name}'"

        args = dict(arguments or {})
        confirmed = bool(args.pop(CONFIRMATION_ARG, False))
        if name not in self._allowed and not confirmed:
            logger.info("tool_confirmation_required", tool=name)
            return CONFIRMATION_ERROR

        logger.info("tool_execute", tool=name)
        try:
            return await tool.execute(context or ToolContext(), **args)
        except DiscordOpencodeError as e:
            logger.info("tool_rejected", tool=name, reason=str(e))
            return str(e)
        except Exception as e:
            logger.exception("tool_failed", tool=name)
            return f"Error: {e}"
