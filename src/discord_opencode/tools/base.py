"""Abstract tool interface and the dependencies injected into every tool."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from discord_opencode.config import AppConfig
from discord_opencode.core.errors import ToolInputError
from discord_opencode.core.resolver import ResolvedChannel, resolve_channel_id
from discord_opencode.core.types import ToolContext
from discord_opencode.storage.session_store import SessionStore

if TYPE_CHECKING:
    import discord

    from discord_opencode.messenger.discord_gateway import DiscordGateway

CONFIRMATION_ARG = "confirmed_by_user"


@dataclass
class ToolDeps:
    """Process-wide collaborators, built once by the application."""

    config: AppConfig
    store: SessionStore
    gateway: DiscordGateway


class Tool(ABC):
    """Base class for all agent-callable Discord tools."""

    def __init__(self, deps: ToolDeps) -> None:
        self._deps = deps

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name exposed to the agent."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema dict describing accepted parameters."""
        ...

    @abstractmethod
    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        """Run the tool and return a text result for the agent."""
        ...

    @property
    def config(self) -> AppConfig:
        return self._deps.config

    @property
    def store(self) -> SessionStore:
        return self._deps.store

    @property
    def gateway(self) -> DiscordGateway:
        return self._deps.gateway

    async def resolve(
        self,
        context: ToolContext,
        explicit_id: Optional[str],
        require_approval: bool = True,
        prefer_explicit: bool = False,
    ) -> ResolvedChannel:
        return await resolve_channel_id(
            self.config,
            self.store,
            explicit_id,
            context,
            require_approval=require_approval,
            prefer_explicit=prefer_explicit,
        )

    async def resolve_channel(
        self,
        context: ToolContext,
        explicit_id: Optional[str],
        require_approval: bool = True,
        prefer_explicit: bool = False,
    ) -> discord.abc.Messageable:
        """Resolve the target id and fetch the channel it names."""
        resolved = await self.resolve(context, explicit_id, require_approval, prefer_explicit)
        return await self.gateway.get_channel(resolved.channel_id)

    def to_api_dict(self) -> dict[str, Any]:
        """Tool definition with the confirmation flag added to its parameters."""
        schema = dict(self.input_schema)
        properties = dict(schema.get("properties", {}))
        properties[CONFIRMATION_ARG] = {
            "type": "boolean",
            "description": "Set true when the user explicitly requested this tool call.",
        }
        schema["properties"] = properties
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": schema,
        }


def require_arg(kwargs: dict[str, Any], name: str) -> str:
    """Return a required non-empty string argument or raise ToolInputError."""
    value = kwargs.get(name)
    if value is None or value == "":
        raise ToolInputError(f"Error: {name} is required")
    return str(value)


def optional_arg(kwargs: dict[str, Any], name: str) -> Optional[str]:
    value = kwargs.get(name)
    if value is None or value == "":
        return None
    return str(value)
