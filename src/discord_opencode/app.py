"""Application orchestrator - wires all components and manages lifecycle."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from discord_opencode.config import AppConfig
from discord_opencode.log import get_logger
from discord_opencode.messenger.discord_gateway import DiscordGateway
from discord_opencode.storage.schema import ensure_schema
from discord_opencode.storage.session_store import SessionStore
from discord_opencode.tools.allowlist import resolve_allowed_tools
from discord_opencode.tools.base import ToolDeps
from discord_opencode.tools.registry import ToolRegistry

logger = get_logger(__name__)


class DiscordOpencodeApp:
    """Top-level application orchestrator."""

    def __init__(
        self,
        config: AppConfig,
        gateway: Optional[DiscordGateway] = None,
        cwd: Optional[Path] = None,
    ):
        self.config = config
        self.store = SessionStore(config.database_path, enabled=config.enable_session_store)
        self.gateway = gateway or DiscordGateway(config.discord_token)
        self.tool_registry = ToolRegistry(resolve_allowed_tools(config, cwd))

    async def start(self, connect: bool = True) -> None:
        """Prepare the session store, register tools, and connect to Discord.

        A SchemaError from the store propagates and aborts startup.
        """
        # 1. Session store schema
        if self.config.enable_session_store:
            await ensure_schema(self.config.database_path)
        else:
            logger.info("session_store_disabled")

        # 2. Tools
        deps = ToolDeps(config=self.config, store=self.store, gateway=self.gateway)
        self.tool_registry.discover_and_register(deps)

        # 3. Discord
        if connect:
            await self.gateway.start()

        logger.info(
            "discord_opencode_started",
            tools=len(self.tool_registry.names()),
            sessions=self.config.enable_session_store,
        )

    async def stop(self) -> None:
        await self.gateway.stop()
        logger.info("discord_opencode_stopped")
