"""Discord client wrapper using discord.py v2+.

The gateway is constructed by the application and handed to tools; there is
no module-level client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import discord

from discord_opencode.core.errors import ChannelResolutionError
from discord_opencode.log import get_logger

logger = get_logger(__name__)

CHUNK_LIMIT = 1900
READY_TIMEOUT_SECONDS = 30


def split_message_content(text: str, max_length: int = CHUNK_LIMIT) -> list[str]:
    """Split text into chunks no longer than max_length.

    Prefers the last newline, then the last space, as long as the split point
    is past half the limit; otherwise cuts hard at the limit.
    """
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        split_index = remaining.rfind("\n", 0, max_length + 1)
        if split_index == -1 or split_index < max_length / 2:
            split_index = remaining.rfind(" ", 0, max_length + 1)
        if split_index == -1 or split_index < max_length / 2:
            split_index = max_length

        chunks.append(remaining[:split_index])
        remaining = remaining[split_index:].lstrip()

    return chunks


class DiscordGateway:
    """Owns the discord.py client connection for the process."""

    def __init__(self, token: str, client: Optional[discord.Client] = None):
        self._token = token
        if client is None:
            intents = discord.Intents.default()
            intents.guilds = True
            intents.guild_messages = True
            intents.message_content = True
            client = discord.Client(intents=intents)
        self._client = client
        self._task: asyncio.Task[Any] | None = None
        self._ready = asyncio.Event()

        @self._client.event
        async def on_ready() -> None:
            logger.info("discord_client_ready", user=str(self._client.user))
            self._ready.set()

    @property
    def client(self) -> discord.Client:
        return self._client

    @property
    def is_ready(self) -> bool:
        return self._client.is_ready()

    @property
    def user_tag(self) -> Optional[str]:
        user = self._client.user
        return str(user) if user else None

    async def start(self) -> None:
        if not self._token:
            raise ValueError("Discord token not configured")

        self._task = asyncio.create_task(self._client.start(self._token))
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=READY_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("discord_ready_timeout")
        logger.info("discord_gateway_started")

    async def stop(self) -> None:
        await self._client.close()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except discord.DiscordException as e:
                logger.warning("discord_gateway_task_error", error=str(e))
            self._task = None
        logger.info("discord_gateway_stopped")

    async def get_channel(self, channel_id: str) -> discord.abc.Messageable:
        """Return a messageable channel or thread, from cache or the API."""
        try:
            snowflake = int(channel_id)
        except (TypeError, ValueError):
            raise ChannelResolutionError(f"Invalid channel: {channel_id}") from None

        channel = self._client.get_channel(snowflake)
        if channel is None:
            try:
                channel = await self._client.fetch_channel(snowflake)
            except discord.DiscordException as e:
                logger.error("discord_channel_fetch_failed", channel_id=channel_id, error=str(e))
                raise ChannelResolutionError(f"Invalid channel: {channel_id}") from e

        if not isinstance(channel, discord.abc.Messageable):
            raise ChannelResolutionError(f"Invalid channel: {channel_id}")
        return channel
