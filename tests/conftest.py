"""Test fixtures for discord_opencode."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiosqlite
import discord
import pytest

from discord_opencode.config import AppConfig
from discord_opencode.core.errors import ChannelResolutionError
from discord_opencode.storage.schema import ensure_schema
from discord_opencode.storage.session_store import SessionStore
from discord_opencode.tools.base import ToolDeps
from discord_opencode.tools.registry import ToolRegistry


class FakeGateway:
    """Stands in for DiscordGateway; channels are looked up in a dict."""

    def __init__(self) -> None:
        self.channels: dict[str, Any] = {}
        self.ready = True
        self.requested: list[str] = []

    @property
    def is_ready(self) -> bool:
        return self.ready

    @property
    def user_tag(self) -> str | None:
        return "agent#0001" if self.ready else None

    async def get_channel(self, channel_id: str) -> Any:
        self.requested.append(channel_id)
        if channel_id not in self.channels:
            raise ChannelResolutionError(f"Invalid channel: {channel_id}")
        return self.channels[channel_id]

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


def make_message(message_id: int, content: str = "", author: str = "alice", bot: bool = False):
    message = MagicMock(spec=discord.Message)
    message.id = message_id
    message.content = content
    message.author = MagicMock()
    message.author.name = author
    message.author.bot = bot
    message.created_at = None
    reply = MagicMock(spec=discord.Message)
    reply.id = message_id + 1000
    message.reply = AsyncMock(return_value=reply)
    return message


def make_text_channel(channel_id: int):
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    sent = iter(range(channel_id * 10, channel_id * 10 + 1000))
    channel.send = AsyncMock(side_effect=lambda *a, **kw: make_message(next(sent)))
    channel.typing = AsyncMock()
    return channel


def make_thread(thread_id: int, parent_id: int = 1, owner_id: int | None = 42, history=()):
    thread = MagicMock(spec=discord.Thread)
    thread.id = thread_id
    thread.name = f"thread-{thread_id}"
    thread.parent_id = parent_id
    thread.owner_id = owner_id
    thread.created_at = None
    sent = iter(range(thread_id * 10, thread_id * 10 + 1000))
    thread.send = AsyncMock(side_effect=lambda *a, **kw: make_message(next(sent)))
    thread.typing = AsyncMock()

    async def _history(limit: int = 100):
        # discord.py yields newest first
        for message in list(reversed(history))[:limit]:
            yield message

    thread.history = MagicMock(side_effect=_history)
    return thread


async def insert_session(
    db_path: Path,
    key: str | None,
    thread_id: str | None,
    remote_allowed: bool = False,
    row_id: str | None = None,
) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """INSERT INTO sessions (id, discord_thread_id, discord_channel_id, user_id,
                   agent_type, created_at, updated_at, opencode_session_id, remote_allowed)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (row_id or f"row-{key}-{thread_id}", thread_id, "100", "u1", "ask", 1, 1,
             key, int(remote_allowed)),
        )
        await db.commit()


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def db_path(tmp_dir):
    return tmp_dir / "sessions.db"


@pytest.fixture
def make_config(tmp_dir, db_path):
    def _make(**overrides: Any) -> AppConfig:
        data: dict[str, Any] = {
            "discord_token": "token",
            "database_path": str(db_path),
            "allowed_file_paths": [str(tmp_dir)],
        }
        data.update(overrides)
        return AppConfig(**data)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
async def store(db_path):
    await ensure_schema(db_path)
    return SessionStore(db_path)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def deps(config, store, gateway):
    return ToolDeps(config=config, store=store, gateway=gateway)


@pytest.fixture
def registry(deps):
    registry = ToolRegistry(allowed_tools=None)
    registry.discover_and_register(deps)
    return registry
