"""Tests for the tool registry and built-in Discord tools."""

import json
from datetime import datetime, timezone

import discord
import pytest

from discord_opencode.core.types import ToolContext
from discord_opencode.tools.registry import CONFIRMATION_ERROR, ToolRegistry
from discord_opencode.tools.sessions import APPROVED_MESSAGE

from conftest import insert_session, make_message, make_text_channel, make_thread

CONFIRMED = {"confirmed_by_user": True}


@pytest.fixture
async def approved_thread(gateway, db_path, store):
    thread = make_thread(555)
    gateway.channels["555"] = thread
    await insert_session(db_path, "ses_ok", "555", remote_allowed=True)
    return thread


# --- registry ---


def test_discover_registers_all_tools(registry):
    assert set(registry.names()) == {
        "send_discord_message",
        "reply_to_message",
        "edit_message",
        "delete_message",
        "add_reaction",
        "start_typing",
        "update_status",
        "create_thread_for_conversation",
        "rename_thread",
        "get_thread_history",
        "get_session_context",
        "send_file",
        "approve_remote_session",
        "get_discord_health",
    }


def test_api_dict_advertises_confirmation_flag(registry):
    api = registry.get("send_discord_message").to_api_dict()

    assert api["name"] == "send_discord_message"
    assert api["input_schema"]["properties"]["confirmed_by_user"]["type"] == "boolean"
    assert api["input_schema"]["required"] == ["content"]


@pytest.mark.asyncio
async def test_unconfirmed_call_is_gated(registry, gateway):
    gateway.channels["1"] = make_text_channel(1)

    result = await registry.execute("send_discord_message", {"content": "hi", "channel_id": "1"})

    assert result == CONFIRMATION_ERROR
    gateway.channels["1"].send.assert_not_called()


@pytest.mark.asyncio
async def test_allowed_tool_skips_confirmation(deps, gateway):
    registry = ToolRegistry(allowed_tools=["get_discord_health"])
    registry.discover_and_register(deps)

    result = json.loads(await registry.execute("get_discord_health", {}))

    assert result == {"status": "ok", "connected": True, "user": "agent#0001"}


@pytest.mark.asyncio
async def test_unknown_tool(registry):
    assert await registry.execute("nope", {}) == "Error: unknown tool 'nope'"


@pytest.mark.asyncio
async def test_missing_argument_is_reported(registry):
    result = await registry.execute("send_discord_message", dict(CONFIRMED))
    assert result == "Error: content is required"


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_error_text(registry, gateway):
    channel = make_text_channel(1)
    channel.send.side_effect = RuntimeError("boom")
    gateway.channels["1"] = channel

    result = await registry.execute(
        "send_discord_message", {"content": "hi", "channel_id": "1", **CONFIRMED}
    )
    assert result == "Error: boom"


# --- messages ---


@pytest.mark.asyncio
async def test_send_uses_session_thread_over_explicit(registry, gateway, approved_thread):
    gateway.channels["999"] = make_text_channel(999)

    result = await registry.execute(
        "send_discord_message",
        {"content": "hello", "channel_id": "999", **CONFIRMED},
        ToolContext(session_id="ses_ok"),
    )

    assert result == "Message sent: 5550"
    approved_thread.send.assert_awaited_once_with("hello")
    gateway.channels["999"].send.assert_not_called()


@pytest.mark.asyncio
async def test_send_splits_long_content(registry, gateway):
    channel = make_text_channel(1)
    gateway.channels["1"] = channel
    content = ("word " * 800).strip()

    result = await registry.execute(
        "send_discord_message", {"content": content, "channel_id": "1", **CONFIRMED}
    )

    assert result == "3 messages sent: 10, 11, 12"
    chunks = [call.args[0] for call in channel.send.await_args_list]
    assert all(len(chunk) <= 1900 for chunk in chunks)
    assert " ".join(chunks) == content


@pytest.mark.asyncio
async def test_unapproved_session_is_refused(registry, gateway, db_path, store):
    await insert_session(db_path, "ses_new", "777")

    result = await registry.execute(
        "send_discord_message", {"content": "hi", **CONFIRMED}, ToolContext(session_id="ses_new")
    )

    assert result.startswith("Remote Discord continuation is not approved")


@pytest.mark.asyncio
async def test_no_channel_at_all(registry):
    result = await registry.execute("send_discord_message", {"content": "hi", **CONFIRMED})
    assert result.startswith("Could not resolve channel")


@pytest.mark.asyncio
async def test_invalid_channel(registry):
    result = await registry.execute(
        "send_discord_message", {"content": "hi", "channel_id": "404", **CONFIRMED}
    )
    assert result == "Invalid channel: 404"


@pytest.mark.asyncio
async def test_reply_to_message(registry, gateway):
    channel = make_text_channel(1)
    channel.fetch_message.return_value = make_message(42)
    gateway.channels["1"] = channel

    result = await registry.execute(
        "reply_to_message",
        {"message_id": "42", "content": "ack", "channel_id": "1", **CONFIRMED},
    )

    assert result == "Reply sent: 1042"
    channel.fetch_message.assert_awaited_once_with(42)


@pytest.mark.asyncio
async def test_reply_rejects_long_content(registry):
    result = await registry.execute(
        "reply_to_message",
        {"message_id": "42", "content": "x" * 2001, "channel_id": "1", **CONFIRMED},
    )
    assert result == "Error: Content exceeds 2000 characters"


@pytest.mark.asyncio
async def test_update_status_uses_preset(registry, gateway):
    channel = make_text_channel(1)
    message = make_message(7)
    channel.fetch_message.return_value = message
    gateway.channels["1"] = channel

    result = await registry.execute(
        "update_status",
        {"message_id": "7", "state": "thinking", "channel_id": "1", **CONFIRMED},
    )

    assert result == "Status updated to: thinking"
    message.edit.assert_awaited_once_with(content="🧠 Thinking...")


@pytest.mark.asyncio
async def test_add_reaction_and_delete(registry, gateway):
    channel = make_text_channel(1)
    message = make_message(7)
    channel.fetch_message.return_value = message
    gateway.channels["1"] = channel

    react = await registry.execute(
        "add_reaction", {"message_id": "7", "emoji": "👍", "channel_id": "1", **CONFIRMED}
    )
    delete = await registry.execute(
        "delete_message", {"message_id": "7", "channel_id": "1", **CONFIRMED}
    )

    assert react == "Reaction 👍 added"
    assert delete == "Message deleted: 7"
    message.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_invalid_message_id(registry, gateway):
    gateway.channels["1"] = make_text_channel(1)

    result = await registry.execute(
        "delete_message", {"message_id": "abc", "channel_id": "1", **CONFIRMED}
    )
    assert result == "Error: invalid message_id 'abc'"


# --- threads ---


@pytest.mark.asyncio
async def test_create_thread_registers_session(registry, gateway, store, db_path):
    parent = make_text_channel(100)
    thread = make_thread(200, parent_id=100, owner_id=42)
    parent.create_thread.return_value = thread
    gateway.channels["100"] = parent

    result = json.loads(await registry.execute(
        "create_thread_for_conversation",
        {"channel_id": "100", "title": "t" * 150, "initial_message": "first", **CONFIRMED},
        ToolContext(session_id="ses_other"),
    ))

    assert result["thread_created"] is True
    assert result["thread_id"] == "200"
    assert result["title"] == "t" * 100
    assert result["session_registered"] is True
    assert result["session_id"]
    parent.create_thread.assert_awaited_once_with(
        name="t" * 100, auto_archive_duration=60, type=discord.ChannelType.public_thread
    )
    thread.send.assert_awaited_once_with("first")


@pytest.mark.asyncio
async def test_create_thread_requires_text_channel(registry, gateway):
    gateway.channels["200"] = make_thread(200)

    result = json.loads(await registry.execute(
        "create_thread_for_conversation",
        {"channel_id": "200", "title": "t", "initial_message": "m", **CONFIRMED},
    ))

    assert result == {"error": "Can only create threads in text channels"}


@pytest.mark.asyncio
async def test_rename_prefers_explicit_thread(registry, gateway, approved_thread):
    other = make_thread(888)
    gateway.channels["888"] = other

    result = await registry.execute(
        "rename_thread",
        {"thread_id": "888", "name": "renamed", **CONFIRMED},
        ToolContext(session_id="ses_ok"),
    )

    assert result == "Thread renamed to: renamed"
    other.edit.assert_awaited_once_with(name="renamed")
    approved_thread.edit.assert_not_called()


@pytest.mark.asyncio
async def test_rename_rejects_non_thread(registry, gateway):
    gateway.channels["1"] = make_text_channel(1)

    result = await registry.execute(
        "rename_thread", {"thread_id": "1", "name": "x", **CONFIRMED}
    )
    assert result == "Error: Not a thread"


@pytest.mark.asyncio
async def test_history_is_oldest_first(registry, gateway, db_path, store):
    when = datetime(2024, 1, 1, tzinfo=timezone.utc)
    history = [make_message(1, "first"), make_message(2, "second"), make_message(3, "third")]
    for message in history:
        message.created_at = when
    gateway.channels["300"] = make_thread(300, history=history)
    # Unapproved sessions may still read their own thread.
    await insert_session(db_path, "ses_read", "300")

    result = json.loads(await registry.execute(
        "get_thread_history", {"limit": 2, **CONFIRMED}, ToolContext(session_id="ses_read")
    ))

    assert [m["content"] for m in result] == ["second", "third"]
    assert result[0]["timestamp"] == int(when.timestamp() * 1000)


@pytest.mark.asyncio
async def test_session_context_labels_authors(registry, gateway):
    history = [make_message(1, "q", author="alice"), make_message(2, "a", author="bot", bot=True)]
    gateway.channels["300"] = make_thread(300, history=history)

    result = json.loads(await registry.execute(
        "get_session_context", {"thread_id": "300", **CONFIRMED}
    ))

    assert result["thread_id"] == "300"
    assert result["message_count"] == 2
    assert [m["author"] for m in result["history"]] == ["user", "assistant"]
    assert result["history"][0]["username"] == "alice"


# --- files ---


@pytest.mark.asyncio
async def test_send_file_attaches_sandboxed_file(registry, gateway, tmp_dir):
    channel = make_text_channel(1)
    gateway.channels["1"] = channel
    target = tmp_dir / "notes.txt"
    target.write_bytes(b"contents")

    result = await registry.execute(
        "send_file",
        {"file_path": str(target), "message": "here", "channel_id": "1", **CONFIRMED},
    )

    assert result == "File sent: 10"
    kwargs = channel.send.await_args.kwargs
    assert kwargs["content"] == "here"
    assert kwargs["file"].filename == "notes.txt"


@pytest.mark.asyncio
async def test_send_file_outside_sandbox(make_config, store, gateway, tmp_dir):
    from discord_opencode.tools.base import ToolDeps

    allowed = tmp_dir / "allowed"
    allowed.mkdir()
    config = make_config(allowed_file_paths=[str(allowed)])
    registry = ToolRegistry()
    registry.discover_and_register(ToolDeps(config=config, store=store, gateway=gateway))
    outside = tmp_dir / "secret.txt"
    outside.write_text("x")

    result = await registry.execute(
        "send_file", {"file_path": str(outside), "channel_id": "1", **CONFIRMED}
    )

    assert result.startswith("Error: File must be in allowed directory")
    assert gateway.requested == []


# --- sessions ---


@pytest.mark.asyncio
async def test_approve_tool_unlocks_session(registry, gateway, db_path, store):
    thread = make_thread(777)
    gateway.channels["777"] = thread
    await insert_session(db_path, "ses_new", "777")
    context = ToolContext(session_id="ses_new")

    approve = await registry.execute("approve_remote_session", dict(CONFIRMED), context)
    send = await registry.execute(
        "send_discord_message", {"content": "hi", **CONFIRMED}, context
    )

    assert approve == APPROVED_MESSAGE
    assert send == "Message sent: 7770"


@pytest.mark.asyncio
async def test_approve_tool_needs_session(registry):
    result = await registry.execute("approve_remote_session", dict(CONFIRMED))
    assert result == "Error: No session ID available to approve."
