"""Channel resolution: decides which channel or thread a tool call may target.

Precedence, highest first:

1. The explicit id, when the call site prefers it (rename, history reads).
2. The thread bound to the caller's session, once that session is approved.
   An agent-supplied id that disagrees is logged and ignored.
3. The explicit id.
4. The configured default channel.

A bound but unapproved session may still act on an explicit id; without one
the call is rejected with RemoteApprovalRequiredError.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from discord_opencode.config import AppConfig
from discord_opencode.core.errors import ChannelResolutionError, RemoteApprovalRequiredError
from discord_opencode.core.types import ToolContext
from discord_opencode.log import get_logger
from discord_opencode.storage.session_store import SessionStore

logger = get_logger(__name__)

APPROVAL_REQUIRED_MESSAGE = (
    "Remote Discord continuation is not approved for this session. "
    "Ask the user to approve remote Discord usage or provide channel_id."
)
UNRESOLVABLE_MESSAGE = (
    "Could not resolve channel from session or args. "
    "Ensure this is running in an approved session or provide channel_id."
)


class ChannelSource(StrEnum):
    EXPLICIT = "explicit"
    SESSION = "session"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ResolvedChannel:
    channel_id: str
    source: ChannelSource

    @property
    def from_session(self) -> bool:
        return self.source is ChannelSource.SESSION


async def resolve_channel_id(
    config: AppConfig,
    store: Optional[SessionStore],
    explicit_id: Optional[str],
    context: Optional[ToolContext] = None,
    require_approval: bool = True,
    prefer_explicit: bool = False,
) -> ResolvedChannel:
    """Pick the target channel for a tool call.

    Raises RemoteApprovalRequiredError or ChannelResolutionError when no
    target is permitted.
    """
    explicit_id = explicit_id or None

    if prefer_explicit and explicit_id:
        return ResolvedChannel(explicit_id, ChannelSource.EXPLICIT)

    session_key = context.session_id if context else None
    if config.enable_session_store and store is not None and session_key:
        binding = await store.lookup_by_session_key(session_key)
        if binding is not None and binding.thread_id:
            approval_needed = require_approval and config.require_remote_approval
            if approval_needed and not binding.remote_allowed:
                if explicit_id:
                    return ResolvedChannel(explicit_id, ChannelSource.EXPLICIT)
                raise RemoteApprovalRequiredError(APPROVAL_REQUIRED_MESSAGE)

            if explicit_id and explicit_id != binding.thread_id:
                logger.info(
                    "explicit_channel_ignored",
                    explicit_id=explicit_id,
                    session_thread_id=binding.thread_id,
                    session_key=session_key,
                )
            return ResolvedChannel(binding.thread_id, ChannelSource.SESSION)

    if explicit_id:
        return ResolvedChannel(explicit_id, ChannelSource.EXPLICIT)

    if config.default_channel_id:
        return ResolvedChannel(config.default_channel_id, ChannelSource.DEFAULT)

    raise ChannelResolutionError(UNRESOLVABLE_MESSAGE)
