"""Exception hierarchy shared across the package."""

from __future__ import annotations

from pathlib import Path


class DiscordOpencodeError(Exception):
    """Base class for all package errors."""


class SchemaError(DiscordOpencodeError):
    """The session store could not be created, opened, or migrated.

    Fatal: session-dependent features must not start after this is raised.
    """

    def __init__(self, message: str, path: str | Path, cause: BaseException | None = None):
        super().__init__(message)
        self.path = str(path)
        self.cause = cause


class ChannelResolutionError(DiscordOpencodeError):
    """No target channel could be determined for a tool call."""


class RemoteApprovalRequiredError(ChannelResolutionError):
    """The session is bound to a thread but has not been approved for remote use."""


class ToolInputError(DiscordOpencodeError):
    """A tool was called with arguments it cannot act on."""
