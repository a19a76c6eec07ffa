"""Resolve which tools may run without per-call user confirmation."""

from __future__ import annotations

import re
from pathlib import Path

from discord_opencode.config import AppConfig
from discord_opencode.log import get_logger

logger = get_logger(__name__)

ALLOWED_TOOLS_HEADER = "## Allowed Tools"
_TOOL_NAME_PATTERN = re.compile(r"`([a-z0-9_]+)`", re.IGNORECASE)


def parse_allowed_tools_section(contents: str) -> set[str] | None:
    """Return the backticked tool names under the Allowed Tools header.

    None means the header is absent.
    """
    header_index = contents.find(ALLOWED_TOOLS_HEADER)
    if header_index == -1:
        return None

    tools: set[str] = set()
    for line in contents[header_index:].split("\n")[1:]:
        if line.startswith("## "):
            break
        if match := _TOOL_NAME_PATTERN.search(line):
            tools.add(match.group(1))
    return tools


def resolve_allowed_tools(config: AppConfig, cwd: Path | None = None) -> set[str]:
    """Config list first, then AGENTS.md in the working directory, else nothing."""
    if config.allowed_tools:
        return set(config.allowed_tools)

    agents_path = (cwd or Path.cwd()) / "AGENTS.md"
    if not agents_path.exists():
        logger.warning("allowed_tools_unconfigured", reason="AGENTS.md not found")
        return set()

    tools = parse_allowed_tools_section(agents_path.read_text(encoding="utf-8"))
    if tools is None:
        logger.warning("allowed_tools_unconfigured", reason="Allowed Tools section missing")
        return set()
    return tools
