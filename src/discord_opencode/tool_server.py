"""JSON-lines tool server.

Each stdin line is one request::

    {"id": 1, "tool": "send_discord_message", "input": {...}, "context": {...}}
    {"id": 2, "list": true}

and each response is one stdout line carrying the same ``id``.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, TextIO

from discord_opencode.core.types import ToolContext
from discord_opencode.log import get_logger
from discord_opencode.tools.registry import ToolRegistry

logger = get_logger(__name__)

MAX_LINE_BYTES = 16 * 1024 * 1024


async def handle_request(registry: ToolRegistry, line: str) -> dict[str, Any] | None:
    """Decode one request line and return the response payload.

    Blank lines produce no response.
    """
    line = line.strip()
    if not line:
        return None

    try:
        request = json.loads(line)
    except json.JSONDecodeError as e:
        return {"error": f"invalid JSON: {e}"}
    if not isinstance(request, dict):
        return {"error": "request must be a JSON object"}

    response: dict[str, Any] = {}
    if "id" in request:
        response["id"] = request["id"]

    if request.get("list"):
        response["tools"] = [tool.to_api_dict() for tool in registry.all_tools()]
        return response

    tool_name = request.get("tool")
    if not isinstance(tool_name, str) or not tool_name:
        response["error"] = "missing 'tool'"
        return response

    tool_input = request.get("input") or {}
    if not isinstance(tool_input, dict):
        response["error"] = "'input' must be an object"
        return response

    context = ToolContext.from_mapping(request.get("context"))
    response["tool"] = tool_name
    response["result"] = await registry.execute(tool_name, tool_input, context)
    return response


def _write_response(writer: TextIO, response: dict[str, Any]) -> None:
    writer.write(json.dumps(response, ensure_ascii=False) + "\n")
    writer.flush()


async def open_stdin_reader() -> asyncio.StreamReader:
    """Wrap stdin (a pipe or tty) in an asyncio stream."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def serve(
    registry: ToolRegistry,
    reader: asyncio.StreamReader | None = None,
    writer: TextIO | None = None,
) -> None:
    """Process requests until EOF on the reader."""
    reader = reader or await open_stdin_reader()
    writer = writer or sys.stdout
    logger.info("tool_server_listening")

    while True:
        try:
            raw = await reader.readline()
        except ValueError:
            # readline has already discarded the oversized line
            logger.warning("tool_request_too_large")
            _write_response(writer, {"error": "request too large"})
            continue
        if not raw:
            break
        response = await handle_request(registry, raw.decode("utf-8", errors="replace"))
        if response is not None:
            _write_response(writer, response)

    logger.info("tool_server_eof")
