"""MCP tool server — lets an agent find secrets and write .env files without seeing values."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import mcp.server.stdio
import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secret_mcp import __version__
from secret_mcp.errors import UnknownOperation
from secret_mcp.schemas.secret import SecretSearchResult
from secret_mcp.schemas.tools import INPUT_SCHEMAS, SearchSecrets, WriteEnv, parse_tool_call
from secret_mcp.services import env_service, secret_service

logger = logging.getLogger(__name__)

SERVER_NAME = "secret-mcp-server"

TOOL_DESCRIPTIONS = {
    "search_secrets": (
        "Search for secrets by name or description. Returns names and descriptions only, "
        "never values. Use this to find secrets before writing them to a .env file."
    ),
    "write_env": (
        "Write specified secrets to a .env file. Values are retrieved securely and never "
        "exposed to the AI. The file is created with restricted permissions (600)."
    ),
}


class ToolCallFailed(Exception):
    """Raised into the MCP runtime so it flags the response as an error."""


def format_search_response(results: list[SecretSearchResult]) -> str:
    return json.dumps([r.model_dump() for r in results], indent=2)


def format_write_response(written: int, missing: list[str], path: str) -> str:
    message = f"Successfully wrote {written} secret(s) to {path}"
    if missing:
        message += f"\nMissing secrets (not found): {', '.join(missing)}"
    return message


def _text_result(text: str, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
    )


class ToolServer:
    """Serves ``search_secrets`` and ``write_env`` over one store handle.

    Calls are processed one at a time in arrival order. Every failure inside
    a call becomes an error-flagged result; the server keeps serving.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions
        self._lock = asyncio.Lock()
        self.server: Server = Server(SERVER_NAME)
        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self._handle_call_tool)

    async def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(name=name, description=TOOL_DESCRIPTIONS[name], inputSchema=schema)
            for name, schema in INPUT_SCHEMAS.items()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        async with self._lock:
            try:
                request = parse_tool_call(name, arguments)
                text = await self._dispatch(request)
            except Exception as exc:
                logger.warning("Tool call %s failed: %s", name, exc)
                return _text_result(f"Error: {exc}", is_error=True)
        return _text_result(text)

    async def _dispatch(self, request: SearchSecrets | WriteEnv) -> str:
        async with self._sessions() as db:
            if isinstance(request, SearchSecrets):
                results = await secret_service.search_secrets(db, request.query)
                logger.info("search_secrets matched %d secret(s)", len(results))
                return format_search_response(results)

            if isinstance(request, WriteEnv):
                outcome = await env_service.write_env(db, request.keys, request.path)
                return format_write_response(outcome.written, outcome.missing, request.path)

        raise UnknownOperation(request.tool)

    async def _handle_call_tool(self, name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        result = await self.call_tool(name, arguments)
        if result.isError:
            raise ToolCallFailed(result.content[0].text)
        return result.content

    async def run(self) -> None:
        """Serve over stdin/stdout until the client disconnects."""
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )
