"""Tool server boundary tests (dispatch without a transport)."""

import asyncio
import json
from importlib.metadata import version

import pytest
from mcp.server.lowlevel import Server

from secret_mcp.schemas.tools import SearchSecrets, WriteEnv, parse_tool_call
from secret_mcp.errors import UnknownOperation
from secret_mcp.server import ToolCallFailed, format_write_response
from secret_mcp.services import secret_service


def _text(result) -> str:
    assert len(result.content) == 1
    return result.content[0].text


@pytest.mark.asyncio
async def test_list_tools(tool_server):
    tools = await tool_server.list_tools()
    assert [t.name for t in tools] == ["search_secrets", "write_env"]
    assert tools[0].inputSchema["required"] == ["query"]
    assert tools[1].inputSchema["required"] == ["keys", "path"]


def test_parse_tool_call_variants():
    assert parse_tool_call("search_secrets", {"query": "x"}) == SearchSecrets(query="x")
    assert parse_tool_call("write_env", {"keys": ["A"], "path": "/tmp/.env"}) == WriteEnv(
        keys=["A"], path="/tmp/.env"
    )
    with pytest.raises(UnknownOperation):
        parse_tool_call("read_secret", {"name": "A"})


@pytest.mark.asyncio
async def test_search_returns_metadata_only(tool_server, seeded):
    result = await tool_server.call_tool("search_secrets", {"query": ""})
    assert not result.isError

    payload = json.loads(_text(result))
    assert [item["name"] for item in payload] == ["API_KEY", "DATABASE_URL", "GREETING", "STRIPE_SECRET"]
    assert all(set(item) == {"name", "description"} for item in payload)
    assert payload[2]["description"] is None
    for value in ("sk-live-123", "postgres://u:p@localhost/db", "whsec with space"):
        assert value not in _text(result)


@pytest.mark.asyncio
async def test_write_env_reports_counts_not_values(tool_server, seeded, tmp_path):
    target = tmp_path / "proj" / ".env"
    result = await tool_server.call_tool("write_env", {"keys": ["API_KEY", "MISSING_ONE"], "path": str(target)})

    assert not result.isError
    assert _text(result) == (
        f"Successfully wrote 1 secret(s) to {target}\nMissing secrets (not found): MISSING_ONE"
    )
    assert "sk-live-123" not in _text(result)
    assert target.read_text() == "API_KEY=sk-live-123\n"


@pytest.mark.asyncio
async def test_write_env_relative_path_is_error(tool_server, seeded, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = await tool_server.call_tool("write_env", {"keys": ["API_KEY"], "path": ".env"})
    assert result.isError
    assert _text(result) == "Error: Path must be absolute"
    assert not (tmp_path / ".env").exists()


@pytest.mark.asyncio
async def test_unknown_tool_is_error_and_server_keeps_serving(tool_server, seeded):
    result = await tool_server.call_tool("dump_all", {})
    assert result.isError
    assert _text(result) == "Error: Unknown tool: dump_all"

    result = await tool_server.call_tool("search_secrets", {"query": "stripe"})
    assert not result.isError
    assert [item["name"] for item in json.loads(_text(result))] == ["STRIPE_SECRET"]


@pytest.mark.asyncio
async def test_malformed_arguments_are_errors(tool_server, seeded):
    result = await tool_server.call_tool("write_env", {"keys": "API_KEY"})
    assert result.isError
    assert _text(result).startswith("Error: ")

    result = await tool_server.call_tool("search_secrets", None)
    assert result.isError


@pytest.mark.asyncio
async def test_runtime_handler_raises_on_error(tool_server):
    with pytest.raises(ToolCallFailed, match="Unknown tool: nope"):
        await tool_server._handle_call_tool("nope", {})


def test_format_write_response_without_missing():
    assert format_write_response(2, [], "/x/.env") == "Successfully wrote 2 secret(s) to /x/.env"


@pytest.mark.asyncio
async def test_concurrent_calls_run_one_at_a_time_in_order(tool_server, monkeypatch):
    events = []

    async def slow_search(db, query):
        events.append(("start", query))
        await asyncio.sleep(0.01)
        events.append(("end", query))
        return []

    monkeypatch.setattr(secret_service, "search_secrets", slow_search)

    results = await asyncio.gather(
        *(tool_server.call_tool("search_secrets", {"query": q}) for q in ("a", "b", "c"))
    )

    assert all(not r.isError for r in results)
    assert events == [
        ("start", "a"), ("end", "a"),
        ("start", "b"), ("end", "b"),
        ("start", "c"), ("end", "c"),
    ]


def test_installed_sdk_has_lowlevel_decorators():
    assert version("mcp").split(".")[0] == "1"
    assert callable(getattr(Server, "list_tools", None))
    assert callable(getattr(Server, "call_tool", None))
