"""Tool-call schemas — the closed set of requests the tool server accepts."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from secret_mcp.errors import UnknownOperation


class SearchSecrets(BaseModel):
    tool: Literal["search_secrets"] = "search_secrets"
    query: str


class WriteEnv(BaseModel):
    tool: Literal["write_env"] = "write_env"
    keys: list[str]
    path: str


ToolCall = Annotated[SearchSecrets | WriteEnv, Field(discriminator="tool")]

_tool_call_adapter: TypeAdapter[SearchSecrets | WriteEnv] = TypeAdapter(ToolCall)

TOOL_NAMES = ("search_secrets", "write_env")

# Advertised input schemas, one per tool name.
INPUT_SCHEMAS: dict[str, dict[str, Any]] = {
    "search_secrets": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query to match against secret names and descriptions",
            },
        },
        "required": ["query"],
    },
    "write_env": {
        "type": "object",
        "properties": {
            "keys": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Secret names to include in the .env file",
            },
            "path": {
                "type": "string",
                "description": "Absolute path where the .env file should be written",
            },
        },
        "required": ["keys", "path"],
    },
}


def parse_tool_call(name: str, arguments: dict[str, Any] | None) -> SearchSecrets | WriteEnv:
    """Validate a raw call into one of the known request variants.

    Raises ``UnknownOperation`` for names outside ``TOOL_NAMES`` and
    ``pydantic.ValidationError`` for malformed arguments.
    """
    if name not in TOOL_NAMES:
        raise UnknownOperation(name)
    return _tool_call_adapter.validate_python({**(arguments or {}), "tool": name})
