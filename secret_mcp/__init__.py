"""Local secret store with an MCP tool server that writes .env files for agents."""

__version__ = "0.1.0"
