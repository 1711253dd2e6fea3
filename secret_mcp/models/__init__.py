from secret_mcp.models.secret import Secret

__all__ = ["Secret"]
