"""Env service — render secrets as .env text and write it owner-only."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterable
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from secret_mcp.errors import PathError
from secret_mcp.schemas.secret import WriteEnvResult
from secret_mcp.services import secret_service

logger = logging.getLogger(__name__)

_QUOTE_TRIGGERS = (" ", '"', "'", "\n")
ENV_FILE_MODE = 0o600


def needs_quoting(value: str) -> bool:
    return any(ch in value for ch in _QUOTE_TRIGGERS)


def format_env_line(name: str, value: str) -> str:
    if needs_quoting(value):
        escaped = value.replace('"', '\\"')
        return f'{name}="{escaped}"'
    return f"{name}={value}"


def render_env(pairs: Iterable[tuple[str, str]]) -> str:
    """One ``NAME=value`` line per pair, in the order given."""
    return "".join(f"{format_env_line(name, value)}\n" for name, value in pairs)


def write_private_file(path: Path, content: str) -> None:
    """Create or truncate ``path`` with mode 600 and write ``content`` in one go.

    Only regular files are written: devices, pipes and ``/proc`` fd links
    (which could reach this process's own stdout) are refused. The mode is
    applied before any byte is written, so a pre-existing file with wider
    permissions is tightened first.
    """
    if path.exists() and not path.is_file():
        raise PathError(f"Not a regular file: {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    # O_NONBLOCK: opening a FIFO with no reader fails instead of hanging
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_NONBLOCK", 0)
    fd = os.open(path, flags, ENV_FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
        if not stat.S_ISREG(os.fstat(fd).st_mode):
            raise PathError(f"Not a regular file: {path}")
        os.chmod(path, ENV_FILE_MODE)
        fh.write(content)


async def write_env(db: AsyncSession, keys: list[str], path: str) -> WriteEnvResult:
    target = Path(path)
    if not target.is_absolute():
        raise PathError("Path must be absolute")

    found: dict[str, str] = {}
    missing: list[str] = []
    for key in keys:
        secret = await secret_service.find_by_name(db, key)
        if secret is None:
            missing.append(key)
        else:
            found[secret.name] = secret.value

    # Iterate the request, not ``found``: line order follows the caller and a
    # repeated key yields a repeated line.
    content = render_env((key, found[key]) for key in keys if key in found)
    write_private_file(target, content)

    logger.info("Wrote %d secret(s) to %s (missing: %s)", len(found), target, ", ".join(missing) or "none")
    return WriteEnvResult(written=len(found), missing=missing)
