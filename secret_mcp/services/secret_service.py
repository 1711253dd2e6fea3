"""Secret service — the keyed secret store shared with the desktop app."""

from __future__ import annotations

import time
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from secret_mcp.database import casefold
from secret_mcp.errors import DuplicateNameError, NotFoundError, ValidationError
from secret_mcp.models.secret import Secret
from secret_mcp.schemas.secret import SecretCreate, SecretSearchResult, SecretUpdate


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Secret name must not be empty")
    return name


def _like_pattern(query: str) -> str:
    escaped = casefold(query).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def _commit_or_duplicate(db: AsyncSession, name: str) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateNameError(f"A secret named {name!r} already exists") from exc


async def list_secrets(db: AsyncSession) -> list[Secret]:
    result = await db.execute(select(Secret).order_by(Secret.name))
    return list(result.scalars().all())


async def get_secret(db: AsyncSession, secret_id: str) -> Secret | None:
    return await db.get(Secret, secret_id)


async def create_secret(db: AsyncSession, data: SecretCreate) -> Secret:
    name = _clean_name(data.name)
    if await find_by_name(db, name) is not None:
        raise DuplicateNameError(f"A secret named {name!r} already exists")

    now = int(time.time())
    secret = Secret(
        id=str(uuid.uuid4()),
        name=name,
        description=data.description,
        value=data.value,
        created_at=now,
        updated_at=now,
    )
    db.add(secret)
    await _commit_or_duplicate(db, name)
    await db.refresh(secret)
    return secret


async def update_secret(db: AsyncSession, secret_id: str, data: SecretUpdate) -> Secret:
    secret = await db.get(Secret, secret_id)
    if not secret:
        raise NotFoundError(f"Secret not found: {secret_id}")

    name = _clean_name(data.name)
    other = await find_by_name(db, name)
    if other is not None and other.id != secret.id:
        raise DuplicateNameError(f"A secret named {name!r} already exists")

    secret.name = name
    secret.description = data.description
    secret.value = data.value
    # Second resolution: bump past the previous stamp so updates always advance.
    secret.updated_at = max(int(time.time()), secret.updated_at + 1)

    await _commit_or_duplicate(db, name)
    await db.refresh(secret)
    return secret


async def delete_secret(db: AsyncSession, secret_id: str) -> bool:
    secret = await db.get(Secret, secret_id)
    if not secret:
        return False

    await db.delete(secret)
    await db.commit()
    return True


async def find_by_name(db: AsyncSession, name: str) -> Secret | None:
    """Exact, case-sensitive lookup (the write path's only way in)."""
    result = await db.execute(select(Secret).where(Secret.name == name))
    return result.scalar_one_or_none()


async def search_secrets(db: AsyncSession, query: str) -> list[SecretSearchResult]:
    """Case-insensitive substring search over name and description.

    Only the ``name`` and ``description`` columns are selected, so ids,
    values and timestamps never reach the result objects.
    """
    pattern = _like_pattern(query)
    stmt = (
        select(Secret.name, Secret.description)
        .where(
            or_(
                func.casefold(Secret.name).like(pattern, escape="\\"),
                func.casefold(func.coalesce(Secret.description, "")).like(pattern, escape="\\"),
            )
        )
        .order_by(Secret.name)
    )
    result = await db.execute(stmt)
    return [SecretSearchResult(name=row.name, description=row.description) for row in result]
