"""
DeskBook Backend - Shared Service Helpers
===========================================

What:  Input checks, user lookups and timestamp helpers used by every
       booking/profile service.
How:   Lookups always go through the session's FieldProtector so queries
       filter on index columns, never on plaintext.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.exceptions import DatabaseError, NotFoundError, ValidationError
from deskbook.models.user import User

logger = logging.getLogger(__name__)


def require_fields(**values: Optional[str]) -> None:
    """
    Raise ValidationError for the first missing or blank value.

    Example:
        require_fields(id_place=body.id_place, id_user=body.id_user)
    """
    for field, value in values.items():
        if value is None or not str(value).strip():
            raise ValidationError(field=field)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Timestamp format used in history entries."""
    return utc_now().isoformat()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def find_user(db: AsyncSession, **index_filters: str) -> Optional[User]:
    """
    First user matching the given index columns, or None.

    Example:
        await find_user(db, id_index=session.fields.lookup("jdoe"))
    """
    try:
        result = await db.execute(select(User).filter_by(**index_filters).limit(1))
    except SQLAlchemyError as e:
        logger.error("User lookup failed: %s", str(e))
        raise DatabaseError(
            message="Failed to look up user",
            context={"filters": sorted(index_filters)},
        ) from None
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, **index_filters: str) -> User:
    """Like find_user, but a missing user raises NotFoundError."""
    user = await find_user(db, **index_filters)
    if user is None:
        logger.info("User not found for %s", sorted(index_filters))
        raise NotFoundError(resource="user")
    return user


async def flush(db: AsyncSession, operation: str) -> None:
    """Flush pending writes, translating driver errors into DatabaseError."""
    try:
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, str(e))
        raise DatabaseError(
            message=f"Failed to {operation}",
            context={"error_type": type(e).__name__},
        ) from None
