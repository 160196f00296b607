"""User management business logic."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from fithero.config import get_settings
from fithero.db.models import DEFAULT_CHARACTER, DEFAULT_JOB_TITLE, User
from fithero.progression.errors import DuplicateUser, UserNotFound
from fithero.progression.store import ProgressionStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def register_user(
    db: AsyncSession,
    email: str,
    username: str,
    external_key: str | None = None,
) -> User:
    """
    Create a user with a zero balance at level 1.

    Raises:
        DuplicateUser: If the email, username or external key is already taken.
    """
    email = email.lower().strip()
    store = ProgressionStore(db)
    if await store.get_user_by_email(email) is not None:
        raise DuplicateUser("Email already registered", email=email)
    if await store.get_user_by_username(username) is not None:
        raise DuplicateUser("Username already taken", username=username)
    if external_key is not None and await store.get_user_by_external_key(external_key) is not None:
        raise DuplicateUser("External key already linked", external_key=external_key)

    user = User(
        email=email,
        username=username,
        external_key=external_key,
        points=0,
        level=1,
        character=DEFAULT_CHARACTER,
        job_title=DEFAULT_JOB_TITLE,
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration
        await db.rollback()
        raise DuplicateUser(email=email, username=username) from e

    logger.info("user_registered", user_id=user.id, username=username)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Get an active user by ID. Raises UserNotFound for unknown or retired users."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise UserNotFound(user_id=user_id)
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    username: str | None = None,
) -> User:
    """
    Update user profile fields.

    Raises:
        DuplicateUser: If the username is already taken by another user.
    """
    if username is not None and username != user.username:
        result = await db.execute(
            select(User.id)
            .where(User.username == username)
            .where(User.id != user.id)
        )
        if result.scalar_one_or_none() is not None:
            raise DuplicateUser("Username already taken", username=username)
        user.username = username
        user.updated_at = datetime.now(timezone.utc)

    await db.flush()
    return user


async def deactivate_user(db: AsyncSession, user: User) -> User:
    """Soft-retire a user. Their records stay; they drop off the leaderboard."""
    user.is_active = False
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("user_deactivated", user_id=user.id)
    return user


def clamp_leaderboard_limit(limit: int | None) -> int:
    """Non-positive or missing limits mean the default; large ones are capped."""
    settings = get_settings()
    if limit is None or limit <= 0:
        return settings.leaderboard_default_limit
    return min(limit, settings.leaderboard_max_limit)


async def get_leaderboard(db: AsyncSession, limit: int | None = None) -> Sequence[User]:
    """Top active users by points (descending), ties broken by id."""
    result = await db.execute(
        select(User)
        .where(User.is_active.is_(True))
        .order_by(User.points.desc(), User.id)
        .limit(clamp_leaderboard_limit(limit))
    )
    return result.scalars().all()
