"""User management router: /api/v1/users/* and /api/v1/admin/users."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fithero.auth.dependencies import get_current_user, require_admin
from fithero.auth.jwt import create_access_token
from fithero.database import get_session
from fithero.db.models import User
from fithero.progression.level_thresholds import compute_level
from fithero.progression.schemas import ProgressResponse
from fithero.users.schemas import (
    ProfileUpdateRequest,
    PublicUserResponse,
    UserCreateRequest,
    UserCreateResponse,
    UserResponse,
)
from fithero.users.service import deactivate_user, get_user, register_user, update_profile

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def progress_response(points: int) -> ProgressResponse:
    return ProgressResponse(points=points, **compute_level(points))


def user_response(user: User) -> UserResponse:
    """Build a UserResponse from a User model."""
    return UserResponse(
        id=user.id,
        email=user.email,
        username=user.username,
        points=user.points,
        level=user.level,
        character=user.character,
        job_title=user.job_title,
        is_active=user.is_active,
        created_at=user.created_at,
        progress=progress_response(user.points),
    )


def public_user_response(user: User) -> PublicUserResponse:
    return PublicUserResponse(
        id=user.id,
        username=user.username,
        points=user.points,
        level=user.level,
        character=user.character,
        job_title=user.job_title,
    )


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def get_profile(
    user: User = Depends(get_current_user),
) -> UserResponse:
    """Get own full profile with level progress."""
    return user_response(user)


@router.patch("/me", response_model=UserResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update profile (username)."""
    user = await update_profile(db, user, username=body.username)
    await db.commit()
    return user_response(user)


@router.delete("/me")
async def deactivate_my_account(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Soft-retire the caller's account."""
    await deactivate_user(db, user)
    await db.commit()
    return {"status": "user_deactivated"}


# ---------------------------------------------------------------------------
# Public profile
# ---------------------------------------------------------------------------


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_public_profile(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> PublicUserResponse:
    """Get public profile by user ID."""
    user = await get_user(db, user_id)
    return public_user_response(user)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@admin_router.post("/users", response_model=UserCreateResponse, status_code=201)
async def create_user(
    body: UserCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> UserCreateResponse:
    """Register a user and issue an access token for them."""
    user = await register_user(db, body.email, body.username, external_key=body.external_key)
    return UserCreateResponse(
        user=user_response(user),
        access_token=create_access_token(user.id, user.username),
    )
