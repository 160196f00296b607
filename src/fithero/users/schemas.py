"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from fithero.progression.schemas import ProgressResponse


class UserResponse(BaseModel):
    """Full user profile response."""

    id: int
    email: str
    username: str
    points: int
    level: int
    character: str
    job_title: str
    is_active: bool = True
    created_at: datetime | None = None
    progress: ProgressResponse


class PublicUserResponse(BaseModel):
    """Public-facing user profile."""

    id: int
    username: str
    points: int
    level: int
    character: str
    job_title: str


class LeaderboardEntry(BaseModel):
    rank: int
    user: PublicUserResponse


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    limit: int


class ProfileUpdateRequest(BaseModel):
    """Update user profile fields."""

    username: str | None = Field(None, min_length=3, max_length=50)


class UserCreateRequest(BaseModel):
    """Create a user on behalf of the identity provider."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    external_key: str | None = Field(None, min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class UserCreateResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
