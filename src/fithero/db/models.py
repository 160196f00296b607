"""ORM models for users, the task/achievement catalog and progression records.

Schema is created by alembic/versions/001_initial_schema.py; tests build it
straight from this metadata.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fithero.db.base import BigIntPK, Base

DEFAULT_CHARACTER = "Rookie Hero"
DEFAULT_JOB_TITLE = "Fitness Novice"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Identity plus point economy state. Soft-retired via is_active."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("points >= 0", name="users_points_non_negative"),
        CheckConstraint("level BETWEEN 1 AND 5", name="users_level_range"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    external_key: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    character: Mapped[str] = mapped_column(
        String(64), nullable=False, default=DEFAULT_CHARACTER, server_default=DEFAULT_CHARACTER
    )
    job_title: Mapped[str] = mapped_column(
        String(64), nullable=False, default=DEFAULT_JOB_TITLE, server_default=DEFAULT_JOB_TITLE
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Catalog (reference data, seeded)
# ---------------------------------------------------------------------------


class Task(Base):
    """Task catalog entry."""

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("points >= 0", name="tasks_points_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    min_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")


class Achievement(Base):
    """Achievement catalog entry. category is character, job_title or badge."""

    __tablename__ = "achievements"
    __table_args__ = (
        CheckConstraint("cost >= 0", name="achievements_cost_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(32), nullable=False, default="", server_default="")
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")


# ---------------------------------------------------------------------------
# Progression records
# ---------------------------------------------------------------------------


class DailyTaskAssignment(Base):
    """A catalog task assigned to a user for one period, with its reward frozen."""

    __tablename__ = "daily_task_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "period", "task_id", name="daily_task_assignments_user_period_task_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=False)
    period: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    task: Mapped[Task] = relationship("Task", lazy="joined")


class UserAchievementUnlock(Base):
    """Achievements unlocked by users. UNIQUE(user_id, achievement_id) prevents duplicates."""

    __tablename__ = "user_achievement_unlocks"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievement_unlocks_user_achievement_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    achievement_id: Mapped[int] = mapped_column(Integer, ForeignKey("achievements.id"), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    achievement: Mapped[Achievement] = relationship("Achievement", lazy="joined")
