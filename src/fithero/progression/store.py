"""Storage collaborator for the progression engine.

``ProgressionStore`` wraps one ``AsyncSession`` and is the only place the
engine touches SQLAlchemy. It holds no business rules: it reads, writes and
commits, and turns ``SQLAlchemyError`` into ``PersistenceFailure`` (or
``UniqueViolation`` for constraint hits) so callers deal in domain errors only.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fithero.db.models import Achievement, DailyTaskAssignment, Task, User, UserAchievementUnlock
from fithero.progression.errors import PersistenceFailure, UniqueViolation

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class ProgressionStore:
    """Per-request data access for users, catalog and progression records."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise UniqueViolation(str(e.orig)) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("store_commit_failed", error=str(e))
            raise PersistenceFailure(str(e)) from e

    async def rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.warning("store_rollback_failed", error=str(e))
            raise PersistenceFailure(str(e)) from e

    async def _fetch(self, stmt: Any) -> Any:  # noqa: ANN401
        try:
            return await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("store_statement_failed", error=str(e))
            raise PersistenceFailure(str(e)) from e

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: int) -> User | None:
        """Fetch a user by ID, always re-reading the row from the database."""
        result = await self._fetch(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self._fetch(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> User | None:
        result = await self._fetch(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_user_by_external_key(self, external_key: str) -> User | None:
        result = await self._fetch(select(User).where(User.external_key == external_key))
        return result.scalar_one_or_none()

    async def update_balance(
        self,
        user_id: int,
        *,
        expected_points: int,
        points: int,
        level: int,
        character: str,
    ) -> bool:
        """Write a new balance with its derived state in one conditional UPDATE.

        The row is only written if its balance still equals ``expected_points``.
        Returns False when another writer got there first. Does not commit.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.points == expected_points)
            .values(
                points=points,
                level=level,
                character=character,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._fetch(stmt)
        return result.rowcount == 1

    async def update_user(self, user_id: int, **fields: Any) -> None:  # noqa: ANN401
        """Partial update of user columns. Does not commit."""
        fields["updated_at"] = datetime.now(timezone.utc)
        await self._fetch(
            update(User)
            .where(User.id == user_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def list_tasks(self, max_level: int | None = None) -> Sequence[Task]:
        """Active catalog tasks, optionally only those unlocked at ``max_level``."""
        stmt = select(Task).where(Task.is_active.is_(True))
        if max_level is not None:
            stmt = stmt.where(Task.min_level <= max_level)
        result = await self._fetch(stmt.order_by(Task.id))
        return result.scalars().all()

    async def get_task(self, task_id: int) -> Task | None:
        result = await self._fetch(select(Task).where(Task.id == task_id, Task.is_active.is_(True)))
        return result.scalar_one_or_none()

    async def get_achievement(self, achievement_id: int) -> Achievement | None:
        result = await self._fetch(
            select(Achievement).where(
                Achievement.id == achievement_id,
                Achievement.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def list_achievements(self) -> Sequence[Achievement]:
        result = await self._fetch(
            select(Achievement)
            .where(Achievement.is_active.is_(True))
            .order_by(Achievement.sort_order, Achievement.id)
        )
        return result.scalars().all()

    # ------------------------------------------------------------------
    # Daily task assignments
    # ------------------------------------------------------------------

    async def list_assignments(self, user_id: int, period: str) -> Sequence[DailyTaskAssignment]:
        result = await self._fetch(
            select(DailyTaskAssignment)
            .where(
                DailyTaskAssignment.user_id == user_id,
                DailyTaskAssignment.period == period,
            )
            .order_by(DailyTaskAssignment.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().unique().all()

    async def get_assignment(self, assignment_id: int) -> DailyTaskAssignment | None:
        result = await self._fetch(
            select(DailyTaskAssignment)
            .where(DailyTaskAssignment.id == assignment_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    def add_assignment(self, user_id: int, task: Task, period: str) -> DailyTaskAssignment:
        """Stage a new assignment with the task's current reward frozen in."""
        assignment = DailyTaskAssignment(
            user_id=user_id,
            task_id=task.id,
            task=task,
            period=period,
            points=task.points,
            completed=False,
        )
        self.db.add(assignment)
        return assignment

    async def set_completed(self, assignment_id: int, completed: bool) -> bool:
        """Flip the completion flag only if it currently holds the opposite value.

        Returns False when the flag was already ``completed``. Does not commit.
        """
        stmt = (
            update(DailyTaskAssignment)
            .where(
                DailyTaskAssignment.id == assignment_id,
                DailyTaskAssignment.completed.is_(not completed),
            )
            .values(
                completed=completed,
                completed_at=datetime.now(timezone.utc) if completed else None,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._fetch(stmt)
        return result.rowcount == 1

    async def delete_assignments(self, user_id: int, period: str) -> int:
        """Delete a user's uncompleted assignments for a period. Does not commit.

        Completed rows are never deleted; callers compare the returned count
        with the batch they checked.
        """
        result = await self._fetch(
            delete(DailyTaskAssignment)
            .where(
                DailyTaskAssignment.user_id == user_id,
                DailyTaskAssignment.period == period,
                DailyTaskAssignment.completed.is_(False),
            )
            .returning(DailyTaskAssignment.id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all())

    # ------------------------------------------------------------------
    # Achievement unlocks
    # ------------------------------------------------------------------

    async def has_unlock(self, user_id: int, achievement_id: int) -> bool:
        result = await self._fetch(
            select(
                exists().where(
                    UserAchievementUnlock.user_id == user_id,
                    UserAchievementUnlock.achievement_id == achievement_id,
                )
            )
        )
        return bool(result.scalar())

    async def get_unlock(self, user_id: int, achievement_id: int) -> UserAchievementUnlock | None:
        result = await self._fetch(
            select(UserAchievementUnlock)
            .where(
                UserAchievementUnlock.user_id == user_id,
                UserAchievementUnlock.achievement_id == achievement_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def create_unlock(self, user_id: int, achievement: Achievement) -> UserAchievementUnlock:
        """Insert and commit an unlock record."""
        unlock = UserAchievementUnlock(
            user_id=user_id,
            achievement_id=achievement.id,
            achievement=achievement,
            unlocked_at=datetime.now(timezone.utc),
        )
        self.db.add(unlock)
        await self.commit()
        return unlock

    async def list_unlocks(self, user_id: int) -> Sequence[UserAchievementUnlock]:
        result = await self._fetch(
            select(UserAchievementUnlock)
            .where(UserAchievementUnlock.user_id == user_id)
            .order_by(UserAchievementUnlock.unlocked_at.desc(), UserAchievementUnlock.id.desc())
        )
        return result.scalars().unique().all()
