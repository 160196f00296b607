"""Daily task assignment and completion.

Assignments are level-gated and idempotent per (user, period): the first call
in a period picks tasks the user's level allows and freezes their rewards;
later calls in the same period return that same batch. A period is a UTC
calendar day.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

import structlog

from fithero.config import get_settings
from fithero.db.models import DailyTaskAssignment, Task, User
from fithero.progression.errors import (
    AccessDenied,
    AlreadyCompleted,
    AssignmentNotFound,
    AssignmentsInProgress,
    CompensationFailed,
    NoTasksAvailable,
    NotCurrentPeriod,
    PersistenceFailure,
    PointsAwardFailed,
    ProgressionError,
    TaskNotFound,
    UniqueViolation,
    UserNotFound,
)
from fithero.progression.ledger import LedgerResult, PointLedger
from fithero.progression.locks import UserLocks, user_locks
from fithero.progression.store import ProgressionStore

logger = structlog.get_logger()


def current_period(today: date | None = None) -> str:
    """Period key for a day (ISO date), defaulting to today in UTC."""
    day = today or datetime.now(timezone.utc).date()
    return day.isoformat()


@dataclass(frozen=True)
class CompletionResult:
    assignment: DailyTaskAssignment
    points_awarded: int
    ledger: LedgerResult


class TaskService:
    """Generate, list, reset and complete a user's daily tasks."""

    def __init__(
        self,
        store: ProgressionStore,
        ledger: PointLedger | None = None,
        *,
        locks: UserLocks | None = None,
        period_fn: Callable[[], str] = current_period,
        task_count: int | None = None,
    ) -> None:
        self.store = store
        self.locks = locks or user_locks
        self.ledger = ledger or PointLedger(store, self.locks)
        self.period_fn = period_fn
        self.task_count = task_count if task_count is not None else get_settings().daily_task_count

    async def _active_user(self, user_id: int) -> User:
        user = await self.store.get_user(user_id)
        if user is None or not user.is_active:
            raise UserNotFound(user_id=user_id)
        return user

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def list_tasks(self, max_level: int | None = None) -> Sequence[Task]:
        return await self.store.list_tasks(max_level=max_level)

    async def get_task(self, task_id: int) -> Task:
        task = await self.store.get_task(task_id)
        if task is None:
            raise TaskNotFound(task_id=task_id)
        return task

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    async def generate_daily_tasks(self, user_id: int) -> Sequence[DailyTaskAssignment]:
        """Return the user's batch for the current period, creating it on first call.

        Raises:
            UserNotFound: user is missing or deactivated.
            NoTasksAvailable: no active task is open to the user's level.
            PersistenceFailure: the batch could not be stored.
        """
        period = self.period_fn()
        async with self.locks.hold(user_id):
            user = await self._active_user(user_id)

            existing = await self.store.list_assignments(user_id, period)
            if existing:
                return existing

            candidates = await self.store.list_tasks(max_level=user.level)
            if not candidates:
                raise NoTasksAvailable(user_id=user_id, level=user.level)

            for task in candidates[: self.task_count]:
                self.store.add_assignment(user_id, task, period)

            try:
                await self.store.commit()
            except UniqueViolation:
                # Another process created this period's batch first
                logger.info("daily_tasks_already_generated", user_id=user_id, period=period)
                return await self.store.list_assignments(user_id, period)

            created = await self.store.list_assignments(user_id, period)

        logger.info(
            "daily_tasks_generated",
            user_id=user_id,
            period=period,
            level=user.level,
            task_ids=[a.task_id for a in created],
        )
        return created

    async def list_daily_tasks(self, user_id: int, period: str | None = None) -> Sequence[DailyTaskAssignment]:
        """The user's assignments for ``period`` (default: current period)."""
        await self._active_user(user_id)
        return await self.store.list_assignments(user_id, period or self.period_fn())

    async def reset_daily_tasks(self, user_id: int) -> int:
        """Drop the current period's batch so the next generate call picks afresh.

        Refused with AssignmentsInProgress once any task in the batch is completed.
        """
        period = self.period_fn()
        async with self.locks.hold(user_id):
            await self._active_user(user_id)
            existing = await self.store.list_assignments(user_id, period)
            if any(a.completed for a in existing):
                raise AssignmentsInProgress(user_id=user_id, period=period)
            deleted = await self.store.delete_assignments(user_id, period)
            if deleted != len(existing):
                # A task was completed elsewhere after the check above
                await self.store.rollback()
                raise AssignmentsInProgress(user_id=user_id, period=period)
            await self.store.commit()

        logger.info("daily_tasks_reset", user_id=user_id, period=period, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete_task(self, user_id: int, assignment_id: int) -> CompletionResult:
        """Mark an assignment completed and credit its frozen points.

        Raises:
            AssignmentNotFound, AccessDenied, AlreadyCompleted, NotCurrentPeriod,
            PointsAwardFailed: the credit failed and the completion was reverted.
            CompensationFailed: the credit failed and so did the revert.
        """
        async with self.locks.hold(user_id):
            assignment = await self.store.get_assignment(assignment_id)
            if assignment is None:
                raise AssignmentNotFound(assignment_id=assignment_id)
            if assignment.user_id != user_id:
                logger.warning(
                    "daily_task_access_denied",
                    user_id=user_id,
                    assignment_id=assignment_id,
                    owner_id=assignment.user_id,
                )
                raise AccessDenied(assignment_id=assignment_id)
            if assignment.completed:
                raise AlreadyCompleted(assignment_id=assignment_id)
            period = self.period_fn()
            if assignment.period != period:
                raise NotCurrentPeriod(
                    assignment_id=assignment_id, period=assignment.period, current_period=period,
                )

            points = assignment.points
            if not await self.store.set_completed(assignment_id, True):
                await self.store.rollback()
                raise AlreadyCompleted(assignment_id=assignment_id)
            await self.store.commit()

            try:
                ledger = await self.ledger.credit(user_id, points)
            except ProgressionError as exc:
                await self._revert_completion(user_id, assignment_id, points, exc)
                raise PointsAwardFailed(
                    assignment_id=assignment_id, points=points, cause=exc.code,
                ) from exc

            assignment = await self.store.get_assignment(assignment_id)

        logger.info(
            "daily_task_completed",
            user_id=user_id,
            assignment_id=assignment_id,
            points_awarded=ledger.points - ledger.previous_points,
        )
        return CompletionResult(
            assignment=assignment,
            points_awarded=ledger.points - ledger.previous_points,
            ledger=ledger,
        )

    async def _revert_completion(
        self,
        user_id: int,
        assignment_id: int,
        points: int,
        cause: ProgressionError,
    ) -> None:
        logger.warning(
            "daily_task_credit_failed",
            user_id=user_id,
            assignment_id=assignment_id,
            points=points,
            cause=cause.code,
        )
        failure: PersistenceFailure | None = None
        error = "completion flag was already cleared"
        try:
            await self.store.rollback()
            if await self.store.set_completed(assignment_id, False):
                await self.store.commit()
                return
            await self.store.rollback()
        except PersistenceFailure as exc:
            failure = exc
            error = exc.message

        logger.critical(
            "ledger_compensation_failed",
            saga="complete_task",
            user_id=user_id,
            assignment_id=assignment_id,
            points=points,
            cause=cause.code,
            error=error,
        )
        raise CompensationFailed(
            "Task is marked completed but its points were not credited",
            assignment_id=assignment_id,
            user_id=user_id,
            points=points,
        ) from failure
