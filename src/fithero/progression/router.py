"""Progression API endpoints: catalog, daily tasks, achievements, leaderboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fithero.auth.dependencies import get_current_user
from fithero.database import get_session
from fithero.db.models import DailyTaskAssignment, User
from fithero.progression.achievement_service import AchievementService
from fithero.progression.dependencies import get_achievement_service, get_task_service
from fithero.progression.level_thresholds import LEVEL_THRESHOLDS
from fithero.progression.schemas import (
    AchievementListResponse,
    AchievementResponse,
    AllLevelsResponse,
    DailyTaskResetResponse,
    DailyTaskResponse,
    DailyTasksResponse,
    LevelEntry,
    TaskCompletionResponse,
    TaskListResponse,
    TaskResponse,
    UnlockedAchievementResponse,
    UnlockResponse,
    UserAchievementsResponse,
)
from fithero.progression.task_service import TaskService
from fithero.users.router import public_user_response
from fithero.users.schemas import LeaderboardEntry, LeaderboardResponse
from fithero.users.service import clamp_leaderboard_limit, get_leaderboard

router = APIRouter(prefix="/api/v1", tags=["Progression"])


def _daily_task_response(assignment: DailyTaskAssignment) -> DailyTaskResponse:
    return DailyTaskResponse(
        id=assignment.id,
        task_id=assignment.task_id,
        title=assignment.task.title,
        description=assignment.task.description,
        category=assignment.task.category,
        difficulty=assignment.task.difficulty,
        points=assignment.points,
        period=assignment.period,
        completed=assignment.completed,
        completed_at=assignment.completed_at,
    )


def _daily_tasks_response(period: str, assignments: list[DailyTaskAssignment]) -> DailyTasksResponse:
    return DailyTasksResponse(
        period=period,
        tasks=[_daily_task_response(a) for a in assignments],
        completed=sum(1 for a in assignments if a.completed),
        total=len(assignments),
    )


# ── Public endpoints ──


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(service: TaskService = Depends(get_task_service)):
    """Get the active task catalog."""
    tasks = await service.list_tasks()
    return TaskListResponse(tasks=[TaskResponse.model_validate(t) for t in tasks])


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, service: TaskService = Depends(get_task_service)):
    """Get a single catalog task."""
    return TaskResponse.model_validate(await service.get_task(task_id))


@router.get("/achievements", response_model=AchievementListResponse)
async def list_achievements(service: AchievementService = Depends(get_achievement_service)):
    """Get all active achievements, in display order."""
    achievements = await service.list_achievements()
    return AchievementListResponse(
        achievements=[AchievementResponse.model_validate(a) for a in achievements]
    )


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level definitions."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(level=t["level"], character=t["character"], min_points=t["min_points"])
            for t in LEVEL_THRESHOLDS
        ]
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(0, description="Number of entries; 0 or less means the default"),
    db: AsyncSession = Depends(get_session),
):
    """Top active users by points."""
    users = await get_leaderboard(db, limit)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntry(rank=i, user=public_user_response(u))
            for i, u in enumerate(users, start=1)
        ],
        limit=clamp_leaderboard_limit(limit),
    )


# ── Authenticated endpoints ──


@router.get("/users/me/daily-tasks", response_model=DailyTasksResponse)
async def get_my_daily_tasks(
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Get today's assignments. Empty until they are generated with POST."""
    assignments = await service.list_daily_tasks(user.id)
    return _daily_tasks_response(service.period_fn(), list(assignments))


@router.post("/users/me/daily-tasks", response_model=DailyTasksResponse)
async def generate_my_daily_tasks(
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Generate today's assignments. Repeat calls return the same batch."""
    assignments = await service.generate_daily_tasks(user.id)
    return _daily_tasks_response(service.period_fn(), list(assignments))


@router.post("/users/me/daily-tasks/reset", response_model=DailyTaskResetResponse)
async def reset_my_daily_tasks(
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Discard today's untouched assignments."""
    deleted = await service.reset_daily_tasks(user.id)
    return DailyTaskResetResponse(period=service.period_fn(), deleted=deleted)


@router.post("/users/me/daily-tasks/{assignment_id}/complete", response_model=TaskCompletionResponse)
async def complete_my_daily_task(
    assignment_id: int,
    user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Complete an assignment and collect its points."""
    result = await service.complete_task(user.id, assignment_id)
    return TaskCompletionResponse(
        task=_daily_task_response(result.assignment),
        points_awarded=result.points_awarded,
        points=result.ledger.points,
        level=result.ledger.level,
        character=result.ledger.character,
        level_changed=result.ledger.level_changed,
    )


@router.get("/users/me/achievements", response_model=UserAchievementsResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    service: AchievementService = Depends(get_achievement_service),
):
    """Get the caller's unlocked achievements, newest first."""
    unlocks = await service.list_user_unlocks(user.id)
    return UserAchievementsResponse(
        unlocked=[
            UnlockedAchievementResponse(
                achievement=AchievementResponse.model_validate(u.achievement),
                unlocked_at=u.unlocked_at,
            )
            for u in unlocks
        ],
        total_unlocked=len(unlocks),
    )


@router.post("/achievements/{achievement_id}/unlock", response_model=UnlockResponse)
async def unlock_achievement(
    achievement_id: int,
    user: User = Depends(get_current_user),
    service: AchievementService = Depends(get_achievement_service),
):
    """Spend points to unlock an achievement."""
    result = await service.unlock(user.id, achievement_id)
    return UnlockResponse(
        achievement=AchievementResponse.model_validate(result.achievement),
        unlocked_at=result.unlock.unlocked_at,
        points=result.user.points,
        level=result.user.level,
        character=result.user.character,
        job_title=result.user.job_title,
    )
