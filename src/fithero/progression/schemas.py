"""Pydantic response models for progression endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


# --- Catalog ---


class TaskResponse(BaseModel):
    id: int
    slug: str
    title: str
    description: str
    points: int
    category: str
    difficulty: str
    min_level: int

    model_config = {"from_attributes": True}


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]


class AchievementResponse(BaseModel):
    id: int
    slug: str
    title: str
    description: str
    icon: str
    cost: int
    category: str

    model_config = {"from_attributes": True}


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    character: str
    min_points: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


class ProgressResponse(BaseModel):
    points: int
    level: int
    character: str
    points_into_level: int
    points_for_level: int
    next_level: int
    next_character: str


# --- Daily tasks ---


class DailyTaskResponse(BaseModel):
    id: int
    task_id: int
    title: str
    description: str
    category: str
    difficulty: str
    points: int
    period: str
    completed: bool
    completed_at: datetime | None = None


class DailyTasksResponse(BaseModel):
    period: str
    tasks: list[DailyTaskResponse]
    completed: int
    total: int


class DailyTaskResetResponse(BaseModel):
    period: str
    deleted: int


class TaskCompletionResponse(BaseModel):
    task: DailyTaskResponse
    points_awarded: int
    points: int
    level: int
    character: str
    level_changed: bool


# --- Achievements ---


class UnlockedAchievementResponse(BaseModel):
    achievement: AchievementResponse
    unlocked_at: datetime


class UserAchievementsResponse(BaseModel):
    unlocked: list[UnlockedAchievementResponse]
    total_unlocked: int


class UnlockResponse(BaseModel):
    achievement: AchievementResponse
    unlocked_at: datetime
    points: int
    level: int
    character: str
    job_title: str
