"""FastAPI dependencies wiring the progression services to a request session."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fithero.database import get_session
from fithero.progression.achievement_service import AchievementService
from fithero.progression.store import ProgressionStore
from fithero.progression.task_service import TaskService


async def get_store(db: AsyncSession = Depends(get_session)) -> ProgressionStore:
    return ProgressionStore(db)


async def get_task_service(store: ProgressionStore = Depends(get_store)) -> TaskService:
    return TaskService(store)


async def get_achievement_service(store: ProgressionStore = Depends(get_store)) -> AchievementService:
    return AchievementService(store)
