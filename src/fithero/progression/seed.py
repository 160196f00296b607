"""Task and achievement catalog seed data."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fithero.db.models import Achievement, Task

logger = logging.getLogger(__name__)

TASK_SEED_DATA: list[dict] = [
    # Level 1
    {
        "slug": "morning_walk",
        "title": "Morning Walk",
        "description": "Take a brisk 20 minute walk before noon",
        "points": 10,
        "category": "cardio",
        "difficulty": "easy",
        "min_level": 1,
    },
    {
        "slug": "stretch_break",
        "title": "Stretch Break",
        "description": "Spend 10 minutes on a full-body stretching routine",
        "points": 10,
        "category": "flexibility",
        "difficulty": "easy",
        "min_level": 1,
    },
    {
        "slug": "hydration",
        "title": "Hydration Hero",
        "description": "Drink eight glasses of water today",
        "points": 5,
        "category": "wellness",
        "difficulty": "easy",
        "min_level": 1,
    },
    {
        "slug": "bodyweight_circuit",
        "title": "Bodyweight Circuit",
        "description": "Three rounds of squats, push-ups and lunges",
        "points": 20,
        "category": "strength",
        "difficulty": "medium",
        "min_level": 1,
    },
    # Level 2
    {
        "slug": "interval_run",
        "title": "Interval Run",
        "description": "Alternate one minute sprints with two minutes of jogging for 25 minutes",
        "points": 30,
        "category": "cardio",
        "difficulty": "medium",
        "min_level": 2,
    },
    {
        "slug": "yoga_flow",
        "title": "Yoga Flow",
        "description": "Complete a 30 minute yoga session",
        "points": 25,
        "category": "flexibility",
        "difficulty": "medium",
        "min_level": 2,
    },
    # Level 3
    {
        "slug": "strength_session",
        "title": "Strength Session",
        "description": "45 minutes of weight training covering every major muscle group",
        "points": 40,
        "category": "strength",
        "difficulty": "hard",
        "min_level": 3,
    },
    {
        "slug": "mindful_evening",
        "title": "Mindful Evening",
        "description": "Meditate for 15 minutes and log eight hours of sleep",
        "points": 20,
        "category": "wellness",
        "difficulty": "medium",
        "min_level": 3,
    },
    # Level 4+
    {
        "slug": "long_run",
        "title": "Long Run",
        "description": "Run 10 kilometres at a steady pace",
        "points": 60,
        "category": "cardio",
        "difficulty": "hard",
        "min_level": 4,
    },
]

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Badges
    {
        "slug": "first_steps",
        "title": "First Steps",
        "description": "Spend your first points and start the collection",
        "icon": "footprints",
        "cost": 10,
        "category": "badge",
        "sort_order": 1,
    },
    {
        "slug": "consistency",
        "title": "Consistency Counts",
        "description": "A badge for heroes who keep showing up",
        "icon": "calendar",
        "cost": 150,
        "category": "badge",
        "sort_order": 2,
    },
    # Job titles
    {
        "slug": "personal_trainer",
        "title": "Personal Trainer",
        "description": "Earn the Personal Trainer job title",
        "icon": "whistle",
        "cost": 50,
        "category": "job_title",
        "sort_order": 10,
    },
    {
        "slug": "fitness_coach",
        "title": "Fitness Coach",
        "description": "Earn the Fitness Coach job title",
        "icon": "clipboard",
        "cost": 150,
        "category": "job_title",
        "sort_order": 11,
    },
    {
        "slug": "wellness_expert",
        "title": "Wellness Expert",
        "description": "Earn the Wellness Expert job title",
        "icon": "leaf",
        "cost": 300,
        "category": "job_title",
        "sort_order": 12,
    },
    {
        "slug": "fitness_director",
        "title": "Fitness Director",
        "description": "Earn the Fitness Director job title",
        "icon": "building",
        "cost": 500,
        "category": "job_title",
        "sort_order": 13,
    },
    {
        "slug": "health_guru",
        "title": "Health Guru",
        "description": "Earn the Health Guru job title",
        "icon": "lotus",
        "cost": 800,
        "category": "job_title",
        "sort_order": 14,
    },
    # Characters
    {
        "slug": "iron_champion",
        "title": "Iron Champion",
        "description": "Play as the Iron Champion until your next level change",
        "icon": "shield",
        "cost": 200,
        "category": "character",
        "sort_order": 20,
    },
    {
        "slug": "zen_master",
        "title": "Zen Master",
        "description": "Play as the Zen Master until your next level change",
        "icon": "yin_yang",
        "cost": 400,
        "category": "character",
        "sort_order": 21,
    },
]


async def _upsert_by_slug(db: AsyncSession, model: Any, rows: list[dict]) -> int:  # noqa: ANN401
    existing = {
        obj.slug: obj
        for obj in (await db.execute(select(model).where(model.slug.in_([r["slug"] for r in rows])))).scalars()
    }
    for row in rows:
        obj = existing.get(row["slug"])
        if obj is None:
            db.add(model(**row))
        else:
            for key, value in row.items():
                setattr(obj, key, value)
    return len(rows)


async def seed_catalog(db: AsyncSession) -> int:
    """Insert or refresh every catalog task and achievement. Returns rows seeded."""
    seeded = await _upsert_by_slug(db, Task, TASK_SEED_DATA)
    seeded += await _upsert_by_slug(db, Achievement, ACHIEVEMENT_SEED_DATA)
    await db.commit()
    logger.info("Seeded %d tasks and %d achievements", len(TASK_SEED_DATA), len(ACHIEVEMENT_SEED_DATA))
    return seeded
