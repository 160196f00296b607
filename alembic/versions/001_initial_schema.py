"""Initial schema: users, task/achievement catalog, daily assignments, unlocks.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            external_key VARCHAR(128) UNIQUE,
            email VARCHAR(320) UNIQUE NOT NULL,
            username VARCHAR(50) UNIQUE NOT NULL,
            points INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            character VARCHAR(64) NOT NULL DEFAULT 'Rookie Hero',
            job_title VARCHAR(64) NOT NULL DEFAULT 'Fitness Novice',
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ,
            CONSTRAINT users_points_non_negative CHECK (points >= 0),
            CONSTRAINT users_level_range CHECK (level BETWEEN 1 AND 5)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_users_leaderboard
        ON users(points DESC, id) WHERE is_active
    """)

    # --- Task catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tasks (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            points INTEGER NOT NULL,
            category VARCHAR(32) NOT NULL,
            difficulty VARCHAR(16) NOT NULL,
            min_level INTEGER NOT NULL DEFAULT 1,
            is_active BOOLEAN NOT NULL DEFAULT true,
            CONSTRAINT tasks_points_non_negative CHECK (points >= 0)
        )
    """)

    # --- Achievement catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(32) NOT NULL DEFAULT '',
            cost INTEGER NOT NULL,
            category VARCHAR(16) NOT NULL,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            CONSTRAINT achievements_cost_non_negative CHECK (cost >= 0)
        )
    """)

    # --- Daily task assignments ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_task_assignments (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            task_id INTEGER NOT NULL REFERENCES tasks(id),
            period VARCHAR(10) NOT NULL,
            points INTEGER NOT NULL,
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT daily_task_assignments_user_period_task_key UNIQUE (user_id, period, task_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_daily_task_assignments_user_id
        ON daily_task_assignments(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_daily_task_assignments_period
        ON daily_task_assignments(period)
    """)

    # --- Achievement unlocks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievement_unlocks (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id INTEGER NOT NULL REFERENCES achievements(id),
            unlocked_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT user_achievement_unlocks_user_achievement_key UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_achievement_unlocks_user_id
        ON user_achievement_unlocks(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_achievement_unlocks CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_task_assignments CASCADE")
    op.execute("DROP TABLE IF EXISTS achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS tasks CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
