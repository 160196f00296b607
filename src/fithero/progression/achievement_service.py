"""Achievement unlocking: spend points, record the unlock, apply rewards.

Unlocking is a two-step write (debit, then insert the unlock record). If the
insert fails the debit is compensated with a credit of the same amount; a
failed compensation is logged at critical level and surfaced, never retried.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from fithero.db.models import Achievement, User, UserAchievementUnlock
from fithero.progression.errors import (
    AchievementNotFound,
    AlreadyUnlocked,
    CompensationFailed,
    InsufficientFunds,
    PersistenceFailure,
    ProgressionError,
    UniqueViolation,
    UnlockFailed,
    UserNotFound,
)
from fithero.progression.ledger import LedgerResult, PointLedger
from fithero.progression.locks import UserLocks, user_locks
from fithero.progression.store import ProgressionStore

logger = structlog.get_logger()

CATEGORY_CHARACTER = "character"
CATEGORY_JOB_TITLE = "job_title"
CATEGORY_BADGE = "badge"
ACHIEVEMENT_CATEGORIES = frozenset({CATEGORY_CHARACTER, CATEGORY_JOB_TITLE, CATEGORY_BADGE})

# Achievement title -> job title granted on unlock. Titles not listed grant nothing.
JOB_TITLES: dict[str, str] = {
    "Personal Trainer": "Personal Trainer",
    "Fitness Coach": "Fitness Coach",
    "Wellness Expert": "Wellness Expert",
    "Fitness Director": "Fitness Director",
    "Health Guru": "Health Guru",
}


def reward_fields(achievement: Achievement) -> dict[str, str]:
    """User columns an achievement rewrites when unlocked (possibly none)."""
    if achievement.category == CATEGORY_CHARACTER:
        return {"character": achievement.title}
    if achievement.category == CATEGORY_JOB_TITLE:
        job_title = JOB_TITLES.get(achievement.title)
        if job_title is not None:
            return {"job_title": job_title}
    return {}


@dataclass(frozen=True)
class UnlockResult:
    unlock: UserAchievementUnlock
    achievement: Achievement
    ledger: LedgerResult
    user: User


class AchievementService:
    """Unlock achievements against a user's point balance."""

    def __init__(
        self,
        store: ProgressionStore,
        ledger: PointLedger | None = None,
        *,
        locks: UserLocks | None = None,
    ) -> None:
        self.store = store
        self.locks = locks or user_locks
        self.ledger = ledger or PointLedger(store, self.locks)

    async def list_achievements(self) -> Sequence[Achievement]:
        return await self.store.list_achievements()

    async def list_user_unlocks(self, user_id: int) -> Sequence[UserAchievementUnlock]:
        user = await self.store.get_user(user_id)
        if user is None or not user.is_active:
            raise UserNotFound(user_id=user_id)
        return await self.store.list_unlocks(user_id)

    async def unlock(self, user_id: int, achievement_id: int) -> UnlockResult:
        """Unlock an achievement for a user.

        Steps:
        1. Resolve user and achievement
        2. Reject duplicates and unaffordable unlocks
        3. Debit the cost
        4. Insert the unlock record (compensating credit on failure)
        5. Apply the achievement's character / job title reward

        Raises:
            UserNotFound, AchievementNotFound, AlreadyUnlocked, InsufficientFunds,
            UnlockFailed: the record could not be stored; points were refunded.
            CompensationFailed: the record could not be stored and the refund failed.
        """
        async with self.locks.hold(user_id):
            user = await self.store.get_user(user_id)
            if user is None or not user.is_active:
                raise UserNotFound(user_id=user_id)

            achievement = await self.store.get_achievement(achievement_id)
            if achievement is None:
                raise AchievementNotFound(achievement_id=achievement_id)

            if await self.store.has_unlock(user_id, achievement_id):
                raise AlreadyUnlocked(achievement_id=achievement_id)

            # A rollback expires loaded rows, so keep plain values for the saga
            cost = achievement.cost
            category = achievement.category
            reward = reward_fields(achievement)

            if user.points < cost:
                raise InsufficientFunds(user_id=user_id, balance=user.points, required=cost)

            ledger = await self.ledger.debit(user_id, cost)

            try:
                unlock = await self.store.create_unlock(user_id, achievement)
            except PersistenceFailure as exc:
                await self._refund(user_id, achievement_id, cost, exc)
                if isinstance(exc, UniqueViolation):
                    raise AlreadyUnlocked(achievement_id=achievement_id) from exc
                raise UnlockFailed(achievement_id=achievement_id) from exc

            await self._apply_reward(user_id, achievement_id, reward)
            unlock = await self.store.get_unlock(user_id, achievement_id) or unlock
            user = await self.store.get_user(user_id)
            achievement = await self.store.get_achievement(achievement_id) or achievement

        logger.info(
            "achievement_unlocked",
            user_id=user_id,
            achievement_id=achievement_id,
            category=category,
            cost=cost,
            points=ledger.points,
        )
        return UnlockResult(unlock=unlock, achievement=achievement, ledger=ledger, user=user)

    async def _refund(self, user_id: int, achievement_id: int, cost: int, cause: ProgressionError) -> None:
        logger.warning(
            "achievement_unlock_insert_failed",
            user_id=user_id,
            achievement_id=achievement_id,
            cost=cost,
            cause=cause.code,
        )
        try:
            await self.ledger.credit(user_id, cost)
        except ProgressionError as exc:
            logger.critical(
                "ledger_compensation_failed",
                saga="unlock_achievement",
                user_id=user_id,
                achievement_id=achievement_id,
                points=cost,
                cause=cause.code,
                error=exc.message,
            )
            raise CompensationFailed(
                "Points were debited but the achievement was not unlocked",
                achievement_id=achievement_id,
                user_id=user_id,
                points=cost,
            ) from exc

    async def _apply_reward(self, user_id: int, achievement_id: int, fields: dict[str, str]) -> None:
        if not fields:
            return
        try:
            await self.store.update_user(user_id, **fields)
            await self.store.commit()
        except PersistenceFailure:
            # The unlock and debit stand; only the cosmetic reward is missing
            logger.error(
                "achievement_reward_failed",
                user_id=user_id,
                achievement_id=achievement_id,
                fields=fields,
                exc_info=True,
            )
