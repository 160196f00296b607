"""Point ledger: the only writer of a user's point balance.

Every balance change recomputes level and character from the new total and
persists all three in one conditional UPDATE, so derived state can never
drift from the balance.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from fithero.progression.errors import (
    BalanceConflict,
    InsufficientFunds,
    InvalidAmount,
    UserNotFound,
)
from fithero.progression.level_thresholds import character_for_level, level_for_points
from fithero.progression.locks import UserLocks, user_locks
from fithero.progression.store import ProgressionStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class LedgerResult:
    user_id: int
    previous_points: int
    points: int
    level: int
    character: str
    previous_level: int

    @property
    def level_changed(self) -> bool:
        return self.level != self.previous_level


class PointLedger:
    """Credit and debit a user's balance, serialized per user."""

    def __init__(self, store: ProgressionStore, locks: UserLocks | None = None) -> None:
        self.store = store
        self.locks = locks or user_locks

    async def credit(self, user_id: int, amount: int) -> LedgerResult:
        """Add ``amount`` points. Raises UserNotFound, PersistenceFailure."""
        return await self._apply(user_id, amount, "credit")

    async def debit(self, user_id: int, amount: int) -> LedgerResult:
        """Remove ``amount`` points. Raises InsufficientFunds if the balance is short."""
        return await self._apply(user_id, amount, "debit")

    async def _apply(self, user_id: int, amount: int, op: str) -> LedgerResult:
        if amount < 0:
            raise InvalidAmount(user_id=user_id, amount=amount)
        delta = amount if op == "credit" else -amount

        async with self.locks.hold(user_id):
            user = await self.store.get_user(user_id)
            if user is None:
                raise UserNotFound(user_id=user_id)

            previous_points = user.points
            previous_level = user.level
            new_points = previous_points + delta
            if new_points < 0:
                raise InsufficientFunds(
                    user_id=user_id, balance=previous_points, required=amount,
                )

            level = level_for_points(new_points)
            character = character_for_level(level)

            written = await self.store.update_balance(
                user_id,
                expected_points=previous_points,
                points=new_points,
                level=level,
                character=character,
            )
            if not written:
                await self.store.rollback()
                logger.warning(
                    "ledger_balance_conflict",
                    user_id=user_id,
                    op=op,
                    amount=amount,
                    expected_points=previous_points,
                )
                raise BalanceConflict(user_id=user_id)
            await self.store.commit()

        result = LedgerResult(
            user_id=user_id,
            previous_points=previous_points,
            points=new_points,
            level=level,
            character=character,
            previous_level=previous_level,
        )
        logger.info(
            "points_credited" if op == "credit" else "points_debited",
            user_id=user_id,
            amount=amount,
            points=new_points,
            level=level,
        )
        if result.level_changed:
            logger.info(
                "level_up" if level > previous_level else "level_down",
                user_id=user_id,
                old_level=previous_level,
                new_level=level,
                character=character,
            )
        return result
