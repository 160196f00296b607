"""Per-user lock tests: serialization, re-entrancy, independence."""

from __future__ import annotations

import asyncio

import pytest

from fithero.progression.locks import UserLocks


class TestUserLocks:
    @pytest.mark.asyncio
    async def test_same_user_is_serialized(self):
        locks = UserLocks()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold(1):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_reentrant_within_task(self):
        locks = UserLocks()
        async with locks.hold(1):
            async with locks.hold(1):
                entered = True
        assert entered

    @pytest.mark.asyncio
    async def test_different_users_do_not_block(self):
        locks = UserLocks()
        both_inside = asyncio.Event()
        inside = 0

        async def worker(user_id: int) -> None:
            nonlocal inside
            async with locks.hold(user_id):
                inside += 1
                if inside == 2:
                    both_inside.set()
                await asyncio.wait_for(both_inside.wait(), timeout=1)

        await asyncio.gather(worker(1), worker(2))
        assert both_inside.is_set()

    @pytest.mark.asyncio
    async def test_released_after_error(self):
        locks = UserLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold(1):
                raise RuntimeError("boom")

        async with locks.hold(1):
            pass
