"""Integration tests for progression API endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from fithero.progression.seed import ACHIEVEMENT_SEED_DATA, TASK_SEED_DATA


async def _achievement_id(client: AsyncClient, slug: str) -> int:
    response = await client.get("/api/v1/achievements")
    return next(a["id"] for a in response.json()["achievements"] if a["slug"] == slug)


class TestCatalogEndpoints:
    """Public catalog and level endpoints."""

    @pytest.mark.asyncio
    async def test_list_tasks(self, seeded_client: AsyncClient):
        response = await seeded_client.get("/api/v1/tasks")
        assert response.status_code == 200
        slugs = {t["slug"] for t in response.json()["tasks"]}
        assert slugs == {t["slug"] for t in TASK_SEED_DATA}

    @pytest.mark.asyncio
    async def test_get_task(self, seeded_client: AsyncClient):
        first = (await seeded_client.get("/api/v1/tasks")).json()["tasks"][0]
        response = await seeded_client.get(f"/api/v1/tasks/{first['id']}")
        assert response.status_code == 200
        assert response.json() == first

    @pytest.mark.asyncio
    async def test_get_task_not_found(self, seeded_client: AsyncClient):
        response = await seeded_client.get("/api/v1/tasks/9999")
        assert response.status_code == 404
        assert response.json()["code"] == "task_not_found"

    @pytest.mark.asyncio
    async def test_list_achievements_in_display_order(self, seeded_client: AsyncClient):
        response = await seeded_client.get("/api/v1/achievements")
        assert response.status_code == 200
        slugs = [a["slug"] for a in response.json()["achievements"]]
        expected = [a["slug"] for a in sorted(ACHIEVEMENT_SEED_DATA, key=lambda a: a["sort_order"])]
        assert slugs == expected

    @pytest.mark.asyncio
    async def test_list_levels(self, client: AsyncClient):
        response = await client.get("/api/v1/levels")
        assert response.status_code == 200
        levels = response.json()["levels"]
        assert [lv["min_points"] for lv in levels] == [0, 100, 300, 600, 1000]
        assert levels[-1]["character"] == "Ultimate Hero"


class TestDailyTaskEndpoints:
    """Authenticated /users/me/daily-tasks endpoints."""

    @pytest.mark.asyncio
    async def test_requires_auth(self, seeded_client: AsyncClient):
        response = await seeded_client.get("/api/v1/users/me/daily-tasks")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_generate_is_idempotent(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)

        first = await seeded_client.post("/api/v1/users/me/daily-tasks", headers=headers)
        second = await seeded_client.get("/api/v1/users/me/daily-tasks", headers=headers)

        assert first.status_code == 200
        assert first.json()["total"] == 3
        assert first.json()["completed"] == 0
        assert [t["id"] for t in first.json()["tasks"]] == [t["id"] for t in second.json()["tasks"]]

    @pytest.mark.asyncio
    async def test_get_lists_without_generating(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)

        before = await seeded_client.get("/api/v1/users/me/daily-tasks", headers=headers)
        assert before.status_code == 200
        assert before.json()["total"] == 0
        assert before.json()["tasks"] == []

        await seeded_client.post("/api/v1/users/me/daily-tasks", headers=headers)
        after = await seeded_client.get("/api/v1/users/me/daily-tasks", headers=headers)
        assert after.json()["total"] == 3

    @pytest.mark.asyncio
    async def test_complete_flow_with_level_up(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user(points=95)
        headers = auth_headers(user)
        tasks = (await seeded_client.post("/api/v1/users/me/daily-tasks", headers=headers)).json()["tasks"]
        walk = next(t for t in tasks if t["points"] == 10)

        response = await seeded_client.post(
            f"/api/v1/users/me/daily-tasks/{walk['id']}/complete", headers=headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["points_awarded"] == 10
        assert data["points"] == 105
        assert data["level"] == 2
        assert data["character"] == "Fitness Apprentice"
        assert data["level_changed"] is True
        assert data["task"]["completed"] is True

        again = await seeded_client.post(
            f"/api/v1/users/me/daily-tasks/{walk['id']}/complete", headers=headers
        )
        assert again.status_code == 409
        assert again.json()["code"] == "already_completed"

        profile = (await seeded_client.get("/api/v1/users/me", headers=headers)).json()
        assert profile["points"] == 105

    @pytest.mark.asyncio
    async def test_complete_someone_elses_task(self, seeded_client: AsyncClient, make_user, auth_headers):
        owner = await make_user()
        intruder = await make_user()
        tasks = (
            await seeded_client.post("/api/v1/users/me/daily-tasks", headers=auth_headers(owner))
        ).json()["tasks"]

        response = await seeded_client.post(
            f"/api/v1/users/me/daily-tasks/{tasks[0]['id']}/complete", headers=auth_headers(intruder)
        )
        assert response.status_code == 403
        assert response.json()["kind"] == "access_denied"

    @pytest.mark.asyncio
    async def test_reset(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        tasks = (await seeded_client.post("/api/v1/users/me/daily-tasks", headers=headers)).json()["tasks"]

        response = await seeded_client.post("/api/v1/users/me/daily-tasks/reset", headers=headers)
        assert response.status_code == 200
        assert response.json()["deleted"] == 3

        fresh = (await seeded_client.post("/api/v1/users/me/daily-tasks", headers=headers)).json()["tasks"]
        await seeded_client.post(f"/api/v1/users/me/daily-tasks/{fresh[0]['id']}/complete", headers=headers)

        refused = await seeded_client.post("/api/v1/users/me/daily-tasks/reset", headers=headers)
        assert refused.status_code == 409
        assert refused.json()["code"] == "assignments_in_progress"

    @pytest.mark.asyncio
    async def test_no_tasks_available(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post("/api/v1/users/me/daily-tasks", headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["code"] == "no_tasks_available"


class TestAchievementEndpoints:
    @pytest.mark.asyncio
    async def test_unlock_spends_points(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user(points=50)
        headers = auth_headers(user)
        trainer = await _achievement_id(seeded_client, "personal_trainer")

        response = await seeded_client.post(f"/api/v1/achievements/{trainer}/unlock", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["points"] == 0
        assert data["job_title"] == "Personal Trainer"
        assert data["achievement"]["slug"] == "personal_trainer"

        mine = (await seeded_client.get("/api/v1/users/me/achievements", headers=headers)).json()
        assert mine["total_unlocked"] == 1
        assert mine["unlocked"][0]["achievement"]["slug"] == "personal_trainer"

    @pytest.mark.asyncio
    async def test_double_unlock(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user(points=200)
        headers = auth_headers(user)
        badge = await _achievement_id(seeded_client, "first_steps")

        await seeded_client.post(f"/api/v1/achievements/{badge}/unlock", headers=headers)
        response = await seeded_client.post(f"/api/v1/achievements/{badge}/unlock", headers=headers)

        assert response.status_code == 409
        assert response.json()["code"] == "already_unlocked"
        assert (await seeded_client.get("/api/v1/users/me", headers=headers)).json()["points"] == 190

    @pytest.mark.asyncio
    async def test_insufficient_points(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user(points=10)
        guru = await _achievement_id(seeded_client, "health_guru")

        response = await seeded_client.post(f"/api/v1/achievements/{guru}/unlock", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Insufficient points",
            "code": "insufficient_funds",
            "kind": "precondition_failed",
        }

    @pytest.mark.asyncio
    async def test_unknown_achievement(self, seeded_client: AsyncClient, make_user, auth_headers):
        user = await make_user(points=10)
        response = await seeded_client.post("/api/v1/achievements/9999/unlock", headers=auth_headers(user))
        assert response.status_code == 404


class TestLeaderboardEndpoint:
    @pytest.mark.asyncio
    async def test_leaderboard(self, client: AsyncClient, make_user):
        await make_user(points=10, username="slow")
        await make_user(points=700, username="fast")
        await make_user(points=300, username="steady")

        response = await client.get("/api/v1/leaderboard")
        assert response.status_code == 200
        data = response.json()
        assert data["limit"] == 10
        assert [e["user"]["username"] for e in data["entries"]] == ["fast", "steady", "slow"]
        assert [e["rank"] for e in data["entries"]] == [1, 2, 3]
        assert "email" not in data["entries"][0]["user"]

    @pytest.mark.asyncio
    async def test_leaderboard_limit_is_capped(self, client: AsyncClient, make_user):
        await make_user(points=10)
        response = await client.get("/api/v1/leaderboard", params={"limit": 1000})
        assert response.json()["limit"] == 100
