"""
Integration tests for the manual cron triggers.
"""

from core.config import get_settings


class TestResetDailyLimits:
    """Tests for POST /api/cron/reset-daily-limits."""

    async def test_reset(self, async_client, user_headers, cron_headers):
        for _ in range(2):
            await async_client.post("/api/generate", json={"prompt": "x"}, headers=user_headers)

        response = await async_client.post("/api/cron/reset-daily-limits", headers=cron_headers)

        assert response.status_code == 200
        assert response.json()["users_reset"] == 1
        usage = (await async_client.get("/api/quota/today", headers=user_headers)).json()
        assert usage["count"] == 0
        assert usage["remaining"] == 2

    async def test_wrong_secret(self, async_client):
        response = await async_client.post(
            "/api/cron/reset-daily-limits", headers={"X-Cron-Secret": "nope"}
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "authorization_failed"

    async def test_missing_secret(self, async_client):
        response = await async_client.post("/api/cron/reset-daily-limits")
        assert response.status_code == 403

    async def test_open_without_secret_outside_production(self, async_client, monkeypatch):
        monkeypatch.delenv("CRON_SECRET")
        get_settings.cache_clear()

        response = await async_client.post("/api/cron/reset-daily-limits")

        assert response.status_code == 200

    async def test_disabled_without_secret_in_production(self, async_client, monkeypatch):
        monkeypatch.delenv("CRON_SECRET")
        monkeypatch.setenv("ENVIRONMENT", "production")
        get_settings.cache_clear()

        response = await async_client.post("/api/cron/reset-daily-limits")

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Cron endpoints are disabled"


class TestCronStatus:
    async def test_status(self, async_client, cron_headers):
        response = await async_client.get("/api/cron/status", headers=cron_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["timezone"] == "Asia/Kolkata"
        assert data["daily_limit"] == 2
        assert set(data["jobs"]) == {"reset_daily_limits", "cleanup_generations"}
