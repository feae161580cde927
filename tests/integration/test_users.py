"""
Integration tests for user endpoints.
"""


class TestUserSync:
    """Tests for PUT /api/users/me."""

    async def test_create_then_update(self, async_client, user_headers):
        first = await async_client.put("/api/users/me", headers=user_headers)
        renamed = {**user_headers, "X-User-Name": "Alice B."}
        second = await async_client.put("/api/users/me", headers=renamed)

        assert first.status_code == 200
        assert first.json()["created"] is True
        user = first.json()["user"]
        assert user["auth_id"] == "auth0|user-1"
        assert user["email"] == "alice@example.com"
        assert user["has_api_key"] is False
        assert "encrypted_api_key" not in user

        assert second.json()["created"] is False
        assert second.json()["user"]["name"] == "Alice B."
        assert second.json()["user"]["id"] == user["id"]

    async def test_email_required(self, async_client):
        response = await async_client.put("/api/users/me", headers={"X-User-Id": "auth0|x"})

        assert response.status_code == 422
        assert response.json()["error"]["details"] == {"field": "email"}

    async def test_email_taken_by_another_account(self, async_client, user_headers):
        await async_client.put("/api/users/me", headers=user_headers)
        other = {"X-User-Id": "auth0|user-2", "X-User-Email": "alice@example.com"}

        response = await async_client.put("/api/users/me", headers=other)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"
        assert response.json()["error"]["details"] == {"field": "email"}

    async def test_email_change_to_taken_address(self, async_client, user_headers):
        await async_client.put("/api/users/me", headers=user_headers)
        bob = {"X-User-Id": "auth0|bob", "X-User-Email": "bob@example.com"}
        await async_client.put("/api/users/me", headers=bob)

        response = await async_client.put(
            "/api/users/me", headers={**bob, "X-User-Email": "ALICE@example.com"}
        )

        assert response.status_code == 422
        me = await async_client.get("/api/users/me", headers=bob)
        assert me.json()["user"]["email"] == "bob@example.com"

    async def test_unknown_user(self, async_client, user_headers):
        response = await async_client.get("/api/users/me", headers=user_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "user_not_found"


class TestApiKey:
    """Tests for PUT /api/users/me/api-key."""

    async def test_set_and_remove(self, async_client, user_headers, services):
        await async_client.put("/api/users/me", headers=user_headers)

        added = await async_client.put(
            "/api/users/me/api-key", json={"api_key": "AIzaOwnKey12345"}, headers=user_headers
        )
        assert added.status_code == 200
        assert added.json() == {
            "success": True,
            "message": "API key updated successfully",
            "has_api_key": True,
        }

        record = await services.users.get_user("auth0|user-1")
        assert record.encrypted_api_key
        assert "AIzaOwnKey12345" not in record.encrypted_api_key

        removed = await async_client.put(
            "/api/users/me/api-key", json={"api_key": ""}, headers=user_headers
        )
        assert removed.json()["has_api_key"] is False
        assert removed.json()["message"] == "API key removed successfully"

    async def test_own_key_is_used_for_generation(self, async_client, user_headers, provider):
        await async_client.put("/api/users/me", headers=user_headers)
        await async_client.put(
            "/api/users/me/api-key", json={"api_key": "AIzaOwnKey12345"}, headers=user_headers
        )

        response = await async_client.post(
            "/api/generate", json={"prompt": "x"}, headers=user_headers
        )

        assert response.json()["credential_source"] == "own"
        assert response.json()["quota"] == {"used": 0, "limit": -1, "remaining": -1}
        assert provider.requests[0].api_key == "AIzaOwnKey12345"


class TestStatsAndDelete:
    async def test_stats(self, async_client, user_headers):
        await async_client.post("/api/generate", json={"prompt": "x"}, headers=user_headers)

        response = await async_client.get("/api/users/me/stats", headers=user_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_generations"] == 1
        assert data["today_generations"] == 1
        assert data["daily_limit"] == 2
        assert data["remaining_today"] == 1
        assert data["has_api_key"] is False
        assert data["last_generation_at"] is not None

    async def test_delete_removes_history(self, async_client, user_headers):
        await async_client.post("/api/generate", json={"prompt": "x"}, headers=user_headers)

        response = await async_client.delete("/api/users/me", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully"
        history = await async_client.get("/api/history", headers=user_headers)
        assert history.status_code == 404

    async def test_delete_unknown(self, async_client, user_headers):
        response = await async_client.delete("/api/users/me", headers=user_headers)
        assert response.status_code == 404
