"""Integration tests for user profile API."""

import uuid

import pytest
from httpx import AsyncClient


class TestProfileAPI:
    """Tests for the authenticated user's own profile."""

    @pytest.mark.asyncio
    async def test_get_profile_includes_email(self, client: AsyncClient, auth_headers, test_user):
        response = await client.get("/api/users/profile", headers=auth_headers)

        assert response.status_code == 200
        profile = response.json()["data"]
        assert profile["id"] == test_user.id
        assert profile["email"] == test_user.email
        assert profile["stats"] == {"voicePosts": 0, "challengesWon": 0, "totalPlays": 0}

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, auth_headers):
        response = await client.put(
            "/api/users/profile",
            headers=auth_headers,
            json={"displayName": "Tess", "bio": "Voice actor"},
        )

        profile = response.json()["data"]
        assert profile["displayName"] == "Tess"
        assert profile["bio"] == "Voice actor"

    @pytest.mark.asyncio
    async def test_visibility_requires_boolean(self, client: AsyncClient, auth_headers):
        bad = await client.put("/api/users/visibility", headers=auth_headers, json={"isPublic": "no"})
        assert bad.status_code == 400
        assert bad.json()["error"]["message"] == "isPublic must be a boolean value"

        ok = await client.put("/api/users/visibility", headers=auth_headers, json={"isPublic": False})
        assert ok.json()["data"] == {"isPublic": False}

    @pytest.mark.asyncio
    async def test_avatar_upload_and_delete(self, client: AsyncClient, app, auth_headers):
        response = await client.post(
            "/api/users/avatar",
            headers=auth_headers,
            files={"avatar": ("me.png", b"\x89PNG\r\n\x1a\n", "image/png")},
        )

        assert response.status_code == 200
        avatar = response.json()["data"]["avatar"]
        assert avatar.startswith("/uploads/images/profiles/")
        key = avatar[len("/uploads/"):]
        assert await app.state.storage.exists(key)

        served = await client.get(f"/api/{key}")
        assert served.status_code == 200
        assert served.content == b"\x89PNG\r\n\x1a\n"

        removed = await client.delete("/api/users/avatar", headers=auth_headers)
        assert removed.json()["data"] == {"avatar": None}
        assert not await app.state.storage.exists(key)

    @pytest.mark.asyncio
    async def test_avatar_rejects_non_images(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/users/avatar",
            headers=auth_headers,
            files={"avatar": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "avatar"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/users/activity", "/api/users/badges", "/api/users/achievements"])
    async def test_placeholder_lists(self, client: AsyncClient, auth_headers, path):
        response = await client.get(path, headers=auth_headers)
        assert response.json()["data"] == []


class TestFollowAPI:
    """Tests for following other users."""

    @pytest.mark.asyncio
    async def test_follow_toggle(self, client: AsyncClient, auth_headers, other_user):
        response = await client.post(f"/api/users/{other_user.id}/follow", headers=auth_headers)

        assert response.json()["data"]["isFollowing"] is True
        assert response.json()["message"] == "You are now following someone"

        profile = await client.get(f"/api/users/{other_user.id}", headers=auth_headers)
        assert profile.json()["data"]["followers"] == 1
        assert profile.json()["data"]["isFollowing"] is True
        assert "email" not in profile.json()["data"]

        followers = await client.get(f"/api/users/{other_user.id}/followers")
        assert [u["username"] for u in followers.json()["data"]] == ["tester"]
        assert followers.json()["meta"]["pagination"]["total"] == 1

        again = await client.post(f"/api/users/{other_user.id}/follow", headers=auth_headers)
        assert again.json()["data"]["isFollowing"] is False

    @pytest.mark.asyncio
    async def test_cannot_follow_self(self, client: AsyncClient, auth_headers, test_user):
        response = await client.post(f"/api/users/{test_user.id}/follow", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "You cannot follow yourself"

    @pytest.mark.asyncio
    async def test_invalid_user_id(self, client: AsyncClient):
        response = await client.get("/api/users/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid user ID format"

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient):
        response = await client.get(f"/api/users/{uuid.uuid4()}")

        assert response.status_code == 404
