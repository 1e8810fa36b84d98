"""Integration tests for feed API."""

import pytest
from httpx import AsyncClient


async def create_post(client: AsyncClient, headers, audio_id: str, **fields):
    body = {"audioFileId": audio_id, "caption": "First take", "tags": ["#Jazz", "jazz", " covers "]}
    body.update(fields)
    response = await client.post("/api/feed", headers=headers, json=body)
    assert response.status_code == 201
    return response.json()["data"]


class TestFeedPosts:
    """Tests for creating and listing posts."""

    @pytest.mark.asyncio
    async def test_create_post(self, client: AsyncClient, auth_headers, test_audio):
        post = await create_post(client, auth_headers, test_audio.id)

        assert post["user"]["username"] == "tester"
        assert post["tags"] == ["jazz", "covers"]
        assert post["audioUrl"].endswith(test_audio.id)
        assert post["likes"] == 0

    @pytest.mark.asyncio
    async def test_create_post_with_audio_id_alias(self, client: AsyncClient, auth_headers, test_audio):
        response = await client.post("/api/feed", headers=auth_headers, json={"audioId": test_audio.id})
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_create_post_requires_owned_audio(self, client: AsyncClient, other_headers, test_audio):
        response = await client.post("/api/feed", headers=other_headers, json={"audioFileId": test_audio.id})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_feed(self, client: AsyncClient, auth_headers, test_audio):
        await create_post(client, auth_headers, test_audio.id)

        for feed_filter in ("trending", "latest", "following"):
            response = await client.get("/api/feed", params={"filter": feed_filter})
            assert response.status_code == 200
            assert len(response.json()["data"]) == 1

    @pytest.mark.asyncio
    async def test_following_filter(self, client: AsyncClient, auth_headers, other_headers, other_user, test_audio):
        await create_post(client, auth_headers, test_audio.id)

        response = await client.get("/api/feed", params={"filter": "following"}, headers=other_headers)
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_invalid_filter(self, client: AsyncClient):
        response = await client.get("/api/feed", params={"filter": "random"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_post(self, client: AsyncClient):
        response = await client.get("/api/feed/missing")
        assert response.status_code == 404


class TestFeedInteractions:
    """Tests for likes, saves, shares and comments."""

    @pytest.mark.asyncio
    async def test_like_toggle(self, client: AsyncClient, auth_headers, other_headers, test_audio):
        post = await create_post(client, auth_headers, test_audio.id)

        liked = await client.post(f"/api/feed/{post['id']}/like", headers=other_headers)
        assert liked.json()["data"] == {"isLiked": True, "likes": 1}

        viewed = await client.get(f"/api/feed/{post['id']}", headers=other_headers)
        assert viewed.json()["data"]["isLiked"] is True

        unliked = await client.post(f"/api/feed/{post['id']}/like", headers=other_headers)
        assert unliked.json()["data"] == {"isLiked": False, "likes": 0}

    @pytest.mark.asyncio
    async def test_save_and_list_saved(self, client: AsyncClient, auth_headers, other_headers, test_audio):
        post = await create_post(client, auth_headers, test_audio.id)

        saved = await client.post(f"/api/feed/{post['id']}/save", headers=other_headers)
        assert saved.json()["data"] == {"isSaved": True}

        listing = await client.get("/api/feed/saved", headers=other_headers)
        assert [p["id"] for p in listing.json()["data"]] == [post["id"]]

    @pytest.mark.asyncio
    async def test_share(self, client: AsyncClient, auth_headers, test_audio):
        post = await create_post(client, auth_headers, test_audio.id)

        response = await client.post(f"/api/feed/{post['id']}/share", headers=auth_headers, json={"platform": "twitter"})
        assert response.json()["data"] == {"shares": 1, "platform": "twitter"}

    @pytest.mark.asyncio
    async def test_comments(self, client: AsyncClient, auth_headers, other_headers, test_audio):
        post = await create_post(client, auth_headers, test_audio.id)

        empty = await client.post(f"/api/feed/{post['id']}/comments", headers=other_headers, json={"content": "  "})
        assert empty.status_code == 400
        assert empty.json()["error"]["message"] == "Comment content is required"

        added = await client.post(f"/api/feed/{post['id']}/comments", headers=other_headers, json={"content": "Love it"})
        assert added.status_code == 201
        comment = added.json()["data"]
        assert comment["user"]["username"] == "someone"

        like = await client.post(f"/api/feed/comments/{comment['id']}/like", headers=auth_headers)
        assert like.json()["data"] == {"isLiked": True, "likes": 1}

        listing = await client.get(f"/api/feed/{post['id']}/comments")
        assert [c["content"] for c in listing.json()["data"]] == ["Love it"]

        detail = await client.get(f"/api/feed/{post['id']}")
        assert detail.json()["data"]["comments"] == 1
