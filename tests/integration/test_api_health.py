"""Integration tests for health endpoints."""

import logging

import pytest
from httpx import ASGITransport, AsyncClient

from voiceverse.api.app import create_app


class TestHealthAPI:
    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "VoiceVerse API is running!"
        assert data["status"] == "healthy"
        assert data["environment"] == "development"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/health", "/api/health"])
    async def test_health(self, client: AsyncClient, path):
        response = await client.get(path)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "connected"
        assert data["uptime"] >= 0

    @pytest.mark.asyncio
    async def test_audio_health(self, client: AsyncClient):
        response = await client.get("/api/health/audio")

        data = response.json()
        assert data["status"] == "ok"
        assert "audio/original" in data["directories"]

    @pytest.mark.asyncio
    async def test_request_id_header(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_access_log_carries_request_and_user(self, config, database, test_user, caplog):
        app = create_app(config.model_copy(update={"log_requests": True}))
        token = app.state.authenticator.create_jwt(test_user.id)

        with caplog.at_level(logging.INFO, logger="voiceverse.access"):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.get(
                    "/api/auth/me",
                    headers={"Authorization": f"Bearer {token}", "X-Request-ID": "req-456"},
                )

        assert response.status_code == 200
        lines = [r.getMessage() for r in caplog.records if r.name == "voiceverse.access"]
        assert len(lines) == 1
        assert "GET /api/auth/me 200" in lines[0]
        assert f"user={test_user.id}" in lines[0]
        assert lines[0].endswith("[req-456]")
