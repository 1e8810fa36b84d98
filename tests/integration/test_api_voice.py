"""Integration tests for voice effects, cloning and transformations."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from httpx import AsyncClient

from voiceverse.database import get_session
from voiceverse.database.repositories import VoiceEffectRepository
from voiceverse.seed import seed_voice_effects
from voiceverse.voice import QuotaExceededError


@pytest_asyncio.fixture
async def effects(database):
    async with get_session() as session:
        return await seed_voice_effects(session)


@pytest_asyncio.fixture
async def stored_audio(app, test_audio, sample_mp3):
    await app.state.storage.upload(sample_mp3, test_audio.path)
    return test_audio


class TestVoiceCatalog:
    @pytest.mark.asyncio
    async def test_effects_by_popularity(self, client: AsyncClient, effects):
        response = await client.get("/api/voice/effects")

        items = response.json()["data"]
        assert len(items) == effects
        popularity = [item["popularity"] for item in items]
        assert popularity == sorted(popularity, reverse=True)
        assert items[0]["effectId"] == "celebrity_voice"

    @pytest.mark.asyncio
    async def test_effects_by_category(self, client: AsyncClient, effects):
        response = await client.get("/api/voice/effects", params={"category": "language"})

        assert {item["category"] for item in response.json()["data"]} == {"language"}

    @pytest.mark.asyncio
    async def test_celebrity_and_emotion_voices(self, client: AsyncClient):
        celebrities = await client.get("/api/voice/celebrity/voices")
        assert any(v["key"] == "aria" for v in celebrities.json()["data"])

        emotions = await client.get("/api/voice/emotion/voices")
        assert [v["id"] for v in emotions.json()["data"]] == ["happy", "sad", "angry", "calm", "excited"]

    @pytest.mark.asyncio
    async def test_elevenlabs_voices_provider_failure(self, client: AsyncClient, app, auth_headers):
        response = await client.get("/api/voice/elevenlabs/voices", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"]["details"]["code"] == "PROVIDER_NOT_CONFIGURED"


class TestVoiceClone:
    @pytest.mark.asyncio
    async def test_clone(self, client: AsyncClient, app, auth_headers, stored_audio):
        app.state.elevenlabs.add_voice = AsyncMock(return_value="cloned-voice-1")

        response = await client.post(
            "/api/voice/clone",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "name": "My Voice"},
        )

        assert response.status_code == 201
        model = response.json()["data"]
        assert model["elevenLabsVoiceId"] == "cloned-voice-1"
        assert model["isCloned"] is True

        models = await client.get("/api/voice/models", headers=auth_headers)
        assert "cloned-voice-1" in [m["elevenLabsVoiceId"] for m in models.json()["data"]]

    @pytest.mark.asyncio
    async def test_clone_someone_elses_audio(self, client: AsyncClient, other_headers, stored_audio):
        response = await client.post(
            "/api/voice/clone",
            headers=other_headers,
            json={"audioId": stored_audio.id, "name": "Stolen"},
        )
        assert response.status_code == 403


class TestTransformations:
    @pytest.mark.asyncio
    async def test_effect_transformation(self, client: AsyncClient, app, auth_headers, effects, stored_audio):
        app.state.elevenlabs.convert_with_voice = AsyncMock(return_value=b"ID3converted")

        response = await client.post(
            "/api/voice/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "effectId": "british", "settings": {"stability": 2}},
        )

        assert response.status_code == 202
        transformation_id = response.json()["data"]["transformationId"]

        status = await client.get(f"/api/voice/transform/{transformation_id}", headers=auth_headers)
        result = status.json()["data"]
        assert result["status"] == "COMPLETED"
        assert result["settings"]["stability"] == 1.0

        audio = await client.get(result["transformedAudioUrl"])
        assert audio.content == b"ID3converted"

        async with get_session() as session:
            effect = await VoiceEffectRepository(session).get_by_effect_id("british")
        assert effect.popularity == 92

        history = await client.get("/api/voice/history", headers=auth_headers)
        assert [t["id"] for t in history.json()["data"]] == [transformation_id]

    @pytest.mark.asyncio
    async def test_unknown_effect(self, client: AsyncClient, auth_headers, effects, stored_audio):
        response = await client.post(
            "/api/voice/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "effectId": "robot"},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_pro_only_effect(self, client: AsyncClient, auth_headers, effects, stored_audio):
        async with get_session() as session:
            await VoiceEffectRepository(session).upsert("french", is_pro_only=True)

        response = await client.post(
            "/api/voice/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "effectId": "french"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "This effect is only available to Pro users"

    @pytest.mark.asyncio
    async def test_emotion_transformation_failure(self, client: AsyncClient, app, auth_headers, stored_audio):
        app.state.elevenlabs.speech_to_speech = AsyncMock(side_effect=QuotaExceededError("ElevenLabs quota exceeded"))

        response = await client.post(
            "/api/voice/emotion/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "emotionId": "angry"},
        )

        assert response.status_code == 202
        assert response.json()["data"]["emotion"] == "angry"

        status = await client.get(
            f"/api/voice/emotion/transform/{response.json()['data']['transformationId']}",
            headers=auth_headers,
        )
        assert status.json()["data"]["status"] == "FAILED"
        assert status.json()["data"]["errorMessage"] == "ElevenLabs quota exceeded"

    @pytest.mark.asyncio
    async def test_invalid_emotion(self, client: AsyncClient, auth_headers, stored_audio):
        response = await client.post(
            "/api/voice/emotion/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "emotionId": "bored"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_other_users_transformation(self, client: AsyncClient, app, auth_headers, other_headers, stored_audio):
        app.state.elevenlabs.speech_to_speech = AsyncMock(return_value=b"ID3")
        response = await client.post(
            "/api/voice/emotion/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "emotionId": "calm"},
        )

        status = await client.get(
            f"/api/voice/transform/{response.json()['data']['transformationId']}",
            headers=other_headers,
        )
        assert status.status_code == 403
