"""Integration tests for text, audio and voice translation."""

import base64

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from httpx import AsyncClient

from voiceverse.translation import TranslationResult, jobs
from voiceverse.voice import TTSError


@pytest_asyncio.fixture
async def stored_audio(app, test_audio, sample_mp3):
    await app.state.storage.upload(sample_mp3, test_audio.path)
    return test_audio


@pytest.fixture
def providers(app):
    """Replace outbound provider calls; Whisper and Google stay unconfigured."""
    app.state.elevenlabs.text_to_speech = AsyncMock(return_value=b"ID3speech")
    app.state.elevenlabs.add_voice = AsyncMock(return_value="clone-voice-id")
    app.state.libretranslate.translate = AsyncMock(
        return_value=TranslationResult(text="hola", source_language="en", provider="libretranslate")
    )
    return app.state


class TestTextTranslation:
    @pytest.mark.asyncio
    async def test_languages(self, client: AsyncClient):
        response = await client.get("/api/translation/languages")

        languages = response.json()["data"]
        assert len(languages) == 20
        assert languages[0]["code"] == "en"
        assert "voiceId" in languages[0]

    @pytest.mark.asyncio
    async def test_translate_text_without_key(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/translation/text",
            headers=auth_headers,
            json={"text": "Good morning", "targetLanguage": "fr"},
        )

        data = response.json()["data"]
        assert data["translation"] == "[FR] Good morning"
        assert data["detectedSourceLanguage"] == "en"

        saved = await client.get(f"/api/translation/{data['translationId']}", headers=auth_headers)
        assert saved.json()["data"]["status"] == "COMPLETED"

        history = await client.get("/api/translation/history", headers=auth_headers)
        assert len(history.json()["data"]) == 1

    @pytest.mark.asyncio
    async def test_unsupported_language(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/translation/text",
            headers=auth_headers,
            json={"text": "Hello", "targetLanguage": "xx"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Unsupported target language: xx"

    @pytest.mark.asyncio
    async def test_preference(self, client: AsyncClient, auth_headers):
        ok = await client.put("/api/translation/preference", headers=auth_headers, json={"language": "de"})
        assert ok.json()["data"] == {"preferredLanguage": "de"}

        bad = await client.put("/api/translation/preference", headers=auth_headers, json={"language": "th"})
        assert bad.status_code == 400

    @pytest.mark.asyncio
    async def test_other_users_translation(self, client: AsyncClient, auth_headers, other_headers):
        created = await client.post(
            "/api/translation/text",
            headers=auth_headers,
            json={"text": "Hello", "targetLanguage": "es"},
        )

        response = await client.get(
            f"/api/translation/{created.json()['data']['translationId']}", headers=other_headers
        )
        assert response.status_code == 403


class TestAudioTranslation:
    @pytest.mark.asyncio
    async def test_audio_translation_completes(self, client: AsyncClient, auth_headers, providers, stored_audio):
        response = await client.post(
            "/api/translation/audio",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "targetLanguage": "es"},
        )

        assert response.status_code == 202
        translation_id = response.json()["data"]["translationId"]

        status = await client.get(f"/api/translation/{translation_id}", headers=auth_headers)
        translation = status.json()["data"]
        assert translation["status"] == "COMPLETED"
        assert translation["sourceLanguage"] == "en"
        assert translation["translatedText"].startswith("[ES] This is a mock transcription")

        audio = await client.get(f"/api/audio/translated/{translation_id}")
        assert audio.content == b"ID3speech"

    @pytest.mark.asyncio
    async def test_audio_translation_failure(self, client: AsyncClient, auth_headers, providers, stored_audio):
        providers.elevenlabs.text_to_speech.side_effect = TTSError("Invalid ElevenLabs API key")

        response = await client.post(
            "/api/translation/audio",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "targetLanguage": "es"},
        )

        status = await client.get(f"/api/translation/{response.json()['data']['translationId']}", headers=auth_headers)
        assert status.json()["data"]["status"] == "FAILED"
        assert status.json()["data"]["errorMessage"] == "Invalid ElevenLabs API key"


class TestVoiceTranslate:
    @pytest.mark.asyncio
    async def test_options(self, client: AsyncClient, app):
        app.state.libretranslate.supported_languages = AsyncMock(return_value=[{"code": "es", "name": "Spanish"}])
        app.state.libretranslate.test_connection = AsyncMock(return_value={"status": "connected"})

        response = await client.get("/api/voice-translate/options")

        data = response.json()["data"]
        assert len(data["languages"]) == 25
        assert data["elevenLabsVoices"] == []
        assert data["translationService"] == "LibreTranslate"

    @pytest.mark.asyncio
    async def test_text_to_voice(self, client: AsyncClient, providers):
        response = await client.post(
            "/api/voice-translate/text-to-voice",
            json={"text": "hello", "targetLanguage": "es", "voiceId": "9BWtsMINqrJLrRacOk9x"},
        )

        data = response.json()["data"]
        assert data["translatedText"] == "hola"
        assert data["voiceId"] == "TxGEqnHWrfWFTfGW9XjX"
        assert base64.b64decode(data["audioBase64"]) == b"ID3speech"
        assert data["audioSize"] == len(b"ID3speech")

    @pytest.mark.asyncio
    async def test_text_to_voice_unsupported_language(self, client: AsyncClient, providers):
        response = await client.post(
            "/api/voice-translate/text-to-voice",
            json={"text": "hello", "targetLanguage": "xx"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_transform_pipeline(self, client: AsyncClient, auth_headers, providers, stored_audio):
        response = await client.post(
            "/api/voice-translate/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "targetLanguage": "es"},
        )

        assert response.status_code == 202
        operation_id = response.json()["data"]["operationId"]

        status = await client.get(f"/api/voice-translate/status/{operation_id}", headers=auth_headers)
        operation = status.json()["data"]
        assert operation["status"] == "COMPLETED"
        assert operation["currentStep"] == "completed"
        assert operation["translatedText"] == "hola"
        assert operation["resultAudioUrl"] is not None

        history = await client.get(
            "/api/voice-translate/history", headers=auth_headers, params={"status": "COMPLETED"}
        )
        assert history.json()["meta"]["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_status_of_other_user(self, client: AsyncClient, auth_headers, other_headers, providers, stored_audio):
        response = await client.post(
            "/api/voice-translate/transform",
            headers=auth_headers,
            json={"audioId": stored_audio.id, "targetLanguage": "es"},
        )

        status = await client.get(
            f"/api/voice-translate/status/{response.json()['data']['operationId']}", headers=other_headers
        )
        assert status.status_code == 403

    @pytest.mark.asyncio
    async def test_clone_and_translate_with_my_voice(self, client: AsyncClient, auth_headers, providers, sample_mp3):
        cloned = await client.post(
            "/api/voice-translate/clone-voice",
            headers=auth_headers,
            files={"sample": ("me.mp3", sample_mp3, "audio/mpeg")},
            data={"voiceName": "Me"},
        )

        assert cloned.status_code == 201
        clone = cloned.json()["data"]
        assert clone["voiceName"] == "Me"
        assert clone["elevenLabsVoiceId"] == "clone-voice-id"

        voices = await client.get("/api/voice-translate/my-voices", headers=auth_headers)
        assert voices.json()["data"]["count"] == 1

        spoken = await client.post(
            "/api/voice-translate/translate-with-my-voice",
            headers=auth_headers,
            json={"voiceCloneId": clone["voiceCloneId"], "targetLanguage": "es", "text": "hello"},
        )
        data = spoken.json()["data"]
        assert data["voiceName"] == "Me"
        assert data["elevenLabsVoiceId"] == "clone-voice-id"
        assert data["voiceService"] == "ElevenLabs (Cloned Voice)"

        queued = await client.post(
            "/api/voice-translate/translate-with-my-voice",
            headers=auth_headers,
            json={"voiceCloneId": clone["voiceCloneId"], "targetLanguage": "fr", "audioId": clone["sampleAudioId"]},
        )
        assert queued.json()["data"]["voiceCloneId"] == clone["voiceCloneId"]

        operation = await client.get(
            f"/api/voice-translate/status/{queued.json()['data']['operationId']}", headers=auth_headers
        )
        assert operation.json()["data"]["voiceId"] == "clone-voice-id"

    @pytest.mark.asyncio
    async def test_clone_requires_sample(self, client: AsyncClient, auth_headers, providers):
        response = await client.post("/api/voice-translate/clone-voice", headers=auth_headers, data={"voiceName": "Me"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "A voice sample or audio file ID is required"

    @pytest.mark.asyncio
    async def test_batch(self, client: AsyncClient, monkeypatch, auth_headers, providers, stored_audio):
        monkeypatch.setattr(jobs, "BATCH_DELAY_SECONDS", 0)

        response = await client.post(
            "/api/voice-translate/batch",
            headers=auth_headers,
            json={"audioIds": [stored_audio.id, stored_audio.id], "targetLanguage": "de"},
        )

        assert response.status_code == 202
        data = response.json()["data"]
        assert data["totalFiles"] == 2
        assert data["estimatedTime"] == "60-120 seconds"

        batch = await client.get(f"/api/voice-translate/batch/{data['batchId']}", headers=auth_headers)
        result = batch.json()["data"]
        assert result["status"] == "COMPLETED"
        assert result["completedFiles"] == 2
        assert len(result["operations"]) == 2

    @pytest.mark.asyncio
    async def test_batch_limit(self, client: AsyncClient, auth_headers, stored_audio):
        response = await client.post(
            "/api/voice-translate/batch",
            headers=auth_headers,
            json={"audioIds": [stored_audio.id] * 11, "targetLanguage": "de"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Maximum 10 files allowed per batch"

    @pytest.mark.asyncio
    async def test_detect_language_fallback(self, client: AsyncClient, auth_headers, stored_audio):
        response = await client.post(
            "/api/voice-translate/detect-language",
            headers=auth_headers,
            json={"audioId": stored_audio.id},
        )

        data = response.json()["data"]
        assert data["detectedLanguage"]["code"] == "en"
        assert data["detectedLanguage"]["confidence"] == 0.3
        assert data["transcribedText"] == "Language detection unavailable"
