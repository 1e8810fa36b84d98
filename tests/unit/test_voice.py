"""
Unit Tests for Voice

Settings, the static catalogue, the ElevenLabs client and background
transformation jobs.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from voiceverse.database import get_session
from voiceverse.database.models import TransformationStatus
from voiceverse.database.repositories import (
    AudioFileRepository,
    VoiceEffectRepository,
    VoiceTransformationRepository,
)
from voiceverse.storage import LocalStorage
from voiceverse.voice import (
    CELEBRITY_VOICES,
    EMOTION_VOICES,
    VOICE_EFFECT_SEEDS,
    ElevenLabsClient,
    ProviderConnectionError,
    ProviderNotConfiguredError,
    QuotaExceededError,
    TTSError,
    VoiceError,
    VoiceNotFoundError,
    VoiceSettings,
    emotion_voice_list,
    merge_settings,
)
from voiceverse.voice.jobs import EMOTION_KIND, run_transformation


# =============================================================================
# Settings
# =============================================================================


class TestVoiceSettings:
    """Tests for VoiceSettings."""

    def test_defaults(self):
        settings = VoiceSettings()
        assert settings.to_dict() == {
            "stability": 0.5,
            "similarity_boost": 0.75,
            "style": 0.0,
            "use_speaker_boost": True,
        }

    def test_from_dict_fills_missing(self):
        settings = VoiceSettings.from_dict({"stability": 0.2})
        assert settings.stability == 0.2
        assert settings.similarity_boost == 0.75

    def test_from_empty(self):
        assert VoiceSettings.from_dict(None) == VoiceSettings()

    def test_merge_clamps(self):
        merged = merge_settings(VoiceSettings(), {"stability": 3, "style": -1, "unknown": 5})
        assert merged.stability == 1.0
        assert merged.style == 0.0
        assert merged.similarity_boost == 0.75

    def test_merge_ignores_none(self):
        base = VoiceSettings(0.3, 0.8, 0.7, True)
        assert merge_settings(base, {"stability": None}) == base


# =============================================================================
# Catalogue
# =============================================================================


class TestCatalog:
    def test_emotions(self):
        assert set(EMOTION_VOICES) == {"happy", "sad", "angry", "calm", "excited"}
        assert EMOTION_VOICES["happy"]["voice_id"] == "EXAVITQu4vr4xnSDxMaL"
        assert EMOTION_VOICES["happy"]["settings"] == VoiceSettings(0.3, 0.8, 0.7, True)

    def test_emotion_list_shape(self):
        voices = emotion_voice_list()
        assert len(voices) == len(EMOTION_VOICES)
        happy = next(v for v in voices if v["id"] == "happy")
        assert happy["category"] == "emotion"
        assert happy["elevenLabsVoiceId"] == "EXAVITQu4vr4xnSDxMaL"
        assert happy["settings"]["stability"] == 0.3

    def test_celebrity_voices(self):
        assert CELEBRITY_VOICES["aria"]["id"] == "TxGEqnHWrfWFTfGW9XjX"
        assert all(v["gender"] in ("male", "female") for v in CELEBRITY_VOICES.values())

    def test_effect_seeds_unique(self):
        ids = [seed["effect_id"] for seed in VOICE_EFFECT_SEEDS]
        assert len(ids) == len(set(ids))
        assert "celebrity_voice" in ids


# =============================================================================
# Errors
# =============================================================================


class TestVoiceErrors:
    def test_to_dict(self):
        error = VoiceNotFoundError("Voice 'x' not found", voice_id="x", provider="elevenlabs")
        data = error.to_dict()
        assert data["error"] == "VoiceNotFoundError"
        assert data["code"] == "VOICE_NOT_FOUND"
        assert data["provider"] == "elevenlabs"
        assert error.voice_id == "x"

    def test_default_code(self):
        assert VoiceError("boom").code == "VOICE_ERROR"


# =============================================================================
# ElevenLabs Client
# =============================================================================


def client_with(handler) -> ElevenLabsClient:
    client = ElevenLabsClient(api_key="test-key")
    client._client = httpx.AsyncClient(
        base_url=client.base_url,
        transport=httpx.MockTransport(handler),
    )
    return client


class TestElevenLabsClient:
    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch):
        monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)
        client = ElevenLabsClient()
        assert not client.is_configured
        with pytest.raises(ProviderNotConfiguredError):
            await client.text_to_speech("hello", "voice")

    @pytest.mark.asyncio
    async def test_text_to_speech(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"mp3-bytes")

        client = client_with(handler)
        audio = await client.text_to_speech("hello", "voice123", settings=VoiceSettings(stability=0.1))
        await client.close()

        assert audio == b"mp3-bytes"
        assert seen["path"].endswith("/text-to-speech/voice123")
        assert seen["body"]["voice_settings"]["stability"] == 0.1

    @pytest.mark.asyncio
    async def test_empty_text(self):
        client = ElevenLabsClient(api_key="test-key")
        with pytest.raises(TTSError):
            await client.text_to_speech("   ", "voice")

    @pytest.mark.asyncio
    async def test_status_mapping(self):
        responses = iter([httpx.Response(404), httpx.Response(402), httpx.Response(500, text="oops")])
        client = client_with(lambda request: next(responses))

        with pytest.raises(VoiceNotFoundError):
            await client.speech_to_speech(b"audio", "missing")
        with pytest.raises(QuotaExceededError):
            await client.speech_to_speech(b"audio", "voice")
        with pytest.raises(TTSError, match="500"):
            await client.speech_to_speech(b"audio", "voice")
        await client.close()

    @pytest.mark.asyncio
    async def test_convert_with_voice(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(200, content=b"effect-bytes")

        client = client_with(handler)
        audio = await client.convert_with_voice(b"audio", "voice123")
        await client.close()

        assert audio == b"effect-bytes"
        assert seen["path"].endswith("/voices/voice123/audio/stream")
        assert b"eleven_monolingual_v1" in seen["body"]

    @pytest.mark.asyncio
    async def test_transport_errors_become_connection_errors(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadError("connection reset", request=request)

        client = client_with(handler)
        with pytest.raises(ProviderConnectionError):
            await client.convert_with_voice(b"audio", "voice")
        await client.close()

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        client = client_with(lambda request: httpx.Response(200, content=b"<html>"))

        with pytest.raises(ProviderConnectionError, match="Invalid response"):
            await client.list_voices()
        await client.close()


# =============================================================================
# Transformation Jobs
# =============================================================================


async def create_transformation(user_id: str, audio_id: str, effect_id: str, kind: str = "effect"):
    async with get_session() as session:
        transformation = await VoiceTransformationRepository(session).create(
            user_id=user_id,
            original_audio_id=audio_id,
            effect_id=effect_id,
            kind=kind,
            settings=VoiceSettings().to_dict(),
        )
    return transformation.id


async def load_transformation(transformation_id: str):
    async with get_session() as session:
        return await VoiceTransformationRepository(session).get_by_id(transformation_id)


class TestRunTransformation:
    @pytest.mark.asyncio
    async def test_missing_source_fails(self, tmp_path, test_user, test_audio):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        client = AsyncMock(spec=ElevenLabsClient)
        transformation_id = await create_transformation(test_user.id, test_audio.id, "happy", EMOTION_KIND)

        await run_transformation(transformation_id, client, storage)

        transformation = await load_transformation(transformation_id)
        assert transformation.status == TransformationStatus.FAILED.value
        assert transformation.error_message == "Source audio file not found"
        client.speech_to_speech.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_effect_completes(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        client = AsyncMock(spec=ElevenLabsClient)
        client.convert_with_voice.return_value = b"converted"

        async with get_session() as session:
            await VoiceEffectRepository(session).upsert(
                "french", name="French Accent", voice_id="EXAVITQu4vr4xnSDxMaL", popularity=92
            )
        transformation_id = await create_transformation(test_user.id, test_audio.id, "french")

        await run_transformation(transformation_id, client, storage)

        transformation = await load_transformation(transformation_id)
        assert transformation.status == TransformationStatus.COMPLETED.value
        assert transformation.processing_time is not None

        async with get_session() as session:
            output = await AudioFileRepository(session).get_by_id(transformation.transformed_audio_id)
            effect = await VoiceEffectRepository(session).get_by_effect_id("french")
        assert output.path.startswith("audio/transformed/")
        assert await storage.download(output.path) == b"converted"
        assert effect.popularity == 93
        assert client.convert_with_voice.await_args.args[1] == "EXAVITQu4vr4xnSDxMaL"

    @pytest.mark.asyncio
    async def test_emotion_uses_preset_voice(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        client = AsyncMock(spec=ElevenLabsClient)
        client.speech_to_speech.return_value = b"sad"
        transformation_id = await create_transformation(test_user.id, test_audio.id, "sad", EMOTION_KIND)

        await run_transformation(transformation_id, client, storage)

        transformation = await load_transformation(transformation_id)
        assert transformation.status == TransformationStatus.COMPLETED.value
        assert client.speech_to_speech.await_args.args[1] == EMOTION_VOICES["sad"]["voice_id"]

    @pytest.mark.asyncio
    async def test_provider_error_fails(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        client = AsyncMock(spec=ElevenLabsClient)
        client.speech_to_speech.side_effect = QuotaExceededError("ElevenLabs quota exceeded")
        transformation_id = await create_transformation(test_user.id, test_audio.id, "calm", EMOTION_KIND)

        await run_transformation(transformation_id, client, storage)

        transformation = await load_transformation(transformation_id)
        assert transformation.status == TransformationStatus.FAILED.value
        assert "quota" in transformation.error_message

    @pytest.mark.asyncio
    async def test_unexpected_error_fails(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        client = AsyncMock(spec=ElevenLabsClient)
        client.speech_to_speech.side_effect = RuntimeError("decoder crashed")
        transformation_id = await create_transformation(test_user.id, test_audio.id, "happy", EMOTION_KIND)

        await run_transformation(transformation_id, client, storage)

        transformation = await load_transformation(transformation_id)
        assert transformation.status == TransformationStatus.FAILED.value
        assert transformation.error_message == "decoder crashed"

    @pytest.mark.asyncio
    async def test_transport_error_fails(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadError("connection reset", request=request)

        client = client_with(handler)
        transformation_id = await create_transformation(test_user.id, test_audio.id, "angry", EMOTION_KIND)

        await run_transformation(transformation_id, client, storage)
        await client.close()

        transformation = await load_transformation(transformation_id)
        assert transformation.status == TransformationStatus.FAILED.value
        assert transformation.error_message == "Failed to connect to ElevenLabs API"
