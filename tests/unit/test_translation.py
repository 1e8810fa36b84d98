"""
Unit Tests for Translation

Language tables, provider fallbacks and the voice translate pipeline.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from voiceverse.database import get_session
from voiceverse.database.models import OperationStatus, TransformationStatus
from voiceverse.database.repositories import (
    AudioFileRepository,
    TranslationRepository,
    VoiceTranslateBatchRepository,
    VoiceTranslateOperationRepository,
)
from voiceverse.storage import LocalStorage
from voiceverse.translation import (
    DEFAULT_VOICE_IDS,
    SUPPORTED_LANGUAGES,
    VOICE_TRANSLATE_LANGUAGES,
    GoogleTranslateClient,
    LibreTranslateClient,
    TranscriptionResult,
    TranslationResult,
    WhisperClient,
    get_language,
    get_voice_translate_language,
    language_name,
    mock_transcription,
    mock_translation,
    normalize_language_code,
    resolve_voice_id,
)
from voiceverse.translation import jobs
from voiceverse.translation.jobs import (
    AudioTranslator,
    VoiceTranslatePipeline,
    synthesize_speech,
    transcribe_or_fallback,
)
from voiceverse.voice import (
    MONOLINGUAL_MODEL,
    MULTILINGUAL_MODEL,
    ElevenLabsClient,
    ProviderConnectionError,
    STTError,
    TranslationError,
    TTSError,
)


# =============================================================================
# Languages
# =============================================================================


class TestLanguages:
    def test_tables(self):
        assert len(SUPPORTED_LANGUAGES) == 20
        assert len(VOICE_TRANSLATE_LANGUAGES) == 25
        assert get_language("th") is None
        assert get_voice_translate_language("th").name == "Thai"

    def test_language_name(self):
        assert language_name("es") == "Spanish"
        assert language_name("xx") == "xx"

    def test_to_dict(self):
        assert get_voice_translate_language("fr").to_dict() == {
            "code": "fr",
            "name": "French",
            "nativeName": "Français",
            "region": "FR",
        }

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("spanish", "es"),
            ("ES", "es"),
            ("tagalog", "tl"),
            ("klingon", "en"),
            (None, "en"),
        ],
    )
    def test_normalize(self, value, expected):
        assert normalize_language_code(value) == expected

    def test_resolve_voice_id(self):
        assert resolve_voice_id("9BWtsMINqrJLrRacOk9x") == "TxGEqnHWrfWFTfGW9XjX"
        assert resolve_voice_id("custom") == "custom"
        assert resolve_voice_id(None, "de") == DEFAULT_VOICE_IDS["multilingual"]
        assert resolve_voice_id(None) == "EXAVITQu4vr4xnSDxMaL"


# =============================================================================
# Providers
# =============================================================================


class TestFallbacks:
    def test_mock_translation(self):
        assert mock_translation("hello", "es") == "[ES] hello"

    def test_mock_transcription(self):
        result = mock_transcription("uploads/clip_42.webm")
        assert "clip_42" in result.text
        assert result.language == "en"
        assert result.is_fallback


class TestGoogleTranslateClient:
    @pytest.mark.asyncio
    async def test_unconfigured_returns_mock(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_TRANSLATE_API_KEY", raising=False)
        result = await GoogleTranslateClient().translate("hello", "fr")
        assert result.text == "[FR] hello"
        assert result.provider == "mock"
        assert result.source_language == "en"
        assert result.is_fallback

    @pytest.mark.asyncio
    async def test_translate(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"data": {"translations": [{"translatedText": "hola", "detectedSourceLanguage": "en"}]}},
            )

        client = GoogleTranslateClient(api_key="key")
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        result = await client.translate("hello", "es")
        await client.close()

        assert result == TranslationResult(text="hola", source_language="en", provider="google")

    @pytest.mark.asyncio
    async def test_api_error(self):
        client = GoogleTranslateClient(api_key="key")
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(403)))
        with pytest.raises(TranslationError):
            await client.translate("hello", "es")
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadError("connection reset", request=request)

        client = GoogleTranslateClient(api_key="key")
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderConnectionError):
            await client.translate("hello", "es")
        await client.close()

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        client = GoogleTranslateClient(api_key="key")
        client._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"<html>"))
        )
        with pytest.raises(ProviderConnectionError, match="Invalid response"):
            await client.translate("hello", "es")
        await client.close()


class TestLibreTranslateClient:
    @pytest.mark.asyncio
    async def test_same_language(self):
        result = await LibreTranslateClient(api_url="http://libre.invalid/translate").translate("hi", "en", "en")
        assert result.provider == "none"
        assert result.text == "hi"

    @pytest.mark.asyncio
    async def test_empty_text(self):
        with pytest.raises(TranslationError):
            await LibreTranslateClient(api_url="http://libre.invalid/translate").translate("  ", "en", "es")

    @pytest.mark.asyncio
    async def test_translate(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"translatedText": "bonjour"})

        client = LibreTranslateClient(api_url="http://libre.invalid/translate", api_key="k")
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        result = await client.translate(" hello ", "en", "fr")
        await client.close()

        assert result.text == "bonjour"
        assert seen["q"] == "hello"
        assert seen["api_key"] == "k"

    @pytest.mark.asyncio
    async def test_failure_falls_back(self):
        client = LibreTranslateClient(api_url="http://libre.invalid/translate")
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        result = await client.translate("hello", "en", "de")
        await client.close()

        assert result.text == "[Translated to German] hello"
        assert result.is_fallback


class TestWhisperClient:
    @pytest.mark.asyncio
    async def test_transcribe_normalizes_language(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"text": "hola", "language": "spanish", "duration": 2.5})

        client = WhisperClient(api_key="key")
        client._client = httpx.AsyncClient(base_url=client.base_url, transport=httpx.MockTransport(handler))
        result = await client.transcribe(b"audio")
        await client.close()

        assert result == TranscriptionResult(text="hola", language="es", duration=2.5)

    @pytest.mark.asyncio
    async def test_empty_audio(self):
        with pytest.raises(STTError):
            await WhisperClient(api_key="key").transcribe(b"")

    @pytest.mark.asyncio
    async def test_protocol_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("peer closed connection", request=request)

        client = WhisperClient(api_key="key")
        client._client = httpx.AsyncClient(base_url=client.base_url, transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderConnectionError):
            await client.transcribe(b"audio")
        await client.close()

    @pytest.mark.asyncio
    async def test_fallback_when_unconfigured(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        result = await transcribe_or_fallback(WhisperClient(), b"audio", "memo.mp3", "audio/mpeg")
        assert result.is_fallback
        assert "memo" in result.text


# =============================================================================
# Speech Synthesis
# =============================================================================


class TestSynthesizeSpeech:
    @pytest.mark.asyncio
    async def test_english_retries_multilingual(self):
        client = AsyncMock(spec=ElevenLabsClient)
        client.text_to_speech.side_effect = [TTSError("model unavailable"), b"audio"]

        audio = await synthesize_speech(client, "hello", "voice", "en")

        assert audio == b"audio"
        models = [call.kwargs["model_id"] for call in client.text_to_speech.await_args_list]
        assert models == [MONOLINGUAL_MODEL, MULTILINGUAL_MODEL]

    @pytest.mark.asyncio
    async def test_other_languages_do_not_retry(self):
        client = AsyncMock(spec=ElevenLabsClient)
        client.text_to_speech.side_effect = TTSError("boom")

        with pytest.raises(TTSError):
            await synthesize_speech(client, "hola", "voice", "es")
        assert client.text_to_speech.await_count == 1


# =============================================================================
# Voice Translate Pipeline
# =============================================================================


def make_pipeline(storage: LocalStorage, translated: str = "hola mundo") -> VoiceTranslatePipeline:
    elevenlabs = AsyncMock(spec=ElevenLabsClient)
    elevenlabs.text_to_speech.return_value = b"speech"

    whisper = AsyncMock(spec=WhisperClient)
    whisper.is_configured = True
    whisper.transcribe.return_value = TranscriptionResult(text="hello world", language="en")

    libre = AsyncMock(spec=LibreTranslateClient)
    libre.translate.return_value = TranslationResult(text=translated, source_language="en", provider="libretranslate")

    return VoiceTranslatePipeline(elevenlabs, libre, whisper, storage)


async def create_operation(user_id: str, audio_id: str, batch_id: str = None, **fields):
    async with get_session() as session:
        operation = await VoiceTranslateOperationRepository(session).create(
            user_id=user_id,
            original_audio_id=audio_id,
            target_language="es",
            batch_id=batch_id,
            **fields,
        )
    return operation.id


async def load_operation(operation_id: str):
    async with get_session() as session:
        return await VoiceTranslateOperationRepository(session).get_by_id(operation_id)


class TestVoiceTranslatePipeline:
    @pytest.mark.asyncio
    async def test_operation_completes(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        pipeline = make_pipeline(storage)
        operation_id = await create_operation(test_user.id, test_audio.id, voice_id="9BWtsMINqrJLrRacOk9x")

        assert await pipeline.run_operation(operation_id) is True

        operation = await load_operation(operation_id)
        assert operation.status == OperationStatus.COMPLETED.value
        assert operation.current_step == "completed"
        assert operation.source_language == "en"
        assert operation.transcribed_text == "hello world"
        assert operation.translated_text == "hola mundo"
        assert operation.voice_id == "TxGEqnHWrfWFTfGW9XjX"

        async with get_session() as session:
            result = await AudioFileRepository(session).get_by_id(operation.result_audio_id)
        assert result.user_id == test_user.id
        assert await storage.download(result.path) == b"speech"

    @pytest.mark.asyncio
    async def test_missing_audio_fails_at_transcribing(self, tmp_path, test_user, test_audio):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        pipeline = make_pipeline(storage)
        operation_id = await create_operation(test_user.id, test_audio.id)

        assert await pipeline.run_operation(operation_id) is False

        operation = await load_operation(operation_id)
        assert operation.status == OperationStatus.FAILED.value
        assert operation.current_step == "Failed at: transcribing"
        assert operation.error_message == "Audio file not found"

    @pytest.mark.asyncio
    async def test_synthesis_failure(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        pipeline = make_pipeline(storage)
        pipeline.elevenlabs.text_to_speech.side_effect = TTSError("Invalid ElevenLabs API key")
        operation_id = await create_operation(test_user.id, test_audio.id)

        assert await pipeline.run_operation(operation_id) is False

        operation = await load_operation(operation_id)
        assert operation.current_step == "Failed at: synthesizing"
        assert operation.translated_text == "hola mundo"

    @pytest.mark.asyncio
    async def test_batch_partial(self, tmp_path, monkeypatch, test_user, test_audio, sample_mp3):
        monkeypatch.setattr(jobs, "BATCH_DELAY_SECONDS", 0)
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        pipeline = make_pipeline(storage)

        async with get_session() as session:
            missing = await AudioFileRepository(session).create(
                user_id=test_user.id,
                filename="gone.mp3",
                original_name="gone.mp3",
                path="audio/original/gone.mp3",
                mimetype="audio/mpeg",
                size=1,
            )
            batch = await VoiceTranslateBatchRepository(session).create(
                user_id=test_user.id, target_language="es", total_files=2
            )
        operation_ids = [
            await create_operation(test_user.id, test_audio.id, batch.id),
            await create_operation(test_user.id, missing.id, batch.id),
        ]

        await pipeline.run_batch(batch.id, operation_ids)

        async with get_session() as session:
            batch = await VoiceTranslateBatchRepository(session).get_by_id(batch.id)
        assert batch.status == OperationStatus.PARTIAL.value
        assert batch.completed_files == 1
        assert batch.failed_files == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_operation(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        pipeline = make_pipeline(storage)
        pipeline.libre.translate.side_effect = RuntimeError("translator crashed")
        operation_id = await create_operation(test_user.id, test_audio.id)

        assert await pipeline.run_operation(operation_id) is False

        operation = await load_operation(operation_id)
        assert operation.status == OperationStatus.FAILED.value
        assert operation.current_step == "Failed at: translating"
        assert operation.error_message == "translator crashed"

    @pytest.mark.asyncio
    async def test_batch_fails_when_every_operation_crashes(
        self, tmp_path, monkeypatch, test_user, test_audio, sample_mp3
    ):
        monkeypatch.setattr(jobs, "BATCH_DELAY_SECONDS", 0)
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)
        pipeline = make_pipeline(storage)
        pipeline.elevenlabs.text_to_speech.side_effect = ValueError("bad audio stream")

        async with get_session() as session:
            batch = await VoiceTranslateBatchRepository(session).create(
                user_id=test_user.id, target_language="es", total_files=2
            )
        operation_ids = [
            await create_operation(test_user.id, test_audio.id, batch.id),
            await create_operation(test_user.id, test_audio.id, batch.id),
        ]

        await pipeline.run_batch(batch.id, operation_ids)

        async with get_session() as session:
            batch = await VoiceTranslateBatchRepository(session).get_by_id(batch.id)
        assert batch.status == OperationStatus.FAILED.value
        assert batch.failed_files == 2
        for operation_id in operation_ids:
            operation = await load_operation(operation_id)
            assert operation.status == OperationStatus.FAILED.value
            assert operation.current_step == "Failed at: synthesizing"


# =============================================================================
# Audio Translation
# =============================================================================


class TestAudioTranslator:
    @pytest.mark.asyncio
    async def test_unexpected_error_fails(self, tmp_path, test_user, test_audio, sample_mp3):
        storage = LocalStorage(base_path=str(tmp_path / "files"))
        await storage.upload(sample_mp3, test_audio.path)

        elevenlabs = AsyncMock(spec=ElevenLabsClient)
        elevenlabs.text_to_speech.side_effect = RuntimeError("encoder crashed")
        google = AsyncMock(spec=GoogleTranslateClient)
        google.translate.return_value = TranslationResult(text="bonjour", source_language="en", provider="google")
        whisper = AsyncMock(spec=WhisperClient)
        whisper.is_configured = True
        whisper.transcribe.return_value = TranscriptionResult(text="hello", language="en")

        async with get_session() as session:
            translation = await TranslationRepository(session).create(
                user_id=test_user.id,
                target_language="fr",
                audio_file_id=test_audio.id,
                status=TransformationStatus.PROCESSING.value,
            )

        await AudioTranslator(elevenlabs, google, whisper, storage).run(translation.id)

        async with get_session() as session:
            translation = await TranslationRepository(session).get_by_id(translation.id)
        assert translation.status == TransformationStatus.FAILED.value
        assert translation.error_message == "encoder crashed"
