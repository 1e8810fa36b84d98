"""
Translation Jobs

Background pipelines that turn recorded audio into speech in another
language: transcribe with Whisper, translate, then synthesise with
ElevenLabs. Progress is committed step by step so status endpoints can
report it while a job runs.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from ..database import get_session
from ..database.models import OperationStatus, TransformationStatus
from ..database.repositories import (
    AudioFileRepository,
    TranslationRepository,
    VoiceCloneRepository,
    VoiceTranslateBatchRepository,
    VoiceTranslateOperationRepository,
)
from ..storage import LocalStorage, TRANSLATED_AUDIO_DIR
from ..voice.base import TTSError, VoiceError, VoiceSettings
from ..voice.elevenlabs import ElevenLabsClient, MONOLINGUAL_MODEL, MULTILINGUAL_MODEL
from .languages import get_language, resolve_voice_id, DEFAULT_VOICE_IDS
from .providers import (
    GoogleTranslateClient,
    LibreTranslateClient,
    TranscriptionResult,
    WhisperClient,
    mock_transcription,
    mock_translation,
)


logger = logging.getLogger(__name__)


TRANSLATION_VOICE_SETTINGS = VoiceSettings(
    stability=0.6,
    similarity_boost=0.8,
    style=0.3,
    use_speaker_boost=True,
)

BATCH_DELAY_SECONDS = 2.0


async def synthesize_speech(
    client: ElevenLabsClient,
    text: str,
    voice_id: str,
    language: str,
    settings: Optional[VoiceSettings] = None,
) -> bytes:
    """
    Synthesise text in the given language.

    English uses the monolingual model; if it fails the request is
    retried once with the multilingual model.
    """
    settings = settings or TRANSLATION_VOICE_SETTINGS
    model_id = MONOLINGUAL_MODEL if language == "en" else MULTILINGUAL_MODEL
    try:
        return await client.text_to_speech(text, voice_id, model_id=model_id, settings=settings)
    except TTSError as e:
        if model_id == MULTILINGUAL_MODEL:
            raise
        logger.warning(f"TTS with {model_id} failed ({e.message}), retrying with {MULTILINGUAL_MODEL}")
        return await client.text_to_speech(text, voice_id, model_id=MULTILINGUAL_MODEL, settings=settings)


async def transcribe_or_fallback(
    whisper: WhisperClient,
    audio: bytes,
    filename: str,
    mimetype: str,
) -> TranscriptionResult:
    """Transcribe with Whisper, substituting a placeholder transcript on failure."""
    if not whisper.is_configured:
        logger.warning("OpenAI API key not configured, using mock transcription")
        return mock_transcription(filename)
    try:
        return await whisper.transcribe(audio, filename=filename, mimetype=mimetype)
    except VoiceError as e:
        logger.warning(f"Transcription failed, using mock transcription: {e.message}")
        return mock_transcription(filename)


# =============================================================================
# Audio Translation
# =============================================================================


class AudioTranslator:
    """Runs the ``/api/translation/audio`` job for a Translation row."""

    def __init__(
        self,
        elevenlabs: ElevenLabsClient,
        google: GoogleTranslateClient,
        whisper: WhisperClient,
        storage: LocalStorage,
    ):
        self.elevenlabs = elevenlabs
        self.google = google
        self.whisper = whisper
        self.storage = storage

    async def run(self, translation_id: str) -> None:
        async with get_session() as session:
            translation = await TranslationRepository(session).get_by_id(translation_id)
            if translation is None:
                logger.warning(f"Translation {translation_id} no longer exists")
                return
            source = await AudioFileRepository(session).get_by_id(translation.audio_file_id)
            target_language = translation.target_language
            source_info = (source.path, source.filename, source.mimetype, source.user_id, source.duration) if source else None

        try:
            if source_info is None or not await self.storage.exists(source_info[0]):
                raise FileNotFoundError("Audio file not found")
            path, filename, mimetype, owner_id, duration = source_info
            audio = await self.storage.download(path)

            transcript = await transcribe_or_fallback(self.whisper, audio, filename, mimetype)

            if transcript.language == target_language:
                translated_text = transcript.text
            else:
                try:
                    result = await self.google.translate(transcript.text, target_language, transcript.language)
                    translated_text = result.text
                except VoiceError as e:
                    logger.warning(f"Translation failed, using mock translation: {e.message}")
                    translated_text = mock_translation(transcript.text, target_language)

            language = get_language(target_language)
            voice_id = language.voice_id if language else DEFAULT_VOICE_IDS["multilingual"]
            speech = await self.elevenlabs.text_to_speech(
                translated_text,
                voice_id,
                model_id=MULTILINGUAL_MODEL,
                settings=TRANSLATION_VOICE_SETTINGS,
            )

            audio_id = str(uuid.uuid4())
            output_name = f"translated_{audio_id}.mp3"
            stored = await self.storage.upload(speech, f"{TRANSLATED_AUDIO_DIR}/{output_name}", "audio/mpeg")

            async with get_session() as session:
                await AudioFileRepository(session).create(
                    id=audio_id,
                    user_id=owner_id,
                    filename=output_name,
                    original_name=output_name,
                    path=stored.key,
                    mimetype="audio/mpeg",
                    size=stored.size,
                    duration=duration,
                )
                await TranslationRepository(session).update(
                    translation_id,
                    source_language=transcript.language,
                    source_text=transcript.text,
                    translated_text=translated_text,
                    translated_audio_id=audio_id,
                    status=TransformationStatus.COMPLETED.value,
                )
            logger.info(f"Translation {translation_id} completed ({target_language})")

        except (VoiceError, OSError) as e:
            message = getattr(e, "message", None) or str(e)
            logger.error(f"Translation {translation_id} failed: {message}")
            async with get_session() as session:
                await TranslationRepository(session).update(
                    translation_id,
                    status=TransformationStatus.FAILED.value,
                    error_message=message[:500],
                )

        except Exception as e:
            logger.exception(f"Translation {translation_id} failed unexpectedly")
            async with get_session() as session:
                await TranslationRepository(session).update(
                    translation_id,
                    status=TransformationStatus.FAILED.value,
                    error_message=(str(e) or e.__class__.__name__)[:500],
                )


# =============================================================================
# Voice Translate Pipeline
# =============================================================================


class VoiceTranslatePipeline:
    """
    Runs voice-translate operations and batches.

    Steps are ``transcribing``, ``translating``, ``synthesizing`` and
    ``saving``; a failure records ``Failed at: {step}``.
    """

    def __init__(
        self,
        elevenlabs: ElevenLabsClient,
        libre: LibreTranslateClient,
        whisper: WhisperClient,
        storage: LocalStorage,
    ):
        self.elevenlabs = elevenlabs
        self.libre = libre
        self.whisper = whisper
        self.storage = storage

    async def _update_operation(self, operation_id: str, **fields: Any) -> None:
        async with get_session() as session:
            await VoiceTranslateOperationRepository(session).update(operation_id, **fields)

    async def _load(self, operation_id: str) -> Optional[Dict[str, Any]]:
        async with get_session() as session:
            operation = await VoiceTranslateOperationRepository(session).get_by_id(operation_id)
            if operation is None:
                return None
            source = await AudioFileRepository(session).get_by_id(operation.original_audio_id)
            clone = None
            if operation.voice_clone_id:
                clone = await VoiceCloneRepository(session).get_by_id(operation.voice_clone_id)
            return {
                "target_language": operation.target_language,
                "voice_id": clone.eleven_labs_voice_id if clone else operation.voice_id,
                "source": (
                    {
                        "path": source.path,
                        "filename": source.filename,
                        "mimetype": source.mimetype,
                        "user_id": source.user_id,
                        "duration": source.duration,
                    }
                    if source else None
                ),
            }

    async def run_operation(self, operation_id: str) -> bool:
        """Run one operation, returning whether it completed."""
        started = time.time()
        step = "transcribing"

        job = await self._load(operation_id)
        if job is None:
            logger.warning(f"Voice translate operation {operation_id} no longer exists")
            return False

        try:
            await self._update_operation(
                operation_id,
                status=OperationStatus.PROCESSING.value,
                current_step=step,
            )

            source = job["source"]
            if source is None or not await self.storage.exists(source["path"]):
                raise FileNotFoundError("Audio file not found")
            audio = await self.storage.download(source["path"])
            transcript = await transcribe_or_fallback(
                self.whisper, audio, source["filename"], source["mimetype"]
            )

            step = "translating"
            target = job["target_language"]
            await self._update_operation(
                operation_id,
                current_step=step,
                source_language=transcript.language,
                transcribed_text=transcript.text,
            )
            translated = (await self.libre.translate(transcript.text, transcript.language, target)).text

            step = "synthesizing"
            voice_id = resolve_voice_id(job["voice_id"], target)
            await self._update_operation(
                operation_id,
                current_step=step,
                translated_text=translated,
                voice_id=voice_id,
            )
            speech = await synthesize_speech(self.elevenlabs, translated, voice_id, target)

            step = "saving"
            await self._update_operation(operation_id, current_step=step)
            audio_id = str(uuid.uuid4())
            output_name = f"voice_translate_{audio_id}.mp3"
            stored = await self.storage.upload(speech, f"{TRANSLATED_AUDIO_DIR}/{output_name}", "audio/mpeg")

            async with get_session() as session:
                await AudioFileRepository(session).create(
                    id=audio_id,
                    user_id=source["user_id"],
                    filename=output_name,
                    original_name=output_name,
                    path=stored.key,
                    mimetype="audio/mpeg",
                    size=stored.size,
                    duration=source["duration"],
                )
                await VoiceTranslateOperationRepository(session).update(
                    operation_id,
                    status=OperationStatus.COMPLETED.value,
                    current_step="completed",
                    result_audio_id=audio_id,
                    processing_time=int((time.time() - started) * 1000),
                )

            logger.info(f"Voice translate operation {operation_id} completed ({target})")
            return True

        except (VoiceError, OSError) as e:
            message = getattr(e, "message", None) or str(e)
            logger.error(f"Voice translate operation {operation_id} failed at {step}: {message}")
            await self._update_operation(
                operation_id,
                status=OperationStatus.FAILED.value,
                current_step=f"Failed at: {step}",
                error_message=message[:500],
                processing_time=int((time.time() - started) * 1000),
            )
            return False

        except Exception as e:
            logger.exception(f"Voice translate operation {operation_id} failed unexpectedly at {step}")
            await self._update_operation(
                operation_id,
                status=OperationStatus.FAILED.value,
                current_step=f"Failed at: {step}",
                error_message=(str(e) or e.__class__.__name__)[:500],
                processing_time=int((time.time() - started) * 1000),
            )
            return False

    async def run_batch(self, batch_id: str, operation_ids: List[str]) -> None:
        """Run a batch's operations one after another."""
        async with get_session() as session:
            await VoiceTranslateBatchRepository(session).update(
                batch_id, status=OperationStatus.PROCESSING.value
            )

        completed = failed = 0
        for index, operation_id in enumerate(operation_ids):
            try:
                succeeded = await self.run_operation(operation_id)
            except Exception:
                logger.exception(f"Batch {batch_id} operation {operation_id} crashed")
                succeeded = False
            if succeeded:
                completed += 1
            else:
                failed += 1

            async with get_session() as session:
                await VoiceTranslateBatchRepository(session).update(
                    batch_id, completed_files=completed, failed_files=failed
                )

            if index < len(operation_ids) - 1 and BATCH_DELAY_SECONDS:
                await asyncio.sleep(BATCH_DELAY_SECONDS)

        if failed == len(operation_ids):
            status = OperationStatus.FAILED
        elif completed == len(operation_ids):
            status = OperationStatus.COMPLETED
        else:
            status = OperationStatus.PARTIAL

        async with get_session() as session:
            await VoiceTranslateBatchRepository(session).update(batch_id, status=status.value)

        logger.info(f"Batch {batch_id} finished: {completed} completed, {failed} failed")


__all__ = [
    "TRANSLATION_VOICE_SETTINGS",
    "synthesize_speech",
    "transcribe_or_fallback",
    "AudioTranslator",
    "VoiceTranslatePipeline",
]
