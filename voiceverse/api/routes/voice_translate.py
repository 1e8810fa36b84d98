"""
Voice Translate API Routes

Speak-in-another-language features: LibreTranslate text translation,
ElevenLabs synthesis, voice cloning and the background
transcribe/translate/synthesise pipeline with batch support.
"""

import base64
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Path, Query, UploadFile
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import (
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    ServiceError,
    ValidationError,
    paginated_response,
    success_response,
)
from ..dependencies import (
    get_current_user,
    get_db_session,
    get_elevenlabs,
    get_libretranslate,
    get_storage,
    get_whisper,
    load_owned_audio,
)
from ..serializers import audio_url, iso
from .audio import save_uploaded_audio
from ...database.models import (
    AudioFile,
    OperationStatus,
    User,
    VoiceClone,
    VoiceTranslateBatch,
    VoiceTranslateOperation,
)
from ...database.repositories import (
    AudioFileRepository,
    VoiceCloneRepository,
    VoiceEffectRepository,
    VoiceTranslateBatchRepository,
    VoiceTranslateOperationRepository,
)
from ...storage import LocalStorage
from ...translation import (
    VOICE_TRANSLATE_LANGUAGES,
    LibreTranslateClient,
    WhisperClient,
    get_voice_translate_language,
    resolve_voice_id,
)
from ...translation.jobs import VoiceTranslatePipeline, synthesize_speech, transcribe_or_fallback
from ...voice import ElevenLabsClient, VoiceError, VoiceSettings


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/voice-translate", tags=["Voice Translate"])


MAX_BATCH_FILES = 10
TRANSLATION_SERVICE = "LibreTranslate"


# =============================================================================
# Request Models
# =============================================================================

class TestTranslationRequest(BaseModel):
    text: str = "Hello, world!"
    sourceLanguage: str = "en"
    targetLanguage: str = "es"


class TextToVoiceRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)
    targetLanguage: str
    sourceLanguage: str = "en"
    voiceId: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class TransformRequest(BaseModel):
    audioId: str = Field(..., validation_alias=AliasChoices("audioId", "audioFileId"))
    targetLanguage: str
    voiceId: Optional[str] = None
    voiceCloneId: Optional[str] = None


class MyVoiceRequest(BaseModel):
    """Either ``text`` for immediate synthesis or an audio id to re-voice."""

    voiceCloneId: str
    targetLanguage: str
    sourceLanguage: str = "en"
    text: Optional[str] = None
    audioId: Optional[str] = Field(None, validation_alias=AliasChoices("audioId", "audioFileId"))
    settings: Optional[Dict[str, Any]] = None


class BatchRequest(BaseModel):
    audioIds: List[str] = Field(..., validation_alias=AliasChoices("audioIds", "audioFileIds"))
    targetLanguage: str
    voiceId: Optional[str] = None


class DetectLanguageRequest(BaseModel):
    audioId: str = Field(..., validation_alias=AliasChoices("audioId", "audioFileId"))


# =============================================================================
# Helpers
# =============================================================================

def require_language(code: str):
    language = get_voice_translate_language(code)
    if language is None:
        raise ValidationError(f"Unsupported target language: {code}", field="targetLanguage")
    return language


def provider_failure(message: str, e: VoiceError) -> ServiceError:
    return ServiceError(message=message, code=ErrorCode.DEPENDENCY_FAILURE, details=e.to_dict())


def operation_to_response(operation: VoiceTranslateOperation) -> Dict[str, Any]:
    return {
        "id": operation.id,
        "batchId": operation.batch_id,
        "originalAudioId": operation.original_audio_id,
        "sourceLanguage": operation.source_language,
        "targetLanguage": operation.target_language,
        "voiceId": operation.voice_id,
        "voiceCloneId": operation.voice_clone_id,
        "status": operation.status,
        "currentStep": operation.current_step,
        "transcribedText": operation.transcribed_text,
        "translatedText": operation.translated_text,
        "resultAudioId": operation.result_audio_id,
        "resultAudioUrl": audio_url(operation.result_audio_id),
        "processingTime": operation.processing_time,
        "errorMessage": operation.error_message,
        "createdAt": iso(operation.created_at),
        "updatedAt": iso(operation.updated_at),
    }


def clone_to_response(clone: VoiceClone) -> Dict[str, Any]:
    return {
        "id": clone.id,
        "voiceName": clone.name,
        "voiceDescription": clone.description,
        "elevenLabsVoiceId": clone.eleven_labs_voice_id,
        "sampleAudioId": clone.sample_audio_id,
        "createdAt": iso(clone.created_at),
    }


async def load_owned_clone(db: AsyncSession, clone_id: str, user: User) -> VoiceClone:
    clone = await VoiceCloneRepository(db).get_by_id(clone_id)
    if not clone:
        raise NotFoundError("Voice clone", clone_id)
    if clone.user_id != user.id:
        raise AuthorizationError("You do not have permission to use this voice clone")
    return clone


async def queue_operation(
    db: AsyncSession,
    user: User,
    audio: AudioFile,
    target_language: str,
    voice_id: Optional[str] = None,
    voice_clone_id: Optional[str] = None,
    batch_id: Optional[str] = None,
) -> VoiceTranslateOperation:
    return await VoiceTranslateOperationRepository(db).create(
        user_id=user.id,
        batch_id=batch_id,
        original_audio_id=audio.id,
        target_language=target_language,
        voice_id=voice_id,
        voice_clone_id=voice_clone_id,
        status=OperationStatus.QUEUED.value,
    )


async def translate_and_speak(
    libre: LibreTranslateClient,
    elevenlabs: ElevenLabsClient,
    text: str,
    source_language: str,
    target_language: str,
    voice_id: str,
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    translated = text
    if source_language != target_language:
        translated = (await libre.translate(text, source_language, target_language)).text

    audio = await synthesize_speech(
        elevenlabs,
        translated,
        voice_id,
        target_language,
        settings=VoiceSettings.from_dict(settings) if settings else None,
    )
    return {
        "originalText": text,
        "translatedText": translated,
        "sourceLanguage": source_language,
        "targetLanguage": target_language,
        "voiceId": voice_id,
        "audioBase64": base64.b64encode(audio).decode("ascii"),
        "audioSize": len(audio),
        "translationService": TRANSLATION_SERVICE,
        "voiceService": "ElevenLabs",
        "timestamp": datetime.utcnow().isoformat(),
    }


# =============================================================================
# Options and Text
# =============================================================================

@router.get("/options", summary="Languages, effects and voices")
async def get_options(
    db: AsyncSession = Depends(get_db_session),
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs),
    libre: LibreTranslateClient = Depends(get_libretranslate),
):
    effects = await VoiceEffectRepository(db).list_by_popularity()

    voices: List[Dict[str, Any]] = []
    if elevenlabs.is_configured:
        try:
            voices = await elevenlabs.list_voices()
        except VoiceError as e:
            logger.warning(f"Could not fetch ElevenLabs voices: {e.message}")

    return success_response({
        "languages": [language.to_dict() for language in VOICE_TRANSLATE_LANGUAGES],
        "libreTranslateLanguages": await libre.supported_languages(),
        "libreTranslateStatus": await libre.test_connection(),
        "voiceEffects": [
            {
                "id": effect.id,
                "effectId": effect.effect_id,
                "name": effect.name,
                "category": effect.category,
                "popularity": effect.popularity,
            }
            for effect in effects
        ],
        "elevenLabsVoices": voices,
        "translationService": TRANSLATION_SERVICE,
    })


@router.post("/test-translation", summary="Test the translation service")
async def test_translation(
    request: TestTranslationRequest,
    libre: LibreTranslateClient = Depends(get_libretranslate),
):
    result = await libre.translate(request.text, request.sourceLanguage, request.targetLanguage)
    return success_response({
        "originalText": request.text,
        "translatedText": result.text,
        "sourceLanguage": request.sourceLanguage,
        "targetLanguage": request.targetLanguage,
        "translationService": TRANSLATION_SERVICE,
        "isFallback": result.is_fallback,
        "timestamp": datetime.utcnow().isoformat(),
    })


@router.post("/text-to-voice", summary="Translate text and synthesise it")
async def text_to_voice(
    request: TextToVoiceRequest,
    libre: LibreTranslateClient = Depends(get_libretranslate),
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs),
):
    language = require_language(request.targetLanguage)
    voice_id = resolve_voice_id(request.voiceId, language.code)

    try:
        data = await translate_and_speak(
            libre,
            elevenlabs,
            request.text,
            request.sourceLanguage,
            language.code,
            voice_id,
            request.settings,
        )
    except VoiceError as e:
        logger.error(f"Text-to-voice failed: {e.message}")
        raise provider_failure("Failed to generate voice translation", e)
    return success_response(data)


# =============================================================================
# Voice Cloning
# =============================================================================

@router.post("/clone-voice", status_code=201, summary="Clone a voice for translations")
async def clone_voice(
    sample: Optional[UploadFile] = File(None),
    audioFileId: Optional[str] = Form(None),
    voiceName: Optional[str] = Form(None),
    voiceDescription: Optional[str] = Form(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs),
    storage: LocalStorage = Depends(get_storage),
):
    """Clone from an uploaded ``sample`` or from a stored audio file."""
    if sample is not None and sample.filename:
        audio = await save_uploaded_audio(db, storage, user, sample, field="sample")
    elif audioFileId:
        audio = await load_owned_audio(db, audioFileId, user)
    else:
        raise ValidationError("A voice sample or audio file ID is required", field="sample")

    if not await storage.exists(audio.path):
        raise NotFoundError("Audio file", audio.id, message="Audio file not found on disk")

    name = voiceName or f"Cloned Voice {int(datetime.utcnow().timestamp() * 1000)}"
    description = voiceDescription or "Voice cloned from uploaded audio"
    content = await storage.download(audio.path)
    try:
        voice_id = await elevenlabs.add_voice(
            name,
            [(audio.original_name or audio.filename, content, audio.mimetype)],
            description=description,
        )
    except VoiceError as e:
        logger.error(f"Voice cloning failed for user {user.id}: {e.message}")
        raise provider_failure("Failed to clone voice", e)

    clone = await VoiceCloneRepository(db).create(
        user_id=user.id,
        name=name,
        description=description,
        eleven_labs_voice_id=voice_id,
        sample_audio_id=audio.id,
    )
    await db.commit()

    logger.info(f"User {user.id} cloned translation voice {voice_id}")
    return success_response(
        {"voiceCloneId": clone.id, **clone_to_response(clone)},
        message="Voice cloned successfully! You can now use this voice for translations.",
    )


@router.get("/my-voices", summary="List own cloned voices")
async def list_my_voices(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    clones = await VoiceCloneRepository(db).list_by_user(user.id)
    return success_response({
        "voiceClones": [clone_to_response(clone) for clone in clones],
        "count": len(clones),
    })


# =============================================================================
# Pipeline
# =============================================================================

@router.post("/transform", status_code=202, summary="Translate a recording")
async def transform(
    request: TransformRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs),
    libre: LibreTranslateClient = Depends(get_libretranslate),
    whisper: WhisperClient = Depends(get_whisper),
    storage: LocalStorage = Depends(get_storage),
):
    language = require_language(request.targetLanguage)
    audio = await load_owned_audio(db, request.audioId, user)
    if request.voiceCloneId:
        await load_owned_clone(db, request.voiceCloneId, user)

    operation = await queue_operation(
        db,
        user,
        audio,
        language.code,
        voice_id=request.voiceId,
        voice_clone_id=request.voiceCloneId,
    )
    await db.commit()

    pipeline = VoiceTranslatePipeline(elevenlabs, libre, whisper, storage)
    background_tasks.add_task(pipeline.run_operation, operation.id)

    logger.info(f"Voice translate operation {operation.id} queued ({language.code})")
    return success_response(
        {
            "operationId": operation.id,
            "targetLanguage": language.code,
            "estimatedTime": "30-60 seconds",
        },
        message="Voice transformation and translation started",
    )


@router.post("/translate-with-my-voice", summary="Translate with a cloned voice")
async def translate_with_my_voice(
    request: MyVoiceRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs),
    libre: LibreTranslateClient = Depends(get_libretranslate),
    whisper: WhisperClient = Depends(get_whisper),
    storage: LocalStorage = Depends(get_storage),
):
    """
    With ``audioId`` the recording is queued through the pipeline using
    the cloned voice (202); with ``text`` the speech is returned inline.
    """
    if not request.text and not request.audioId:
        raise ValidationError("Text or an audio file ID is required")

    clone = await load_owned_clone(db, request.voiceCloneId, user)
    language = require_language(request.targetLanguage)

    if request.audioId:
        audio = await load_owned_audio(db, request.audioId, user)
        operation = await queue_operation(db, user, audio, language.code, voice_clone_id=clone.id)
        await db.commit()

        pipeline = VoiceTranslatePipeline(elevenlabs, libre, whisper, storage)
        background_tasks.add_task(pipeline.run_operation, operation.id)
        return success_response(
            {
                "operationId": operation.id,
                "targetLanguage": language.code,
                "voiceCloneId": clone.id,
                "estimatedTime": "30-60 seconds",
            },
            message="Translation with your voice started",
        )

    try:
        data = await translate_and_speak(
            libre,
            elevenlabs,
            request.text,
            request.sourceLanguage,
            language.code,
            clone.eleven_labs_voice_id,
            request.settings,
        )
    except VoiceError as e:
        logger.error(f"Translation with cloned voice {clone.id} failed: {e.message}")
        raise provider_failure("Failed to translate with cloned voice", e)

    data.update({
        "voiceCloneId": clone.id,
        "voiceName": clone.name,
        "elevenLabsVoiceId": clone.eleven_labs_voice_id,
        "voiceService": "ElevenLabs (Cloned Voice)",
    })
    return success_response(data)


@router.get("/status/{operation_id}", summary="Operation status")
async def get_status(
    operation_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    operation = await VoiceTranslateOperationRepository(db).get_by_id(operation_id)
    if not operation:
        raise NotFoundError("Operation", operation_id, message="Operation not found")
    if operation.user_id != user.id:
        raise AuthorizationError("You do not have permission to view this operation")
    return success_response(operation_to_response(operation))


@router.get("/history", summary="Operation history")
async def list_history(
    status: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    items, total = await VoiceTranslateOperationRepository(db).list_by_user(
        user.id,
        status=status,
        language=language,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return paginated_response([operation_to_response(op) for op in items], page, limit, total)


# =============================================================================
# Batches
# =============================================================================

@router.post("/batch", status_code=202, summary="Translate several recordings")
async def create_batch(
    request: BatchRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs),
    libre: LibreTranslateClient = Depends(get_libretranslate),
    whisper: WhisperClient = Depends(get_whisper),
    storage: LocalStorage = Depends(get_storage),
):
    if not request.audioIds:
        raise ValidationError("Audio file IDs array is required", field="audioIds")
    if len(request.audioIds) > MAX_BATCH_FILES:
        raise ValidationError(f"Maximum {MAX_BATCH_FILES} files allowed per batch", field="audioIds")

    language = require_language(request.targetLanguage)

    files = AudioFileRepository(db)
    audios = []
    for audio_id in request.audioIds:
        audio = await files.get_by_id(audio_id)
        if not audio:
            raise NotFoundError("Audio file", audio_id, message="One or more audio files not found")
        if audio.user_id != user.id:
            raise AuthorizationError("You do not have permission to use some of these audio files")
        audios.append(audio)

    batch = await VoiceTranslateBatchRepository(db).create(
        user_id=user.id,
        target_language=language.code,
        total_files=len(audios),
        status=OperationStatus.QUEUED.value,
    )
    operation_ids = []
    for audio in audios:
        operation = await queue_operation(
            db, user, audio, language.code, voice_id=request.voiceId, batch_id=batch.id
        )
        operation_ids.append(operation.id)
    await db.commit()

    pipeline = VoiceTranslatePipeline(elevenlabs, libre, whisper, storage)
    background_tasks.add_task(pipeline.run_batch, batch.id, operation_ids)

    count = len(operation_ids)
    logger.info(f"Batch {batch.id} queued with {count} files ({language.code})")
    return success_response(
        {
            "batchId": batch.id,
            "operationIds": operation_ids,
            "totalFiles": count,
            "targetLanguage": language.code,
            "estimatedTime": f"{count * 30}-{count * 60} seconds",
        },
        message="Batch voice transformation and translation started",
    )


@router.get("/batch/{batch_id}", summary="Batch status")
async def get_batch(
    batch_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    batch: Optional[VoiceTranslateBatch] = await VoiceTranslateBatchRepository(db).get_by_id(batch_id)
    if not batch:
        raise NotFoundError("Batch", batch_id, message="Batch operation not found")
    if batch.user_id != user.id:
        raise AuthorizationError("You do not have permission to view this batch operation")

    operations = await VoiceTranslateOperationRepository(db).list_by_batch(batch.id)
    return success_response({
        "id": batch.id,
        "targetLanguage": batch.target_language,
        "status": batch.status,
        "totalFiles": batch.total_files,
        "completedFiles": batch.completed_files,
        "failedFiles": batch.failed_files,
        "operations": [operation_to_response(op) for op in operations],
        "createdAt": iso(batch.created_at),
        "updatedAt": iso(batch.updated_at),
    })


# =============================================================================
# Language Detection
# =============================================================================

@router.post("/detect-language", summary="Detect the spoken language")
async def detect_language(
    request: DetectLanguageRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    whisper: WhisperClient = Depends(get_whisper),
    storage: LocalStorage = Depends(get_storage),
):
    audio = await load_owned_audio(db, request.audioId, user)
    if not await storage.exists(audio.path):
        raise NotFoundError("Audio file", audio.id, message="Audio file not found on disk")

    content = await storage.download(audio.path)
    transcript = await transcribe_or_fallback(whisper, content, audio.filename, audio.mimetype)

    if transcript.is_fallback:
        confidence = 0.3
        text = "Language detection unavailable"
    else:
        confidence = 0.8
        text = transcript.text

    language = get_voice_translate_language(transcript.language) or get_voice_translate_language("en")
    return success_response({
        "detectedLanguage": {**language.to_dict(), "confidence": confidence},
        "transcribedText": text[:200] + ("..." if len(text) > 200 else ""),
        "supportedLanguages": [lang.to_dict() for lang in VOICE_TRANSLATE_LANGUAGES],
    })
