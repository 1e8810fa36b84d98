"""
Translation API Routes

Text translation through Google Translate and background audio
translation (transcribe, translate, re-voice).
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import (
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    ServiceError,
    ValidationError,
    success_response,
)
from ..dependencies import (
    get_current_user,
    get_db_session,
    get_elevenlabs,
    get_google_translate,
    get_storage,
    get_whisper,
    load_owned_audio,
)
from ..serializers import audio_url, iso
from ...database.models import TransformationStatus, Translation, User
from ...database.repositories import TranslationRepository
from ...storage import LocalStorage
from ...translation import (
    SUPPORTED_LANGUAGES,
    GoogleTranslateClient,
    WhisperClient,
    get_language,
)
from ...translation.jobs import AudioTranslator
from ...voice import ElevenLabsClient, VoiceError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/translation", tags=["Translation"])


# =============================================================================
# Request Models
# =============================================================================

class TextTranslationRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)
    targetLanguage: str
    sourceLanguage: str = "auto"


class AudioTranslationRequest(BaseModel):
    audioId: str
    targetLanguage: str


class LanguagePreferenceRequest(BaseModel):
    language: str


# =============================================================================
# Helpers
# =============================================================================

def translation_to_response(translation: Translation) -> Dict[str, Any]:
    return {
        "id": translation.id,
        "sourceLanguage": translation.source_language,
        "targetLanguage": translation.target_language,
        "sourceText": translation.source_text,
        "translatedText": translation.translated_text,
        "audioFileId": translation.audio_file_id,
        "translatedAudioId": translation.translated_audio_id,
        "translatedAudioUrl": audio_url(translation.translated_audio_id),
        "status": translation.status,
        "errorMessage": translation.error_message,
        "createdAt": iso(translation.created_at),
    }


def require_supported(code: str, field: str = "targetLanguage"):
    language = get_language(code)
    if language is None:
        raise ValidationError(f"Unsupported target language: {code}", field=field)
    return language


# =============================================================================
# Routes
# =============================================================================

@router.get("/languages", summary="List supported languages")
async def list_languages():
    return success_response([
        {**language.to_dict(), "voiceId": language.voice_id}
        for language in SUPPORTED_LANGUAGES
    ])


@router.post("/text", summary="Translate text")
async def translate_text(
    request: TextTranslationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    google: GoogleTranslateClient = Depends(get_google_translate),
):
    require_supported(request.targetLanguage)

    try:
        result = await google.translate(
            request.text,
            request.targetLanguage,
            request.sourceLanguage,
        )
    except VoiceError as e:
        logger.error(f"Text translation failed: {e.message}")
        raise ServiceError(e.message, code=ErrorCode.DEPENDENCY_FAILURE, details=e.to_dict())

    translation = await TranslationRepository(db).create(
        user_id=user.id,
        source_language=result.source_language,
        target_language=request.targetLanguage,
        source_text=request.text,
        translated_text=result.text,
        status=TransformationStatus.COMPLETED.value,
    )
    await db.commit()

    return success_response({
        "translation": result.text,
        "translationId": translation.id,
        "detectedSourceLanguage": result.source_language,
    })


@router.post("/audio", status_code=202, summary="Translate audio")
async def translate_audio(
    request: AudioTranslationRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    elevenlabs: ElevenLabsClient = Depends(get_elevenlabs),
    google: GoogleTranslateClient = Depends(get_google_translate),
    whisper: WhisperClient = Depends(get_whisper),
    storage: LocalStorage = Depends(get_storage),
):
    language = require_supported(request.targetLanguage)
    audio = await load_owned_audio(db, request.audioId, user)

    translation = await TranslationRepository(db).create(
        user_id=user.id,
        target_language=language.code,
        audio_file_id=audio.id,
        status=TransformationStatus.PROCESSING.value,
    )
    await db.commit()

    translator = AudioTranslator(elevenlabs, google, whisper, storage)
    background_tasks.add_task(translator.run, translation.id)

    logger.info(f"Audio translation {translation.id} queued ({language.code})")
    return success_response(
        {
            "translationId": translation.id,
            "targetLanguage": language.code,
            "voiceId": language.voice_id,
        },
        message="Audio translation started",
    )


@router.get("/history", summary="Translation history")
async def list_history(
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    translations = await TranslationRepository(db).list_by_user(user.id, limit=limit)
    return success_response([translation_to_response(t) for t in translations])


@router.put("/preference", summary="Set preferred language")
async def set_preference(
    request: LanguagePreferenceRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    if get_language(request.language) is None:
        raise ValidationError(f"Unsupported language: {request.language}", field="language")

    user.preferred_language = request.language
    await db.commit()
    return success_response({"preferredLanguage": user.preferred_language})


@router.get("/{translation_id}", summary="Get a translation")
async def get_translation(
    translation_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    translation = await TranslationRepository(db).get_by_id(translation_id)
    if not translation:
        raise NotFoundError("Translation", translation_id)
    if translation.user_id != user.id:
        raise AuthorizationError("Not authorized to view this translation")
    return success_response(translation_to_response(translation))
