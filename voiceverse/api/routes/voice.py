"""
Voice API Routes

Voice effects, ElevenLabs voices, cloning and background voice
transformations (effect and emotion presets).
"""

import logging
from typing import Any, Dict, Optional

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
    get_storage,
    load_owned_audio,
)
from ..serializers import audio_url, iso
from ...database.models import User, VoiceEffect, VoiceModel, VoiceTransformation
from ...database.repositories import (
    VoiceEffectRepository,
    VoiceModelRepository,
    VoiceTransformationRepository,
)
from ...storage import LocalStorage
from ...voice import (
    CELEBRITY_VOICES,
    EMOTION_VOICES,
    ElevenLabsClient,
    VoiceError,
    VoiceSettings,
    emotion_voice_list,
    merge_settings,
)
from ...voice.jobs import EFFECT_KIND, EMOTION_KIND, run_transformation


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/voice", tags=["Voice"])


# =============================================================================
# Request Models
# =============================================================================

class CloneVoiceRequest(BaseModel):
    audioId: str
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class TransformRequest(BaseModel):
    audioId: str
    effectId: str
    settings: Optional[Dict[str, Any]] = None


class EmotionTransformRequest(BaseModel):
    audioId: str
    emotionId: str
    settings: Optional[Dict[str, Any]] = None


# =============================================================================
# Helper Functions
# =============================================================================

def effect_to_response(effect: VoiceEffect) -> Dict[str, Any]:
    return {
        "id": effect.id,
        "effectId": effect.effect_id,
        "name": effect.name,
        "description": effect.description,
        "category": effect.category,
        "popularity": effect.popularity,
        "isProOnly": effect.is_pro_only,
        "elevenLabsVoiceId": effect.voice_id,
        "settings": effect.settings,
    }


def model_to_response(model: VoiceModel) -> Dict[str, Any]:
    return {
        "id": model.id,
        "name": model.name,
        "description": model.description,
        "elevenLabsVoiceId": model.eleven_labs_voice_id,
        "isCloned": model.is_cloned,
        "isPublic": model.is_public,
        "userId": model.user_id,
        "createdAt": iso(model.created_at),
    }


def transformation_to_response(transformation: VoiceTransformation) -> Dict[str, Any]:
    return {
        "id": transformation.id,
        "kind": transformation.kind,
        "effectId": transformation.effect_id,
        "status": transformation.status,
        "originalAudioId": transformation.original_audio_id,
        "originalAudioUrl": audio_url(transformation.original_audio_id),
        "transformedAudioId": transformation.transformed_audio_id,
        "transformedAudioUrl": audio_url(transformation.transformed_audio_id),
        "processingTime": transformation.processing_time,
        "errorMessage": transformation.error_message,
        "settings": transformation.settings,
        "createdAt": iso(transformation.created_at),
    }


def provider_failure(e: VoiceError) -> ServiceError:
    return ServiceError(
        message=e.message,
        code=ErrorCode.DEPENDENCY_FAILURE,
        details=e.to_dict(),
    )


async def load_transformation(
    db: AsyncSession,
    transformation_id: str,
    user: User,
    kind: Optional[str] = None,
) -> VoiceTransformation:
    transformation = await VoiceTransformationRepository(db).get_by_id(transformation_id)
    if not transformation or (kind and transformation.kind != kind):
        raise NotFoundError("Transformation", transformation_id)
    if transformation.user_id != user.id:
        raise AuthorizationError("Not authorized to view this transformation")
    return transformation


# =============================================================================
# Catalogue
# =============================================================================

@router.get("/effects", summary="List voice effects")
async def list_effects(
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db_session),
):
    effects = await VoiceEffectRepository(db).list_by_popularity(category)
    return success_response([effect_to_response(effect) for effect in effects])


@router.get("/models", summary="List voice models")
async def list_models(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    models = await VoiceModelRepository(db).list_available(user.id)
    return success_response([model_to_response(model) for model in models])


@router.get("/elevenlabs/voices", summary="List ElevenLabs voices")
async def list_elevenlabs_voices(
    user: User = Depends(get_current_user),
    client: ElevenLabsClient = Depends(get_elevenlabs),
):
    try:
        voices = await client.list_voices()
    except VoiceError as e:
        logger.error(f"Failed to fetch ElevenLabs voices: {e.message}")
        raise provider_failure(e)
    return success_response(voices)


@router.get("/celebrity/voices", summary="List celebrity voices")
async def list_celebrity_voices():
    return success_response([{"key": key, **voice} for key, voice in CELEBRITY_VOICES.items()])


@router.get("/emotion/voices", summary="List emotion presets")
async def list_emotion_voices():
    return success_response(emotion_voice_list())


# =============================================================================
# Cloning
# =============================================================================

@router.post("/clone", status_code=201, summary="Clone a voice from an audio file")
async def clone_voice(
    request: CloneVoiceRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    client: ElevenLabsClient = Depends(get_elevenlabs),
    storage: LocalStorage = Depends(get_storage),
):
    audio = await load_owned_audio(db, request.audioId, user)
    if not await storage.exists(audio.path):
        raise NotFoundError("Audio file", audio.id, message="Audio file not found on disk")

    content = await storage.download(audio.path)
    try:
        voice_id = await client.add_voice(
            request.name,
            [(audio.original_name or audio.filename, content, audio.mimetype)],
            description=request.description,
        )
    except VoiceError as e:
        logger.error(f"Voice cloning failed for user {user.id}: {e.message}")
        raise provider_failure(e)

    model = await VoiceModelRepository(db).create(
        user_id=user.id,
        name=request.name,
        description=request.description,
        eleven_labs_voice_id=voice_id,
        is_cloned=True,
        is_public=False,
    )
    await db.commit()

    logger.info(f"User {user.id} cloned voice {voice_id}")
    return success_response(model_to_response(model))


# =============================================================================
# Transformations
# =============================================================================

@router.post("/transform", status_code=202, summary="Transform audio with an effect")
async def transform_voice(
    request: TransformRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    client: ElevenLabsClient = Depends(get_elevenlabs),
    storage: LocalStorage = Depends(get_storage),
):
    audio = await load_owned_audio(db, request.audioId, user)

    effect = await VoiceEffectRepository(db).get_by_effect_id(request.effectId)
    if not effect:
        raise NotFoundError("Voice effect", request.effectId)
    if effect.is_pro_only and not user.is_pro:
        raise AuthorizationError(
            "This effect is only available to Pro users",
            code=ErrorCode.PRO_REQUIRED,
        )

    settings = merge_settings(VoiceSettings.from_dict(effect.settings), request.settings)
    transformation = await VoiceTransformationRepository(db).create(
        user_id=user.id,
        original_audio_id=audio.id,
        effect_id=effect.effect_id,
        kind=EFFECT_KIND,
        settings=settings.to_dict(),
    )
    await db.commit()

    background_tasks.add_task(run_transformation, transformation.id, client, storage)

    logger.info(f"Transformation {transformation.id} queued ({effect.effect_id})")
    return success_response(
        {"transformationId": transformation.id, "status": transformation.status},
        message="Voice transformation started",
    )


@router.get("/transform/{transformation_id}", summary="Get a transformation")
async def get_transformation(
    transformation_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    transformation = await load_transformation(db, transformation_id, user)
    return success_response(transformation_to_response(transformation))


@router.get("/history", summary="List own transformations")
async def list_history(
    kind: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    transformations = await VoiceTransformationRepository(db).list_by_user(user.id, kind=kind, limit=limit)
    return success_response([transformation_to_response(t) for t in transformations])


@router.post("/emotion/transform", status_code=202, summary="Transform audio with an emotion")
async def transform_emotion(
    request: EmotionTransformRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    client: ElevenLabsClient = Depends(get_elevenlabs),
    storage: LocalStorage = Depends(get_storage),
):
    preset = EMOTION_VOICES.get(request.emotionId)
    if preset is None:
        raise ValidationError("Invalid emotion ID", field="emotionId")

    audio = await load_owned_audio(db, request.audioId, user)

    settings = merge_settings(preset["settings"], request.settings)
    transformation = await VoiceTransformationRepository(db).create(
        user_id=user.id,
        original_audio_id=audio.id,
        effect_id=request.emotionId,
        kind=EMOTION_KIND,
        settings=settings.to_dict(),
    )
    await db.commit()

    background_tasks.add_task(run_transformation, transformation.id, client, storage)

    logger.info(f"Emotion transformation {transformation.id} queued ({request.emotionId})")
    return success_response(
        {
            "transformationId": transformation.id,
            "emotion": request.emotionId,
            "status": transformation.status,
        },
        message="Emotion transformation started",
    )


@router.get("/emotion/transform/{transformation_id}", summary="Get an emotion transformation")
async def get_emotion_transformation(
    transformation_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    transformation = await load_transformation(db, transformation_id, user, kind=EMOTION_KIND)
    return success_response(transformation_to_response(transformation))
