"""
Saved Voice Creation Routes
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import (
    AuthorizationError,
    NotFoundError,
    paginated_response,
    success_response,
)
from ..dependencies import get_current_user, get_db_session, load_owned_audio
from ..serializers import audio_url, iso, user_summary
from ...database.models import SavedVoiceCreation, User
from ...database.repositories import AudioFileRepository, SavedVoiceCreationRepository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/voice/saved", tags=["Saved Voices"])


# =============================================================================
# Request Models
# =============================================================================

class SaveVoiceRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    originalAudioId: str
    transformedAudioId: Optional[str] = None
    description: Optional[str] = None
    effectId: Optional[str] = None
    effectName: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    isPublic: bool = False


class UpdateSavedVoiceRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    isPublic: Optional[bool] = None


# =============================================================================
# Helpers
# =============================================================================

def creation_to_response(creation: SavedVoiceCreation) -> Dict[str, Any]:
    return {
        "id": creation.id,
        "name": creation.name,
        "description": creation.description,
        "originalAudioId": creation.original_audio_id,
        "originalAudioUrl": audio_url(creation.original_audio_id),
        "transformedAudioId": creation.transformed_audio_id,
        "transformedAudioUrl": audio_url(creation.transformed_audio_id),
        "effectId": creation.effect_id,
        "effectName": creation.effect_name,
        "category": creation.category,
        "tags": creation.tags or [],
        "isPublic": creation.is_public,
        "user": user_summary(creation.user),
        "createdAt": iso(creation.created_at),
        "updatedAt": iso(creation.updated_at),
    }


async def load_creation(db: AsyncSession, creation_id: str) -> SavedVoiceCreation:
    creation = await SavedVoiceCreationRepository(db).get_by_id(creation_id)
    if not creation:
        raise NotFoundError("Saved voice", creation_id)
    return creation


def require_owner(creation: SavedVoiceCreation, user: User) -> None:
    if creation.user_id != user.id:
        raise AuthorizationError("Not authorized to modify this saved voice")


# =============================================================================
# Routes
# =============================================================================

@router.post("", status_code=201, summary="Save a voice creation")
async def save_voice(
    request: SaveVoiceRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    original = await load_owned_audio(db, request.originalAudioId, user)

    if request.transformedAudioId:
        transformed = await AudioFileRepository(db).get_by_id(request.transformedAudioId)
        if not transformed:
            raise NotFoundError("Transformed audio file", request.transformedAudioId)

    creation = await SavedVoiceCreationRepository(db).create(
        user_id=user.id,
        name=request.name,
        description=request.description,
        original_audio_id=original.id,
        transformed_audio_id=request.transformedAudioId,
        effect_id=request.effectId,
        effect_name=request.effectName,
        category=request.category,
        tags=request.tags,
        is_public=request.isPublic,
    )
    await db.commit()
    await db.refresh(creation, ["user"])

    logger.info(f"User {user.id} saved voice creation {creation.id}")
    return success_response(creation_to_response(creation), message="Voice creation saved")


@router.get("", summary="List own saved voices")
async def list_saved_voices(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    items, total = await SavedVoiceCreationRepository(db).list_by_user(
        user.id,
        category=category,
        search=search,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return paginated_response([creation_to_response(c) for c in items], page, limit, total)


@router.get("/public", summary="List public saved voices")
async def list_public_voices(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
):
    items, total = await SavedVoiceCreationRepository(db).list_public(
        category=category,
        search=search,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return paginated_response([creation_to_response(c) for c in items], page, limit, total)


@router.get("/{creation_id}", summary="Get a saved voice")
async def get_saved_voice(
    creation_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    creation = await load_creation(db, creation_id)
    if creation.user_id != user.id and not creation.is_public:
        raise AuthorizationError("Not authorized to view this saved voice")
    return success_response(creation_to_response(creation))


@router.put("/{creation_id}", summary="Update a saved voice")
async def update_saved_voice(
    request: UpdateSavedVoiceRequest,
    creation_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    creation = await load_creation(db, creation_id)
    require_owner(creation, user)

    if request.name is not None:
        creation.name = request.name
    if request.description is not None:
        creation.description = request.description
    if request.category is not None:
        creation.category = request.category
    if request.tags is not None:
        creation.tags = request.tags
    if request.isPublic is not None:
        creation.is_public = request.isPublic
    await db.commit()
    await db.refresh(creation)

    return success_response(creation_to_response(creation), message="Voice creation updated")


@router.delete("/{creation_id}", summary="Delete a saved voice")
async def delete_saved_voice(
    creation_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    creation = await load_creation(db, creation_id)
    require_owner(creation, user)

    await db.delete(creation)
    await db.commit()

    logger.info(f"User {user.id} deleted saved voice {creation_id}")
    return success_response({"id": creation_id}, message="Voice creation deleted")
