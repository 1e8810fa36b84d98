"""
Audio API Routes

Audio upload and streaming. Stored audio is served with a content type
sniffed from the file header, since uploads often carry a generic or
wrong client-declared type.
"""

import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Path, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import ErrorCode, NotFoundError, ValidationError, success_response
from ..dependencies import get_current_user, get_db_session, get_storage
from ..serializers import audio_file_to_response
from ...database.models import AudioFile, User
from ...database.repositories import (
    AudioFileRepository,
    TranslationRepository,
    VoiceTransformationRepository,
)
from ...storage import ORIGINAL_AUDIO_DIR, LocalStorage, sniff_audio_mimetype, unique_name


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Audio"])


ALLOWED_AUDIO_TYPES = {
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/ogg",
    "audio/webm",
    "audio/m4a",
    "audio/x-m4a",
    "audio/mp4",
}
MAX_AUDIO_BYTES = 50 * 1024 * 1024

EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/wave": ".wav",
    "audio/ogg": ".ogg",
    "audio/webm": ".webm",
    "audio/m4a": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/mp4": ".m4a",
}


# =============================================================================
# Helpers
# =============================================================================

async def save_uploaded_audio(
    db: AsyncSession,
    storage: LocalStorage,
    user: User,
    upload: Optional[UploadFile],
    field: str = "audio",
) -> AudioFile:
    """Validate an uploaded audio file, store it and record an AudioFile."""
    if upload is None or not upload.filename:
        raise ValidationError("No audio file uploaded", field=field)

    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_AUDIO_TYPES:
        raise ValidationError(
            "Invalid file type. Only audio files are allowed.",
            field=field,
            code=ErrorCode.INVALID_FILE,
        )

    content = await upload.read()
    if not content:
        raise ValidationError("No audio file uploaded", field=field)
    if len(content) > MAX_AUDIO_BYTES:
        raise ValidationError(
            "File too large. Maximum size is 50MB",
            field=field,
            code=ErrorCode.INVALID_FILE,
        )

    extension = os.path.splitext(upload.filename)[1].lower() or EXTENSIONS.get(content_type, "")
    filename = unique_name(extension)
    stored = await storage.upload(content, f"{ORIGINAL_AUDIO_DIR}/{filename}", content_type)

    audio = await AudioFileRepository(db).create(
        user_id=user.id,
        filename=filename,
        original_name=upload.filename,
        path=stored.key,
        mimetype=content_type,
        size=stored.size,
    )
    logger.info(f"Stored audio {audio.id} ({stored.size} bytes) for user {user.id}")
    return audio


async def stream_audio(storage: LocalStorage, audio: Optional[AudioFile]) -> FileResponse:
    if audio is None or not await storage.exists(audio.path):
        raise NotFoundError("Audio file")

    header = await storage.read_header(audio.path)
    return FileResponse(
        storage.path_for(audio.path),
        media_type=sniff_audio_mimetype(header, fallback=audio.mimetype),
        filename=audio.original_name or audio.filename,
        content_disposition_type="inline",
    )


# =============================================================================
# Routes
# =============================================================================

@router.post("/api/upload/audio", status_code=201, summary="Upload audio")
async def upload_audio(
    audio: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage),
):
    record = await save_uploaded_audio(db, storage, user, audio)
    await db.commit()
    return success_response(audio_file_to_response(record), message="Audio uploaded")


@router.get("/api/audio/original/{audio_id}", summary="Stream an original recording")
async def get_original_audio(
    audio_id: str = Path(...),
    db: AsyncSession = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage),
):
    audio = await AudioFileRepository(db).get_by_id(audio_id)
    return await stream_audio(storage, audio)


@router.get("/api/audio/translated/{audio_id}", summary="Stream translated audio")
async def get_translated_audio(
    audio_id: str = Path(...),
    db: AsyncSession = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage),
):
    files = AudioFileRepository(db)
    translation = await TranslationRepository(db).get_by_id(audio_id)
    if translation and translation.translated_audio_id:
        audio = await files.get_by_id(translation.translated_audio_id)
    else:
        audio = await files.get_by_id(audio_id)
    return await stream_audio(storage, audio)


@router.get("/api/audio/{audio_id}", summary="Stream audio")
async def get_audio(
    audio_id: str = Path(...),
    db: AsyncSession = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage),
):
    """
    Resolve an id to audio: a transformation's output first, then an
    audio file, then a translation's synthesised audio.
    """
    files = AudioFileRepository(db)

    transformation = await VoiceTransformationRepository(db).get_by_id(audio_id)
    if transformation and transformation.transformed_audio_id:
        return await stream_audio(storage, await files.get_by_id(transformation.transformed_audio_id))

    audio = await files.get_by_id(audio_id)
    if audio:
        return await stream_audio(storage, audio)

    translation = await TranslationRepository(db).get_by_id(audio_id)
    if translation and translation.translated_audio_id:
        return await stream_audio(storage, await files.get_by_id(translation.translated_audio_id))

    raise NotFoundError("Audio file", audio_id)
