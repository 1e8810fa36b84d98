"""
Voice Transformation Jobs

Background work scheduled after a transformation request has been
accepted. Each job opens its own database session.
"""

import logging
import time
import uuid

from ..database import get_session
from ..database.models import TransformationStatus
from ..database.repositories import (
    AudioFileRepository,
    VoiceEffectRepository,
    VoiceTransformationRepository,
)
from ..storage import LocalStorage, TRANSFORMED_AUDIO_DIR
from .base import VoiceError, VoiceSettings
from .catalog import EMOTION_VOICES
from .elevenlabs import ElevenLabsClient


logger = logging.getLogger(__name__)


EMOTION_KIND = "emotion"
EFFECT_KIND = "effect"


async def run_transformation(
    transformation_id: str,
    client: ElevenLabsClient,
    storage: LocalStorage,
) -> None:
    """
    Re-voice the source audio of a transformation and store the result.

    On success the transformation is COMPLETED with the new audio file
    and the effect's popularity is incremented. Any error marks it
    FAILED with the error message.
    """
    started = time.time()

    async with get_session() as session:
        transformations = VoiceTransformationRepository(session)
        effects = VoiceEffectRepository(session)
        audio_files = AudioFileRepository(session)

        transformation = await transformations.get_by_id(transformation_id)
        if transformation is None:
            logger.warning(f"Transformation {transformation_id} no longer exists")
            return

        try:
            source = await audio_files.get_by_id(transformation.original_audio_id)
            if source is None or not await storage.exists(source.path):
                raise FileNotFoundError("Source audio file not found")

            if transformation.kind == EMOTION_KIND:
                voice_id = EMOTION_VOICES[transformation.effect_id]["voice_id"]
                filename = f"emotion_{transformation.effect_id}_{uuid.uuid4()}.mp3"
                convert = client.speech_to_speech
            else:
                effect = await effects.get_by_effect_id(transformation.effect_id)
                if effect is None or not effect.voice_id:
                    raise VoiceError(f"Effect {transformation.effect_id} has no voice")
                voice_id = effect.voice_id
                filename = f"transformed_{uuid.uuid4()}.mp3"
                convert = client.convert_with_voice

            audio = await storage.download(source.path)
            result = await convert(
                audio,
                voice_id,
                settings=VoiceSettings.from_dict(transformation.settings),
                filename=source.filename,
                mimetype=source.mimetype,
            )

            stored = await storage.upload(result, f"{TRANSFORMED_AUDIO_DIR}/{filename}", "audio/mpeg")
            output = await audio_files.create(
                user_id=source.user_id,
                filename=filename,
                original_name=filename,
                path=stored.key,
                mimetype="audio/mpeg",
                size=stored.size,
                duration=source.duration,
            )

            transformation.transformed_audio_id = output.id
            transformation.status = TransformationStatus.COMPLETED.value
            transformation.processing_time = int((time.time() - started) * 1000)
            await effects.increment_popularity(transformation.effect_id)

            logger.info(
                f"Transformation {transformation_id} completed "
                f"({transformation.effect_id} -> {filename})"
            )

        except (VoiceError, OSError, KeyError) as e:
            message = getattr(e, "message", None) or str(e) or "Unknown error occurred"
            logger.error(f"Transformation {transformation_id} failed: {message}")
            transformation.status = TransformationStatus.FAILED.value
            transformation.error_message = message[:255]

        except Exception as e:
            logger.exception(f"Transformation {transformation_id} failed unexpectedly")
            transformation.status = TransformationStatus.FAILED.value
            transformation.error_message = (str(e) or e.__class__.__name__)[:255]


__all__ = [
    "EMOTION_KIND",
    "EFFECT_KIND",
    "run_transformation",
]
