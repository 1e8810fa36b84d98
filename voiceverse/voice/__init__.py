"""
Voice Module

ElevenLabs integration, the static voice catalogue and the background
transformation jobs.
"""

from .base import (
    VoiceSettings,
    VoiceError,
    STTError,
    TTSError,
    TranslationError,
    ProviderConnectionError,
    ProviderTimeoutError,
    ProviderRateLimitError,
    ProviderNotConfiguredError,
    VoiceNotFoundError,
    QuotaExceededError,
)
from .elevenlabs import (
    ElevenLabsClient,
    MONOLINGUAL_MODEL,
    MULTILINGUAL_MODEL,
    SPEECH_TO_SPEECH_MODEL,
)
from .catalog import (
    CELEBRITY_VOICES,
    EMOTION_VOICES,
    VOICE_EFFECT_SEEDS,
    emotion_voice_list,
    merge_settings,
)


__all__ = [
    # Base
    "VoiceSettings",
    "VoiceError",
    "STTError",
    "TTSError",
    "TranslationError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderRateLimitError",
    "ProviderNotConfiguredError",
    "VoiceNotFoundError",
    "QuotaExceededError",
    # ElevenLabs
    "ElevenLabsClient",
    "MONOLINGUAL_MODEL",
    "MULTILINGUAL_MODEL",
    "SPEECH_TO_SPEECH_MODEL",
    # Catalog
    "CELEBRITY_VOICES",
    "EMOTION_VOICES",
    "VOICE_EFFECT_SEEDS",
    "emotion_voice_list",
    "merge_settings",
]
