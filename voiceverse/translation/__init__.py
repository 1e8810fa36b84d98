"""
Translation Module

Language tables, text translation and transcription clients, and the
audio translation pipelines.
"""

from .languages import (
    Language,
    SUPPORTED_LANGUAGES,
    VOICE_TRANSLATE_LANGUAGES,
    DEFAULT_VOICE_IDS,
    VOICE_ID_REPLACEMENTS,
    get_language,
    get_voice_translate_language,
    language_name,
    normalize_language_code,
    resolve_voice_id,
)
from .providers import (
    TranslationResult,
    TranscriptionResult,
    GoogleTranslateClient,
    LibreTranslateClient,
    WhisperClient,
    mock_translation,
    mock_transcription,
)


__all__ = [
    # Languages
    "Language",
    "SUPPORTED_LANGUAGES",
    "VOICE_TRANSLATE_LANGUAGES",
    "DEFAULT_VOICE_IDS",
    "VOICE_ID_REPLACEMENTS",
    "get_language",
    "get_voice_translate_language",
    "language_name",
    "normalize_language_code",
    "resolve_voice_id",
    # Providers
    "TranslationResult",
    "TranscriptionResult",
    "GoogleTranslateClient",
    "LibreTranslateClient",
    "WhisperClient",
    "mock_translation",
    "mock_transcription",
]
