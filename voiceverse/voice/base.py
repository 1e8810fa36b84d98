"""
Voice Provider Base Types

Errors and shared settings types used by the voice and translation
provider clients.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


# =============================================================================
# Voice Settings
# =============================================================================


@dataclass
class VoiceSettings:
    """ElevenLabs voice settings."""

    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0
    use_speaker_boost: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "VoiceSettings":
        if not data:
            return cls()
        return cls(
            stability=float(data.get("stability", 0.5)),
            similarity_boost=float(data.get("similarity_boost", 0.75)),
            style=float(data.get("style", 0.0)),
            use_speaker_boost=bool(data.get("use_speaker_boost", True)),
        )


# =============================================================================
# Exceptions
# =============================================================================


class VoiceError(Exception):
    """Base exception for voice and translation provider operations."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "VOICE_ERROR"
        self.provider = provider
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "provider": self.provider,
            "details": self.details,
        }


class STTError(VoiceError):
    """Error during speech-to-text operation."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="STT_ERROR", **kwargs)


class TTSError(VoiceError):
    """Error during text-to-speech or voice conversion."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="TTS_ERROR", **kwargs)


class TranslationError(VoiceError):
    """Error during text translation."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="TRANSLATION_ERROR", **kwargs)


class ProviderConnectionError(VoiceError):
    """Failed to connect to provider."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="PROVIDER_CONNECTION_ERROR", **kwargs)


class ProviderTimeoutError(VoiceError):
    """Provider operation timed out."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="PROVIDER_TIMEOUT", **kwargs)


class ProviderRateLimitError(VoiceError):
    """Provider rate limit exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs):
        super().__init__(message, code="RATE_LIMIT_EXCEEDED", **kwargs)
        self.retry_after = retry_after


class ProviderNotConfiguredError(VoiceError):
    """Provider API key is missing."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="PROVIDER_NOT_CONFIGURED", **kwargs)


class VoiceNotFoundError(VoiceError):
    """Requested voice not found."""

    def __init__(self, message: str, voice_id: str, **kwargs):
        super().__init__(message, code="VOICE_NOT_FOUND", **kwargs)
        self.voice_id = voice_id


class QuotaExceededError(VoiceError):
    """Provider quota exceeded."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="QUOTA_EXCEEDED", **kwargs)


__all__ = [
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
]
