"""
Translation Providers

Google Translate and LibreTranslate for text, OpenAI Whisper for
transcription. Each client builds its httpx client lazily.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..voice.base import (
    STTError,
    TranslationError,
    ProviderConnectionError,
    ProviderTimeoutError,
    ProviderRateLimitError,
    ProviderNotConfiguredError,
)
from .languages import language_name, normalize_language_code


logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    """Result of a text translation."""

    text: str
    source_language: str
    provider: str
    is_fallback: bool = False


@dataclass
class TranscriptionResult:
    """Result of an audio transcription."""

    text: str
    language: str
    duration: float = 0.0
    is_fallback: bool = False


def mock_translation(text: str, target_language: str) -> str:
    """Placeholder translation used when Google Translate is not configured."""
    return f"[{target_language.upper()}] {text}"


def mock_transcription(filename: str) -> TranscriptionResult:
    stem = os.path.splitext(os.path.basename(filename))[0]
    return TranscriptionResult(
        text=(
            f"This is a mock transcription for file: {stem}. "
            "The actual transcription service is currently unavailable."
        ),
        language="en",
        is_fallback=True,
    )


# =============================================================================
# Google Translate
# =============================================================================


class GoogleTranslateClient:
    """
    Google Cloud Translation v2 client.

    Without an API key every call returns a ``[XX] text`` placeholder.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://translation.googleapis.com/language/translate/v2",
        timeout: float = 10.0,
    ):
        self.api_key = api_key or os.getenv("GOOGLE_TRANSLATE_API_KEY")
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: Optional[str] = "auto",
    ) -> TranslationResult:
        """
        Translate text.

        Raises:
            TranslationError: The API rejected the request or answered
                with an unexpected body.
        """
        if not self.is_configured:
            logger.warning("No Google Translate API key found, using mock translation")
            source = source_language if source_language and source_language != "auto" else "en"
            return TranslationResult(
                text=mock_translation(text, target_language),
                source_language=source,
                provider="mock",
                is_fallback=True,
            )

        form = {
            "key": self.api_key,
            "q": text,
            "target": target_language,
            "format": "text",
        }
        if source_language and source_language != "auto":
            form["source"] = source_language

        client = await self._get_client()
        try:
            response = await client.post(self.base_url, data=form)
        except httpx.TimeoutException:
            raise ProviderTimeoutError("Google Translate request timed out", provider="google")
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                "Failed to connect to Google Translate",
                provider="google",
                details={"error": str(e) or e.__class__.__name__},
            )

        if response.status_code != 200:
            raise TranslationError(
                f"Google Translate API error: {response.status_code} - {response.text}",
                provider="google",
            )

        try:
            translations = response.json().get("data", {}).get("translations")
        except ValueError as e:
            raise ProviderConnectionError(
                "Invalid response from Google Translate API",
                provider="google",
                details={"error": str(e)},
            )
        if not translations:
            raise TranslationError("Invalid response from Google Translate API", provider="google")

        first = translations[0]
        return TranslationResult(
            text=first["translatedText"],
            source_language=first.get("detectedSourceLanguage") or source_language or "auto",
            provider="google",
        )


# =============================================================================
# LibreTranslate
# =============================================================================


class LibreTranslateClient:
    """
    LibreTranslate client.

    Translation never raises: any failure yields
    ``[Translated to {Language}] text``.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
    ):
        self.api_url = api_url or os.getenv(
            "LIBRETRANSLATE_API_URL", "https://translate.monocles.de/translate"
        )
        self.api_key = api_key or os.getenv("LIBRETRANSLATE_API_KEY")
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": "VoiceVerse/1.0"},
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    @staticmethod
    def fallback(text: str, target_language: str) -> str:
        return f"[Translated to {language_name(target_language)}] {text}"

    async def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
    ) -> TranslationResult:
        if not text or not text.strip():
            raise TranslationError("No text provided for translation", provider="libretranslate")

        if source_language == target_language:
            return TranslationResult(text=text, source_language=source_language, provider="none")

        payload: Dict[str, Any] = {
            "q": text.strip(),
            "source": source_language or "auto",
            "target": target_language,
            "format": "text",
        }
        if self.api_key:
            payload["api_key"] = self.api_key

        try:
            client = await self._get_client()
            response = await client.post(self.api_url, json=payload)
            response.raise_for_status()
            translated = response.json().get("translatedText")
            if not translated:
                raise TranslationError(
                    "Invalid response from LibreTranslate API - no translatedText field",
                    provider="libretranslate",
                )
            return TranslationResult(
                text=translated,
                source_language=source_language,
                provider="libretranslate",
            )
        except (httpx.HTTPError, ValueError, TranslationError) as e:
            logger.warning(f"LibreTranslate failed, using fallback translation: {e}")
            return TranslationResult(
                text=self.fallback(text, target_language),
                source_language=source_language,
                provider="fallback",
                is_fallback=True,
            )

    async def supported_languages(self) -> List[Dict[str, str]]:
        """Languages reported by the server, empty when unreachable."""
        url = self.api_url.replace("/translate", "/languages")
        try:
            client = await self._get_client()
            response = await client.get(url, timeout=5.0)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Could not fetch LibreTranslate supported languages: {e}")
            return []
        if not isinstance(data, list):
            return []
        return [{"code": lang.get("code"), "name": lang.get("name")} for lang in data]

    async def test_connection(self) -> Dict[str, Any]:
        sample = "Hello"
        result = await self.translate(sample, "en", "es")
        return {
            "status": "connected" if not result.is_fallback else "fallback",
            "testTranslation": {
                "input": sample,
                "output": result.text,
                "success": not result.is_fallback,
            },
        }


# =============================================================================
# OpenAI Whisper
# =============================================================================


class WhisperClient:
    """
    OpenAI Whisper transcription client.

    Rate limited requests are retried with exponential backoff.
    """

    MAX_ATTEMPTS = 3

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        model: str = "whisper-1",
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.base_url = base_url
        self.timeout = timeout
        self.model = model
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if not self.api_key:
            raise ProviderNotConfiguredError("OpenAI API key not configured", provider="openai")
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.mp3",
        mimetype: str = "audio/mpeg",
    ) -> TranscriptionResult:
        """Transcribe audio and detect its language."""
        if not audio:
            raise STTError("Empty audio data provided", provider="openai")

        client = await self._get_client()
        files = {
            "file": (filename, audio, mimetype),
            "model": (None, self.model),
            "response_format": (None, "verbose_json"),
        }

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                response = await client.post("/audio/transcriptions", files=files)
            except httpx.TimeoutException:
                raise ProviderTimeoutError(
                    f"OpenAI request timed out after {self.timeout}s",
                    provider="openai",
                )
            except httpx.HTTPError as e:
                raise ProviderConnectionError(
                    "Failed to connect to OpenAI API",
                    provider="openai",
                    details={"error": str(e) or e.__class__.__name__},
                )

            if response.status_code == 429:
                if attempt < self.MAX_ATTEMPTS:
                    wait = 2 ** attempt
                    logger.warning(f"Whisper rate limited, retrying in {wait}s ({attempt}/{self.MAX_ATTEMPTS})")
                    await asyncio.sleep(wait)
                    continue
                raise ProviderRateLimitError(
                    "OpenAI rate limit exceeded",
                    provider="openai",
                    retry_after=int(response.headers.get("Retry-After", 60)),
                )

            if response.status_code != 200:
                raise STTError(
                    f"OpenAI API error: {response.status_code} - {response.text}",
                    provider="openai",
                )

            try:
                data = response.json()
            except ValueError as e:
                raise ProviderConnectionError(
                    "Invalid response from OpenAI API",
                    provider="openai",
                    details={"error": str(e)},
                )
            return TranscriptionResult(
                text=data.get("text", ""),
                language=normalize_language_code(data.get("language")),
                duration=float(data.get("duration") or 0.0),
            )

        raise STTError("Transcription failed", provider="openai")


__all__ = [
    "TranslationResult",
    "TranscriptionResult",
    "mock_translation",
    "mock_transcription",
    "GoogleTranslateClient",
    "LibreTranslateClient",
    "WhisperClient",
]
