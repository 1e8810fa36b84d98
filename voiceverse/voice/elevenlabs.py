"""
ElevenLabs Client

Async client for the ElevenLabs endpoints VoiceVerse uses: voice
listing, instant voice cloning, text-to-speech, speech-to-speech and
voice effect streaming.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from .base import (
    VoiceSettings,
    TTSError,
    ProviderConnectionError,
    ProviderTimeoutError,
    ProviderNotConfiguredError,
    VoiceNotFoundError,
    QuotaExceededError,
)


logger = logging.getLogger(__name__)


MONOLINGUAL_MODEL = "eleven_monolingual_v1"
MULTILINGUAL_MODEL = "eleven_multilingual_v2"
SPEECH_TO_SPEECH_MODEL = "eleven_english_sts_v2"


class ElevenLabsClient:
    """
    ElevenLabs REST client.

    The HTTP client is created lazily and reused until ``close()``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout: float = 60.0,
    ):
        self.api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if not self.api_key:
            raise ProviderNotConfiguredError(
                "ElevenLabs API key is not configured",
                provider="elevenlabs",
            )
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"xi-api-key": self.api_key},
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def _raise_for_status(self, response: httpx.Response, voice_id: Optional[str] = None) -> None:
        if response.status_code == 200:
            return
        if response.status_code == 401:
            raise TTSError("Invalid ElevenLabs API key", provider="elevenlabs")
        if response.status_code == 404 and voice_id:
            raise VoiceNotFoundError(
                f"Voice '{voice_id}' not found",
                voice_id=voice_id,
                provider="elevenlabs",
            )
        if response.status_code == 402:
            raise QuotaExceededError(
                "ElevenLabs quota exceeded. Please upgrade your plan.",
                provider="elevenlabs",
            )
        raise TTSError(
            f"ElevenLabs API error: {response.status_code} - {response.text}",
            provider="elevenlabs",
        )

    async def _request(
        self, method: str, path: str, voice_id: Optional[str] = None, **kwargs
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            raise ProviderTimeoutError(
                f"ElevenLabs request timed out after {self.timeout}s",
                provider="elevenlabs",
            )
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                "Failed to connect to ElevenLabs API",
                provider="elevenlabs",
                details={"error": str(e) or e.__class__.__name__},
            )
        self._raise_for_status(response, voice_id=voice_id)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderConnectionError(
                "Invalid response from ElevenLabs API",
                provider="elevenlabs",
                details={"error": str(e)},
            )

    async def list_voices(self) -> List[Dict[str, Any]]:
        """List voices available to the account."""
        response = await self._request("GET", "/voices")
        return self._json(response).get("voices", [])

    async def add_voice(
        self,
        name: str,
        samples: Sequence[Tuple[str, bytes, str]],
        description: Optional[str] = None,
    ) -> str:
        """
        Clone a voice from audio samples.

        Args:
            name: Voice name
            samples: ``(filename, content, mimetype)`` tuples
            description: Optional description

        Returns:
            The new ElevenLabs voice id
        """
        data = {"name": name}
        if description:
            data["description"] = description
        files = [("files", sample) for sample in samples]

        response = await self._request("POST", "/voices/add", data=data, files=files)
        voice_id = self._json(response).get("voice_id")
        logger.info(f"Cloned ElevenLabs voice {voice_id} ({name})")
        return voice_id

    async def text_to_speech(
        self,
        text: str,
        voice_id: str,
        model_id: str = MULTILINGUAL_MODEL,
        settings: Optional[VoiceSettings] = None,
    ) -> bytes:
        """Synthesize text, returning MP3 bytes."""
        if not text.strip():
            raise TTSError("Cannot synthesize empty text", provider="elevenlabs")

        body = {
            "text": text,
            "model_id": model_id,
            "voice_settings": (settings or VoiceSettings()).to_dict(),
        }
        response = await self._request(
            "POST",
            f"/text-to-speech/{voice_id}",
            voice_id=voice_id,
            json=body,
            headers={"Accept": "audio/mpeg"},
        )
        return response.content

    async def speech_to_speech(
        self,
        audio: bytes,
        voice_id: str,
        model_id: str = SPEECH_TO_SPEECH_MODEL,
        settings: Optional[VoiceSettings] = None,
        filename: str = "audio.mp3",
        mimetype: str = "audio/mpeg",
    ) -> bytes:
        """Re-voice recorded audio with the target voice, returning MP3 bytes."""
        data = {
            "model_id": model_id,
            "voice_settings": json.dumps((settings or VoiceSettings()).to_dict()),
        }
        files = {"audio": (filename, audio, mimetype)}
        response = await self._request(
            "POST",
            f"/speech-to-speech/{voice_id}",
            voice_id=voice_id,
            data=data,
            files=files,
            headers={"Accept": "audio/mpeg"},
        )
        return response.content

    async def convert_with_voice(
        self,
        audio: bytes,
        voice_id: str,
        model_id: str = MONOLINGUAL_MODEL,
        settings: Optional[VoiceSettings] = None,
        filename: str = "audio.mp3",
        mimetype: str = "audio/mpeg",
    ) -> bytes:
        """Stream recorded audio through a voice effect, returning MP3 bytes."""
        data = {
            "model_id": model_id,
            "voice_settings": json.dumps((settings or VoiceSettings()).to_dict()),
        }
        files = {"audio": (filename, audio, mimetype)}
        response = await self._request(
            "POST",
            f"/voices/{voice_id}/audio/stream",
            voice_id=voice_id,
            data=data,
            files=files,
            headers={"Accept": "audio/mpeg"},
        )
        return response.content


__all__ = [
    "MONOLINGUAL_MODEL",
    "MULTILINGUAL_MODEL",
    "SPEECH_TO_SPEECH_MODEL",
    "ElevenLabsClient",
]
