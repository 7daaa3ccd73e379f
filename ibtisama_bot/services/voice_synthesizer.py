"""
Voice Synthesis
===============
Text-to-speech through the ElevenLabs API, returning OGG audio ready to be
uploaded to WhatsApp as a voice note.
"""

from typing import Optional

import httpx
from loguru import logger

from ..config import get_settings


ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


class VoiceSynthesisError(Exception):
    """Raised when speech could not be generated"""


class VoiceSynthesizer:
    """ElevenLabs text-to-speech client"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.ELEVENLABS_API_KEY
        self.voice_id = voice_id or settings.elevenlabs_voice_id
        self.model_id = model_id or settings.elevenlabs_model_id
        self.timeout = settings.http_timeout_seconds
        self._client = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def synthesize(self, text: str) -> bytes:
        """
        Generate speech for `text`.

        Raises:
            VoiceSynthesisError: API key missing, HTTP failure or empty audio
        """
        if not self.api_key:
            raise VoiceSynthesisError("ELEVENLABS_API_KEY not configured")

        logger.debug(f"🎤 Generating voice for: {text[:50]!r}")
        try:
            resp = await self.client.post(
                ELEVENLABS_TTS_URL.format(voice_id=self.voice_id),
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
                },
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "Accept": "audio/ogg",
                },
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise VoiceSynthesisError(f"ElevenLabs returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise VoiceSynthesisError(f"ElevenLabs request failed: {exc}") from exc

        if not resp.content:
            raise VoiceSynthesisError("ElevenLabs returned empty audio")
        logger.info(f"✅ Voice generated ({len(resp.content)} bytes)")
        return resp.content
